"""Population model: the simulation context that alignment runs inside.

Owns the period's population, the pending match bookkeeping and the two
matching phases:

1. union_matching: candidates are matched within their own region.
2. union_matching_no_region: whoever is still unmatched is pooled across
   regions and matched again.

Phase 2 only sees candidates left over from phase 1, so region-respecting
pairs always take priority and are never re-paired. Both phases take a
`test` flag: test matches write only Person.test_partner_id, while
committing matches update the partnership records.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from ..config import get_config
from ..core.models.population import Dcpst, Gender, Person, Population
from ..population.matching import UnionMatcher

logger = logging.getLogger(__name__)


class PopulationModel:
    """Simulation context for one period of a population."""

    def __init__(
        self,
        population: Population,
        matcher: UnionMatcher | None = None,
        min_age: int | None = None,
    ):
        self.population = population
        self.matcher = matcher or UnionMatcher()
        self.min_age = (
            min_age if min_age is not None else get_config().alignment.min_age_cohabitation
        )
        self._by_id: dict[str, Person] = {p.id: p for p in population.persons}
        self._persons_to_match: dict[tuple[str, Gender], list[Person]] = defaultdict(list)
        self._candidates_collected = False

    @property
    def year(self) -> int:
        return self.population.year

    @property
    def persons(self) -> list[Person]:
        return self.population.persons

    def persons_to_match(self) -> dict[tuple[str, Gender], list[Person]]:
        """Pending match candidates by (region, gender)."""
        return {k: list(v) for k, v in self._persons_to_match.items() if v}

    # ── Match bookkeeping ──

    def clear_persons_to_match(self) -> None:
        """Drop pending match candidates and transient test pairings.

        Committed partnership records are not touched. Safe to call repeatedly.
        """
        self._persons_to_match.clear()
        self._candidates_collected = False
        for person in self.population.persons:
            person.test_partner_id = None

    def _collect_candidates(self) -> None:
        if self._candidates_collected:
            return
        for person in self.population.persons:
            if (
                person.age >= self.min_age
                and person.to_be_partnered
                and not person.has_test_partner()
            ):
                self._persons_to_match[(person.region, person.gender)].append(person)
        self._candidates_collected = True

    # ── Matching phases ──

    def union_matching(self, test: bool = True) -> int:
        """Match candidates within their region.

        Returns:
            Number of unions formed.
        """
        self._collect_candidates()
        regions = sorted({region for region, _ in self._persons_to_match})

        formed = 0
        for region in regions:
            females = self._persons_to_match.get((region, Gender.FEMALE), [])
            males = self._persons_to_match.get((region, Gender.MALE), [])
            for female, male in self.matcher.match(females, males):
                self._apply_union(female, male, test=test)
                formed += 1

        logger.debug(
            "Regional union matching (test=%s, year=%d): %d unions",
            test,
            self.year,
            formed,
        )
        return formed

    def union_matching_no_region(self, test: bool = True) -> int:
        """Match remaining candidates ignoring region.

        Returns:
            Number of unions formed.
        """
        self._collect_candidates()

        females: list[Person] = []
        males: list[Person] = []
        for (_, gender), candidates in sorted(
            self._persons_to_match.items(), key=lambda item: item[0][0]
        ):
            target = females if gender == Gender.FEMALE else males
            target.extend(candidates)

        formed = 0
        for female, male in self.matcher.match(females, males):
            self._apply_union(female, male, test=test)
            formed += 1

        logger.debug(
            "Cross-region union matching (test=%s, year=%d): %d unions",
            test,
            self.year,
            formed,
        )
        return formed

    def _apply_union(self, female: Person, male: Person, *, test: bool) -> None:
        for person in (female, male):
            self._persons_to_match[(person.region, person.gender)].remove(person)

        if test:
            female.test_partner_id = male.id
            male.test_partner_id = female.id
            return

        for person, partner in ((female, male), (male, female)):
            self._end_union(person)
            person.partner_id = partner.id
            person.dcpst = Dcpst.PARTNERED
            person.partnership_duration = 0
            person.to_be_partnered = False
            person.left_partner_test = False

    # ── Committing pass ──

    def commit_partnerships(self) -> int:
        """Apply the last evaluation's outcomes to the partnership records.

        Dissolutions flagged in the last evaluation are committed, then the
        formation candidates are matched for real (regional phase first).
        Transient state is cleared afterwards.

        Returns:
            Number of unions formed.
        """
        self.clear_persons_to_match()
        ended = self.apply_dissolutions()
        formed = self.union_matching(test=False)
        formed += self.union_matching_no_region(test=False)
        self.reset_test_state()
        logger.info(
            "Committed partnerships for %d: %d persons left a union, %d unions formed",
            self.year,
            ended,
            formed,
        )
        return formed

    def reset_test_state(self) -> None:
        """Clear transient alignment fields on every person."""
        self.clear_persons_to_match()
        for person in self.population.persons:
            person.reset_test_state()

    # ── Committed dissolution ──

    def apply_dissolutions(self) -> int:
        """Commit the unions flagged as dissolved in the last evaluation.

        Returns:
            Number of persons whose union ended.
        """
        ended = 0
        for person in self.population.persons:
            if not person.left_partner_test:
                continue
            if person.is_partnered():
                self._end_union(person)
                ended += 2
            person.left_partner_test = False
        return ended

    def _end_union(self, person: Person) -> None:
        if person.partner_id is None:
            return
        former = self._by_id.get(person.partner_id)
        if former is not None and former.partner_id == person.id:
            former.partner_id = None
            former.dcpst = Dcpst.PREVIOUSLY_PARTNERED
            former.partnership_duration = 0
        person.partner_id = None
        person.dcpst = Dcpst.PREVIOUSLY_PARTNERED
        person.partnership_duration = 0
