"""Partnership alignment.

Adjusts the probability of individuals forming a union so that the
simulated share of partnered persons matches the share observed in the
data. The adjustment is an intercept shift on the union-formation probit.

Each evaluation runs a shadow pass of the partnership process:
dissolution, formation under the trial shift, then union matching in test
mode, which pairs candidates through Person.test_partner_id without
touching household or partnership records. A root search calls
evaluate() repeatedly until the returned error is close enough to zero.

The shift only needs to be found once per period; callers store it and
reuse it in later runs.

Preconditions: evaluate() is not reentrant, and nothing else may read or
write the population while an evaluation runs.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Protocol

from ..config import get_config
from ..core.models.population import Person
from ..core.models.targets import TargetShare, TargetShareTable
from ..utils.resource_governor import ResourceGovernor
from .base import Evaluation

logger = logging.getLogger(__name__)


class MatchingContext(Protocol):
    """The simulation context an alignment runs inside."""

    @property
    def year(self) -> int: ...

    @property
    def min_age(self) -> int: ...

    def clear_persons_to_match(self) -> None: ...

    def union_matching(self, test: bool = True) -> Any: ...

    def union_matching_no_region(self, test: bool = True) -> Any: ...


class PartnershipModels(Protocol):
    """Per-individual dissolution and formation models."""

    def evaluate_dissolution(self, person: Person) -> None: ...

    def evaluate_formation(self, person: Person, adjustment: float) -> None: ...


class PartnershipAlignment(Evaluation):
    """Objective for calibrating the union-formation intercept shift.

    Args:
        persons: Population to align over. Referenced, not copied.
        partnership_adjustment: Intercept shift in force before alignment.
        model: Simulation context providing the year, match bookkeeping
            and the two union-matching phases.
        behaviour: Dissolution and formation models.
        targets: Target share table; the partnership target for
            model.year is looked up once here.
        min_age: Minimum cohabitation age. Defaults to model.min_age; an
            explicit value must equal it, as the matching phases filter
            candidates by model.min_age.
        max_workers: Threads for the formation pass (default from config).
    """

    def __init__(
        self,
        persons: Sequence[Person],
        partnership_adjustment: float,
        *,
        model: MatchingContext,
        behaviour: PartnershipModels,
        targets: TargetShareTable,
        min_age: int | None = None,
        max_workers: int | None = None,
    ):
        config = get_config()
        self.persons = persons
        self.partnership_adjustment = partnership_adjustment
        self.partnership_adjustment_changed = False
        self.model = model
        self.behaviour = behaviour
        if min_age is not None and min_age != model.min_age:
            raise ValueError(
                f"min_age={min_age} differs from the matching context's "
                f"min_age={model.min_age}"
            )
        self.min_age = model.min_age
        self.max_workers = (
            max_workers if max_workers is not None else config.alignment.max_workers
        )
        self._governor = ResourceGovernor(resource_mode=config.defaults.resource_mode)
        self.target_aggregate_share = targets.get(model.year, TargetShare.PARTNERSHIP)

    def evaluate(self, x: float) -> float:
        """Error between target and simulated partnered share under shift x.

        A positive error means too few persons are partnered, so the shift
        should rise. Exceptions raised by the behaviour models or the
        matching propagate unchanged.
        """
        self.model.clear_persons_to_match()
        self._for_each_eligible(self.behaviour.evaluate_dissolution)

        self._adjust_partnerships(x)

        share = self._aggregate_share()
        error = self.target_aggregate_share - share
        logger.debug(
            "Partnership alignment trial %.6f: share=%.4f target=%.4f error=%.4f",
            x,
            share,
            self.target_aggregate_share,
            error,
        )
        return error

    def _eligible(self) -> list[Person]:
        return [p for p in self.persons if p.age >= self.min_age]

    def _for_each_eligible(self, fn: Callable[[Person], None]) -> None:
        """Apply fn to every eligible person, in parallel where worthwhile.

        fn must only touch the person it is given.
        """
        eligible = self._eligible()
        workers = self._governor.recommend_workers(self.max_workers, len(eligible))
        if workers <= 1:
            for person in eligible:
                fn(person)
            return
        with ThreadPoolExecutor(max_workers=workers) as pool:
            # Consume the iterator so worker exceptions are re-raised here
            for _ in pool.map(fn, eligible):
                pass

    def _adjust_partnerships(self, adjustment: float) -> None:
        """Re-run formation under the new shift, then test-match candidates."""
        self._for_each_eligible(
            lambda person: self.behaviour.evaluate_formation(person, adjustment)
        )

        # Test matching: regional pairs first, leftovers across regions
        self.model.union_matching(test=True)
        self.model.union_matching_no_region(test=True)

        self.partnership_adjustment = adjustment
        self.partnership_adjustment_changed = True

    def _aggregate_share(self) -> float:
        """Share of eligible persons partnered after the test matching.

        A person counts as partnered if the test matching gave them a
        partner, or if they were partnered and did not leave the union in
        this trial.
        """
        eligible = self._eligible()
        if not eligible:
            return 0.0
        partnered = sum(
            1
            for p in eligible
            if p.has_test_partner() or (p.is_partnered() and not p.has_left_partner_test())
        )
        return partnered / len(eligible)
