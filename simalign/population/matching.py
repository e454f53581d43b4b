"""Union matching between partnership candidates.

The matcher only decides who pairs with whom; it never writes to the
persons it is given. Applying a match (as a transient test pairing or a
committed union) is the caller's job, see PopulationModel.

Matching is greedy: females are visited youngest first and each takes the
still-available male whose age gap is closest to the preferred gap,
provided the gap is within max_age_gap. Ties break on person id so the
result does not depend on input order.
"""

from __future__ import annotations

from ..core.models.population import Person


class UnionMatcher:
    """Greedy age-gap matcher between female and male candidates."""

    def __init__(self, preferred_age_gap: float = 2.0, max_age_gap: int = 15):
        # preferred_age_gap is male age minus female age
        self.preferred_age_gap = preferred_age_gap
        self.max_age_gap = max_age_gap

    def match_cost(self, female: Person, male: Person) -> float | None:
        """Cost of pairing female with male, or None if not allowed."""
        gap = male.age - female.age
        if abs(gap) > self.max_age_gap:
            return None
        return abs(gap - self.preferred_age_gap)

    def match(
        self, females: list[Person], males: list[Person]
    ) -> list[tuple[Person, Person]]:
        """Pair females with males.

        Returns:
            List of (female, male) pairs. Each person appears at most once.
        """
        available = sorted(males, key=lambda p: p.id)
        pairs: list[tuple[Person, Person]] = []

        for female in sorted(females, key=lambda p: (p.age, p.id)):
            best: Person | None = None
            best_cost = 0.0
            for male in available:
                cost = self.match_cost(female, male)
                if cost is None:
                    continue
                if best is None or cost < best_cost:
                    best, best_cost = male, cost
            if best is None:
                continue
            available.remove(best)
            pairs.append((female, best))

        return pairs
