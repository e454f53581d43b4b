"""Per-individual union dissolution and formation models.

Both models only read the person they are evaluated for and only write
that person's transient fields, so a pass over the population can run in
any order or in parallel.

Random draws are keyed rather than consumed from a shared stream:
- formation draws are keyed by (person seed, year), so every alignment
  trial in a period sees the same draw and the formation outcome is
  monotone in the intercept shift
- dissolution draws are keyed by (year, couple), so both partners reach
  the same outcome without reading each other's state
"""

from __future__ import annotations

import math
import random
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from scipy.stats import norm

from ..core.models.population import Dcpst, Person


class FormationCoefficients(BaseModel):
    """Probit coefficients for entering a cohabiting union."""

    intercept: float = -1.2
    age: float = 0.05
    age_squared: float = -0.0008
    education: dict[str, float] = Field(
        default_factory=lambda: {"low": -0.1, "medium": 0.0, "high": 0.1}
    )
    previously_partnered: float = -0.2


class DissolutionCoefficients(BaseModel):
    """Logit coefficients for the dissolution of an existing union.

    Only couple-level covariates, so both partners share one probability.
    """

    intercept: float = -2.5
    partnership_duration: float = -0.05


class BehaviourConfig(BaseModel):
    """Coefficients of the partnership behaviour models."""

    formation: FormationCoefficients = Field(default_factory=FormationCoefficients)
    dissolution: DissolutionCoefficients = Field(
        default_factory=DissolutionCoefficients
    )

    @classmethod
    def from_yaml(cls, path: Path | str) -> "BehaviourConfig":
        """Load coefficients from YAML file; missing keys keep defaults."""
        with open(Path(path)) as f:
            data = yaml.safe_load(f) or {}
        return cls.model_validate(data)


def _keyed_uniform(*key: object) -> float:
    """Uniform draw in [0, 1) that depends only on the key."""
    return random.Random(":".join(str(k) for k in key)).random()


class PartnershipBehaviour:
    """Reference dissolution and formation models for one simulation year."""

    def __init__(self, year: int, config: BehaviourConfig | None = None):
        self.year = year
        self.config = config or BehaviourConfig()

    # ── Dissolution ──

    def dissolution_probability(self, person: Person) -> float:
        coef = self.config.dissolution
        score = coef.intercept + coef.partnership_duration * person.partnership_duration
        return 1.0 / (1.0 + math.exp(-score))

    def evaluate_dissolution(self, person: Person) -> None:
        """Decide whether the person's union ends in this trial.

        Writes only person.left_partner_test; the committed partnership
        record is left as it is.
        """
        if not person.is_partnered() or person.partner_id is None:
            person.left_partner_test = False
            return

        couple = sorted((person.id, person.partner_id))
        draw = _keyed_uniform(self.year, "dissolution", *couple)
        person.left_partner_test = draw < self.dissolution_probability(person)

    # ── Formation ──

    def formation_score(self, person: Person, adjustment: float = 0.0) -> float:
        """Probit index, including the alignment intercept shift."""
        coef = self.config.formation
        score = (
            coef.intercept
            + adjustment
            + coef.age * person.age
            + coef.age_squared * person.age**2
            + coef.education.get(person.education, 0.0)
        )
        if person.dcpst == Dcpst.PREVIOUSLY_PARTNERED or person.left_partner_test:
            score += coef.previously_partnered
        return score

    def formation_probability(self, person: Person, adjustment: float = 0.0) -> float:
        return float(norm.cdf(self.formation_score(person, adjustment)))

    def evaluate_formation(self, person: Person, adjustment: float) -> None:
        """Decide whether the person seeks a partner in this trial.

        Only persons without a union (or whose union ended in this trial)
        can form one.
        """
        if person.is_partnered() and not person.left_partner_test:
            person.to_be_partnered = False
            return

        draw = _keyed_uniform(person.seed, self.year, "formation", person.id)
        person.to_be_partnered = draw < self.formation_probability(person, adjustment)
