"""Population models and YAML I/O for simalign.

A Population is the set of individuals one simulation period operates on.
Each Person carries committed partnership state (dcpst, partner_id) plus
transient fields written only during non-committing alignment passes:

- test_partner_id: partner assigned by a non-committing union match
- left_partner_test: union dissolved in the current alignment trial
- to_be_partnered: formation outcome in the current alignment trial
"""

from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator


class Dcpst(str, Enum):
    """Partnership status."""

    PARTNERED = "partnered"
    SINGLE = "single"
    PREVIOUSLY_PARTNERED = "previously_partnered"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class Person(BaseModel):
    """An individual in the simulated population."""

    id: str
    age: int = Field(ge=0)
    gender: Gender
    region: str
    dcpst: Dcpst = Dcpst.SINGLE
    partner_id: str | None = None
    partnership_duration: int = Field(default=0, ge=0)
    education: str = "medium"  # "low", "medium", "high"
    seed: int = 0

    # Transient alignment state
    test_partner_id: str | None = None
    left_partner_test: bool = False
    to_be_partnered: bool = False

    def is_partnered(self) -> bool:
        return self.dcpst == Dcpst.PARTNERED

    def has_test_partner(self) -> bool:
        return self.test_partner_id is not None

    def has_left_partner_test(self) -> bool:
        return self.left_partner_test

    def reset_test_state(self) -> None:
        """Clear transient alignment fields. Committed fields are untouched."""
        self.test_partner_id = None
        self.left_partner_test = False
        self.to_be_partnered = False


class Population(BaseModel):
    """A simulation period's population."""

    year: int
    persons: list[Person] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_partner_links(self) -> "Population":
        by_id: dict[str, Person] = {}
        for person in self.persons:
            if person.id in by_id:
                raise ValueError(f"Duplicate person id: {person.id!r}")
            by_id[person.id] = person

        for person in self.persons:
            if person.partner_id is None:
                if person.is_partnered():
                    raise ValueError(f"Person {person.id!r} is partnered without partner_id")
                continue
            partner = by_id.get(person.partner_id)
            if partner is None:
                raise ValueError(
                    f"Person {person.id!r} references unknown partner {person.partner_id!r}"
                )
            if partner.partner_id != person.id:
                raise ValueError(
                    f"Partner link {person.id!r} -> {partner.id!r} is not reciprocal"
                )
            if partner.partnership_duration != person.partnership_duration:
                raise ValueError(
                    f"Partners {person.id!r} and {partner.id!r} disagree on partnership_duration"
                )
        return self

    def get_person(self, person_id: str) -> Person | None:
        """Get a person by id."""
        for person in self.persons:
            if person.id == person_id:
                return person
        return None

    def to_yaml(self, path: Path | str) -> None:
        """Save population to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(mode="json")

        with open(path, "w") as f:
            yaml.dump(
                data, f, default_flow_style=False, sort_keys=False, allow_unicode=True
            )

    @classmethod
    def from_yaml(cls, path: Path | str) -> "Population":
        """Load population from YAML file."""
        path = Path(path)

        with open(path) as f:
            data = yaml.safe_load(f)

        return cls.model_validate(data)

    def summary(self) -> str:
        """Get a text summary of the population."""
        partnered = sum(1 for p in self.persons if p.is_partnered())
        regions = sorted({p.region for p in self.persons})
        return "\n".join(
            [
                f"Year: {self.year}",
                f"Persons: {len(self.persons)}",
                f"Partnered: {partnered}",
                f"Regions: {', '.join(regions) if regions else '-'}",
            ]
        )
