"""Target share tables.

Targets are aggregate shares observed in the data, keyed by category and
simulation year. YAML layout:

    shares:
      partnership:
        2019: 0.61
        2020: 0.605
"""

from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator


class TargetShare(str, Enum):
    """Categories of aggregate target shares."""

    PARTNERSHIP = "partnership"


class TargetShareTable(BaseModel):
    """Aggregate target shares by category and year."""

    shares: dict[TargetShare, dict[int, float]] = Field(default_factory=dict)

    @field_validator("shares")
    @classmethod
    def _check_share_range(
        cls, shares: dict[TargetShare, dict[int, float]]
    ) -> dict[TargetShare, dict[int, float]]:
        for category, by_year in shares.items():
            for year, value in by_year.items():
                if not 0.0 <= value <= 1.0:
                    raise ValueError(
                        f"Target share {category.value}/{year} must be in [0, 1], got {value}"
                    )
        return shares

    def get(self, year: int, category: TargetShare) -> float:
        """Look up the target share for a year.

        Raises:
            KeyError: If the category or year has no target.
        """
        by_year = self.shares.get(category)
        if by_year is None:
            raise KeyError(f"No target shares for category {category.value!r}")
        if year not in by_year:
            raise KeyError(f"No {category.value!r} target share for year {year}")
        return by_year[year]

    def years(self, category: TargetShare) -> list[int]:
        """Years with a target for the category, ascending."""
        return sorted(self.shares.get(category, {}))

    def to_yaml(self, path: Path | str) -> None:
        """Save target table to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "shares": {
                category.value: dict(sorted(by_year.items()))
                for category, by_year in self.shares.items()
            }
        }
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "TargetShareTable":
        """Load target table from YAML file."""
        path = Path(path)

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.model_validate(data)
