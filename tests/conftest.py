"""Shared fixtures for simalign tests."""

import pytest

from simalign.config import SimalignConfig, configure, reset_config
from simalign.core.models import Dcpst, Gender, Person, Population


@pytest.fixture(autouse=True)
def default_config():
    """Isolate tests from the user's config file and env vars."""
    configure(SimalignConfig())
    yield
    reset_config()


def _couple(index: int, age: int, region: str) -> list[Person]:
    female_id, male_id = f"f{index:03d}", f"m{index:03d}"
    return [
        Person(
            id=female_id,
            age=age,
            gender=Gender.FEMALE,
            region=region,
            dcpst=Dcpst.PARTNERED,
            partner_id=male_id,
            partnership_duration=age // 4,
            seed=2 * index,
        ),
        Person(
            id=male_id,
            age=age + 2,
            gender=Gender.MALE,
            region=region,
            dcpst=Dcpst.PARTNERED,
            partner_id=female_id,
            partnership_duration=age // 4,
            seed=2 * index + 1,
        ),
    ]


def build_population(
    n_couples: int = 100,
    n_singles: int = 100,
    year: int = 2019,
    regions: tuple[str, ...] = ("north", "south"),
) -> Population:
    """Deterministic population: couples plus an even mix of single women and men."""
    persons: list[Person] = []
    for i in range(n_couples):
        persons.extend(_couple(i, 25 + i % 40, regions[i % len(regions)]))
    for j in range(n_singles):
        gender = Gender.FEMALE if j % 2 == 0 else Gender.MALE
        age = 20 + (j // 2) % 40 + (2 if gender == Gender.MALE else 0)
        persons.append(
            Person(
                id=f"s{j:03d}",
                age=age,
                gender=gender,
                region=regions[(j // 2) % len(regions)],
                education=("low", "medium", "high")[j % 3],
                seed=10_000 + j,
            )
        )
    return Population(year=year, persons=persons)


@pytest.fixture
def population() -> Population:
    return build_population()


@pytest.fixture
def population_factory():
    return build_population
