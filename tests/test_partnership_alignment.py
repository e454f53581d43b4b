"""Tests for the partnership alignment evaluator."""

import pytest

from simalign.alignment import PartnershipAlignment, align_partnerships
from simalign.core.models import (
    Dcpst,
    Gender,
    Person,
    Population,
    TargetShare,
    TargetShareTable,
)
from simalign.population import PartnershipBehaviour, UnionMatcher
from simalign.simulation import PopulationModel
from simalign.utils import ResourceGovernor


def _targets(share: float = 0.6, year: int = 2019) -> TargetShareTable:
    return TargetShareTable(shares={TargetShare.PARTNERSHIP: {year: share}})


def _singles(n: int = 10, age: int = 30) -> list[Person]:
    return [
        Person(
            id=f"p{i}",
            age=age,
            gender=Gender.FEMALE if i % 2 == 0 else Gender.MALE,
            region="north",
            seed=i,
        )
        for i in range(n)
    ]


class RecordingModel:
    """Stand-in simulation context: every formation candidate gets a test partner."""

    def __init__(self, persons, year=2019, calls=None, min_age=18):
        self.year = year
        self.persons = persons
        self.min_age = min_age
        self.calls = calls if calls is not None else []

    def clear_persons_to_match(self):
        self.calls.append("clear")
        for person in self.persons:
            person.test_partner_id = None

    def union_matching(self, test=True):
        self.calls.append(("union_matching", test))
        for person in self.persons:
            if person.to_be_partnered and person.age >= self.min_age:
                person.test_partner_id = "stub"

    def union_matching_no_region(self, test=True):
        self.calls.append(("union_matching_no_region", test))


class RankedBehaviour:
    """Partners exactly round(adjustment * 10) persons, clipped to [0, 10]."""

    def __init__(self, calls=None, dissolve=False):
        self.calls = calls if calls is not None else []
        self.dissolve = dissolve

    def evaluate_dissolution(self, person):
        self.calls.append(("dissolution", person.id))
        person.left_partner_test = self.dissolve and person.is_partnered()

    def evaluate_formation(self, person, adjustment):
        self.calls.append(("formation", person.id))
        if person.is_partnered() and not person.left_partner_test:
            person.to_be_partnered = False
            return
        k = max(0, min(10, round(adjustment * 10)))
        person.to_be_partnered = person.seed < k


def _stub_evaluator(persons, target=0.6, **kwargs):
    calls: list = []
    model = RecordingModel(persons, calls=calls)
    behaviour = RankedBehaviour(calls=calls, dissolve=kwargs.pop("dissolve", False))
    evaluator = PartnershipAlignment(
        persons,
        0.0,
        model=model,
        behaviour=behaviour,
        targets=_targets(target),
        max_workers=kwargs.pop("max_workers", 1),
        **kwargs,
    )
    return evaluator, calls


class TestConstruction:
    """Tests for evaluator construction."""

    def test_target_looked_up_for_model_year(self):
        persons = _singles()
        evaluator = PartnershipAlignment(
            persons,
            0.25,
            model=RecordingModel(persons, year=2020),
            behaviour=RankedBehaviour(),
            targets=TargetShareTable(
                shares={TargetShare.PARTNERSHIP: {2019: 0.6, 2020: 0.55}}
            ),
        )
        assert evaluator.target_aggregate_share == 0.55
        assert evaluator.partnership_adjustment == 0.25
        assert evaluator.partnership_adjustment_changed is False

    def test_missing_target_raises(self):
        persons = _singles()
        with pytest.raises(KeyError):
            PartnershipAlignment(
                persons,
                0.0,
                model=RecordingModel(persons, year=2030),
                behaviour=RankedBehaviour(),
                targets=_targets(),
            )

    def test_no_side_effects(self):
        persons = _singles()
        before = [p.model_dump() for p in persons]
        evaluator, calls = _stub_evaluator(persons)
        assert calls == []
        assert [p.model_dump() for p in persons] == before
        assert evaluator.persons is persons

    def test_min_age_taken_from_model(self):
        persons = _singles()
        evaluator = PartnershipAlignment(
            persons,
            0.0,
            model=RecordingModel(persons, min_age=16),
            behaviour=RankedBehaviour(),
            targets=_targets(),
        )
        assert evaluator.min_age == 16

    def test_min_age_must_match_model(self):
        persons = _singles()
        with pytest.raises(ValueError, match="min_age"):
            PartnershipAlignment(
                persons,
                0.0,
                model=RecordingModel(persons, min_age=18),
                behaviour=RankedBehaviour(),
                targets=_targets(),
                min_age=16,
            )


class TestEvaluate:
    """Tests for evaluate() with deterministic stand-in collaborators."""

    def test_example_scenario(self):
        """Ten eligible persons, target 0.6, round(x * 10) partnered."""
        evaluator, _ = _stub_evaluator(_singles(10), target=0.6)
        assert evaluator.evaluate(0.6) == pytest.approx(0.0)
        assert evaluator.evaluate(0.3) == pytest.approx(0.3)

    def test_callable_matches_evaluate(self):
        evaluator, _ = _stub_evaluator(_singles(10))
        assert evaluator(0.4) == evaluator.evaluate(0.4)

    def test_empty_population_returns_target(self):
        evaluator, _ = _stub_evaluator([], target=0.6)
        for x in (-5.0, 0.0, 0.5, 5.0):
            assert evaluator.evaluate(x) == 0.6

    def test_only_underage_returns_target(self):
        persons = _singles(6, age=16)
        evaluator, calls = _stub_evaluator(persons, target=0.45)
        for x in (0.0, 0.7, 1.0, 0.7):
            assert evaluator.evaluate(x) == 0.45
        assert not any(isinstance(c, tuple) and c[0] == "formation" for c in calls)
        assert not any(isinstance(c, tuple) and c[0] == "dissolution" for c in calls)

    def test_underage_excluded_from_share(self):
        persons = _singles(10) + _singles(4, age=15)
        for i, person in enumerate(persons[10:]):
            person.id = f"young{i}"
        evaluator, _ = _stub_evaluator(persons, target=0.6)
        assert evaluator.evaluate(0.5) == pytest.approx(0.1)

    def test_everyone_partnered(self):
        evaluator, _ = _stub_evaluator(_singles(10), target=0.6)
        assert evaluator.evaluate(1.0) == pytest.approx(-0.4)
        assert evaluator.evaluate(3.0) == pytest.approx(-0.4)

    def test_committed_partners_count_unless_dissolved(self):
        persons = _singles(10)
        for a, b in zip(persons[0::2], persons[1::2]):
            a.dcpst = b.dcpst = Dcpst.PARTNERED
            a.partner_id, b.partner_id = b.id, a.id
            a.seed = b.seed = 99  # never selected by formation

        kept, _ = _stub_evaluator(persons, target=0.6)
        assert kept.evaluate(0.0) == pytest.approx(-0.4)

        dissolved, _ = _stub_evaluator(persons, target=0.6, dissolve=True)
        assert dissolved.evaluate(0.0) == pytest.approx(0.6)

    def test_test_partner_counts_after_dissolution(self):
        persons = _singles(2)
        persons[0].dcpst = persons[1].dcpst = Dcpst.PARTNERED
        persons[0].partner_id, persons[1].partner_id = "p1", "p0"
        evaluator, _ = _stub_evaluator(persons, target=1.0, dissolve=True)
        # Both leave their union, then both are re-matched in the test pass
        assert evaluator.evaluate(1.0) == pytest.approx(0.0)

    def test_adjustment_state_after_evaluate(self):
        evaluator, _ = _stub_evaluator(_singles())
        evaluator.evaluate(0.7)
        assert evaluator.partnership_adjustment_changed is True
        assert evaluator.partnership_adjustment == 0.7
        evaluator.evaluate(-0.2)
        assert evaluator.partnership_adjustment == -0.2
        assert evaluator.partnership_adjustment_changed is True

    def test_call_order(self):
        persons = _singles(4)
        evaluator, calls = _stub_evaluator(persons)
        evaluator.evaluate(0.2)

        assert calls[0] == "clear"
        kinds = [c[0] if isinstance(c, tuple) else c for c in calls]
        last_dissolution = max(i for i, k in enumerate(kinds) if k == "dissolution")
        first_formation = min(i for i, k in enumerate(kinds) if k == "formation")
        last_formation = max(i for i, k in enumerate(kinds) if k == "formation")
        assert kinds.count("dissolution") == 4
        assert kinds.count("formation") == 4
        assert last_dissolution < first_formation
        assert calls[last_formation + 1 :] == [
            ("union_matching", True),
            ("union_matching_no_region", True),
        ]

    def test_stale_test_partners_cleared_between_calls(self):
        evaluator, _ = _stub_evaluator(_singles(10), target=0.6)
        evaluator.evaluate(1.0)
        assert evaluator.evaluate(0.2) == pytest.approx(0.4)


class TestParallelPasses:
    """Tests for the thread-pool path of the per-person passes."""

    def test_parallel_matches_sequential(self):
        sequential, _ = _stub_evaluator(_singles(10), max_workers=1)
        parallel, _ = _stub_evaluator(_singles(10), max_workers=4)
        parallel._governor = ResourceGovernor(resource_mode="manual")

        for x in (0.0, 0.3, 0.8):
            assert parallel.evaluate(x) == sequential.evaluate(x)

    def test_worker_exception_propagates(self):
        class FailingBehaviour(RankedBehaviour):
            def evaluate_formation(self, person, adjustment):
                raise RuntimeError("formation model failed")

        persons = _singles(10)
        evaluator = PartnershipAlignment(
            persons,
            0.0,
            model=RecordingModel(persons),
            behaviour=FailingBehaviour(),
            targets=_targets(),
            max_workers=4,
        )
        evaluator._governor = ResourceGovernor(resource_mode="manual")

        with pytest.raises(RuntimeError, match="formation model failed"):
            evaluator.evaluate(0.5)
        assert evaluator.partnership_adjustment_changed is False


class TestWithReferenceCollaborators:
    """Tests against PopulationModel, UnionMatcher and PartnershipBehaviour."""

    def _evaluator(self, population, target=0.8, matcher=None):
        model = PopulationModel(population, matcher=matcher)
        behaviour = PartnershipBehaviour(population.year)
        evaluator = PartnershipAlignment(
            population.persons,
            0.0,
            model=model,
            behaviour=behaviour,
            targets=_targets(target, population.year),
        )
        return evaluator, model

    def test_regional_pairs_survive_cross_region_pass(self):
        """A cross-region candidate must not displace a regional pair."""
        persons = [
            Person(id="f1", age=30, gender=Gender.FEMALE, region="a"),
            Person(id="m1", age=40, gender=Gender.MALE, region="a"),
            Person(id="m2", age=32, gender=Gender.MALE, region="b"),
            Person(id="f2", age=30, gender=Gender.FEMALE, region="c"),
        ]
        population = Population(year=2019, persons=persons)
        evaluator, _ = self._evaluator(population, target=1.0)

        assert evaluator.evaluate(10.0) == pytest.approx(0.0)
        by_id = {p.id: p for p in persons}
        assert by_id["f1"].test_partner_id == "m1"
        assert by_id["m1"].test_partner_id == "f1"
        assert by_id["f2"].test_partner_id == "m2"
        assert by_id["m2"].test_partner_id == "f2"

    def test_repeated_calls_reproduce_result(self, population):
        evaluator, _ = self._evaluator(population)
        first = evaluator.evaluate(0.2)
        evaluator.evaluate(2.0)
        evaluator.evaluate(-1.0)
        assert evaluator.evaluate(0.2) == first

    def test_committed_records_untouched(self, population):
        before = {
            p.id: (p.dcpst, p.partner_id, p.partnership_duration)
            for p in population.persons
        }
        evaluator, _ = self._evaluator(population)
        for x in (-2.0, 0.0, 2.0):
            evaluator.evaluate(x)
        after = {
            p.id: (p.dcpst, p.partner_id, p.partnership_duration)
            for p in population.persons
        }
        assert after == before

    def test_share_rises_with_adjustment(self, population):
        evaluator, _ = self._evaluator(
            population, matcher=UnionMatcher(max_age_gap=100)
        )
        errors = [evaluator.evaluate(x) for x in (-3.0, -1.0, 0.0, 1.0, 3.0)]
        assert errors == sorted(errors, reverse=True)
        assert errors[0] > 0 > errors[-1]

    def test_lowered_min_age_reaches_matching(self):
        """Persons counted as eligible can also be matched."""
        persons = [
            Person(
                id=f"y{i}",
                age=16,
                gender=Gender.FEMALE if i % 2 == 0 else Gender.MALE,
                region="north",
                seed=i,
            )
            for i in range(10)
        ]
        population = Population(year=2019, persons=persons)
        model = PopulationModel(population, min_age=16)
        evaluator = PartnershipAlignment(
            persons,
            0.0,
            model=model,
            behaviour=PartnershipBehaviour(population.year),
            targets=_targets(0.5),
        )

        assert evaluator.evaluate(50.0) == pytest.approx(-0.5)
        assert all(p.has_test_partner() for p in persons)

    def test_align_rejects_conflicting_min_age(self, population):
        model = PopulationModel(population)
        with pytest.raises(ValueError, match="min_age"):
            align_partnerships(
                model,
                model.persons,
                PartnershipBehaviour(population.year),
                _targets(0.8, population.year),
                min_age=16,
            )
