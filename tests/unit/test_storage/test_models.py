"""Tests for storage dataclasses and averaging."""

from hypothesis import given
from hypothesis import strategies as st

from coopengine.storage.base import (
    LeaderboardEntry,
    Outcomes,
    PromptStep,
    Session,
    blend_average,
)


class TestBlendAverage:
    def test_first_value_taken_outright(self):
        assert blend_average(None, 70) == 70
        assert blend_average(0, 70) == 70

    def test_half_rounds_up(self):
        assert blend_average(3, 4) == 4
        assert blend_average(80, 60) == 70

    @given(st.integers(min_value=1, max_value=10_000), st.integers(min_value=0, max_value=10_000))
    def test_result_between_inputs(self, old, new):
        result = blend_average(old, new)
        assert min(old, new) <= result <= max(old, new)


class TestOutcomes:
    def test_to_dict_omits_missing(self):
        assert Outcomes(water_security=5, population_10yr=100).to_dict() == {
            "waterSecurity": 5,
            "population10yr": 100,
        }

    def test_from_dict(self):
        outcomes = Outcomes.from_dict({"foodSecurity": 9, "population50yr": 3})
        assert outcomes.food_security == 9
        assert outcomes.population_50yr == 3
        assert outcomes.water_security is None

    def test_is_empty(self):
        assert Outcomes().is_empty()
        assert not Outcomes(self_sustaining=0).is_empty()

    def test_apply_only_touches_provided_metrics(self):
        entry = LeaderboardEntry(template_id="t", candidate_number=1, candidate_name="A", avg_food_security=50)
        entry.apply(Outcomes(water_security=10))
        assert entry.avg_water_security == 10
        assert entry.avg_food_security == 50


class TestSession:
    def test_sorted_prompts(self):
        session = Session(
            title="t",
            prompts=[
                PromptStep(id="b", order=1, role="user", content="2"),
                PromptStep(id="a", order=0, role="user", content="1"),
            ],
        )
        assert [p.id for p in session.sorted_prompts()] == ["a", "b"]

    def test_to_dict_camel_case(self):
        data = Session(title="t", prompts=[]).to_dict()
        assert set(data) == {"id", "title", "prompts", "createdAt"}
        assert data["createdAt"].endswith("Z")
