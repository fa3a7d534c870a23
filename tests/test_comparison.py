"""Tests for side-by-side scenario comparison."""

import pytest

from labor_sim.comparison import ScenarioComparison, comparison_metrics
from labor_sim.errors import ComparisonError


@pytest.fixture
def runs(engine):
    out = []
    for adoption in (30, 60, 90, 100):
        engine.create_scenario({"name": f"AI {adoption}", "start_year": 2025, "end_year": 2026,
                                "ai_adoption_rate": adoption})
        out.append(engine.run_simulation())
    return out


class TestScenarioComparison:
    def test_needs_two_runs(self, runs):
        comparison = ScenarioComparison()
        comparison.add_scenario(runs[0])
        assert comparison.get_comparison_data() is None
        comparison.add_scenario(runs[1])
        data = comparison.get_comparison_data()
        assert data["scenarios"] == ["AI 30", "AI 60"]
        assert set(data["series"]) == {"AI 30", "AI 60"}
        assert len(data["series"]["AI 60"]["unemployment_rate"]) == 13

    def test_full_comparison_rejects_more(self, runs):
        comparison = ScenarioComparison()
        for run in runs[:3]:
            comparison.add_scenario(run)
        with pytest.raises(ComparisonError, match="full"):
            comparison.add_scenario(runs[3])
        assert len(comparison) == 3

    def test_duplicate_names_rejected(self, runs):
        comparison = ScenarioComparison()
        comparison.add_scenario(runs[0], name="Same")
        with pytest.raises(ComparisonError, match="Same"):
            comparison.add_scenario(runs[1], name="Same")

    def test_remove_and_clear(self, runs):
        comparison = ScenarioComparison()
        first = comparison.add_scenario(runs[0])
        comparison.add_scenario(runs[1])
        assert comparison.remove_scenario(first.id) is True
        assert comparison.remove_scenario(first.id) is False
        assert [e.name for e in comparison.scenarios] == ["AI 60"]
        comparison.clear()
        assert len(comparison) == 0

    def test_metrics_track_adoption(self, runs):
        low, high = comparison_metrics(runs[0]), comparison_metrics(runs[2])
        assert high["jobs_displaced"] > low["jobs_displaced"]
        assert high["final_ai_adoption"] > low["final_ai_adoption"]
        assert low["interventions"] == 0
        assert 0 < low["final_gini"] < 1

    def test_to_frame(self, runs):
        comparison = ScenarioComparison()
        comparison.add_scenario(runs[0])
        comparison.add_scenario(runs[2])
        frame = comparison.to_frame()
        assert list(frame.index) == ["AI 30", "AI 90"]
        assert frame.loc["AI 90", "final_unemployment"] >= frame.loc["AI 30", "final_unemployment"]

    def test_capacity_must_allow_a_pair(self):
        with pytest.raises(ValueError):
            ScenarioComparison(max_scenarios=1)
