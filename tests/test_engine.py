"""Tests for SimulationEngine lifecycle, projection invariants and export."""

import io
import json
from datetime import datetime

import numpy as np
import pandas as pd
import pytest

from labor_sim.config import AdoptionCurve, AutomationPace
from labor_sim.engine import CSV_COLUMNS, EngineState, SimulationEngine, adoption_path
from labor_sim.errors import (
    DataUnavailableError,
    InvalidScenarioError,
    NoResultsError,
    NoScenarioConfiguredError,
)
from labor_sim.interventions import InterventionSystem

from .conftest import MINIMAL_SNAPSHOT, StaticProvider


class TestAdoptionCurves:
    @pytest.mark.parametrize("curve", list(AdoptionCurve))
    def test_endpoints(self, curve):
        path = adoption_path(curve, 60.0, 24)
        assert path[0] == pytest.approx(0.0, abs=1e-9)
        assert path[-1] == pytest.approx(60.0)
        assert len(path) == 25

    @pytest.mark.parametrize("curve", list(AdoptionCurve))
    @pytest.mark.parametrize("pace", [0.5, 1.0, 1.5, 2.0])
    def test_non_decreasing_and_bounded(self, curve, pace):
        path = adoption_path(curve, 100.0, 60, pace)
        assert np.all(np.diff(path) >= 0)
        assert path.min() >= 0 and path.max() <= 100

    def test_linear_midpoint(self):
        assert adoption_path(AdoptionCurve.LINEAR, 60.0, 10)[5] == pytest.approx(30.0)

    def test_s_curve_inflects_at_midpoint(self):
        assert adoption_path(AdoptionCurve.S_CURVE, 60.0, 10)[5] == pytest.approx(30.0)

    def test_exponential_front_loaded(self):
        assert adoption_path(AdoptionCurve.EXPONENTIAL, 60.0, 10)[5] > 30.0

    def test_floor_above_target_is_flat(self):
        path = adoption_path(AdoptionCurve.S_CURVE, 20.0, 12, floor=35.0)
        assert np.allclose(path, 20.0)


class TestLifecycle:
    def test_run_without_scenario_raises(self, provider):
        """A fresh engine refuses to run before a scenario exists."""
        engine = SimulationEngine(provider)
        with pytest.raises(NoScenarioConfiguredError, match="No scenario configured"):
            engine.run_simulation()

    def test_state_transitions(self, engine, short_config):
        assert engine.state is EngineState.UNINITIALIZED
        engine.initialize()
        assert engine.state is EngineState.INITIALIZED
        engine.create_scenario(short_config)
        assert engine.state is EngineState.SCENARIO_SET
        engine.run_simulation()
        assert engine.state is EngineState.COMPLETED

    def test_run_initializes_lazily(self, engine, short_config):
        engine.create_scenario(short_config)
        engine.run_simulation()
        assert engine.baseline is not None

    def test_scenario_defaults(self, engine):
        scenario = engine.create_scenario({"name": "X"})
        year = datetime.now().year
        assert scenario.timeframe.start_year == year
        assert scenario.timeframe.end_year == year + 5
        assert scenario.targets.automation_pace == "moderate"
        assert scenario.ai_parameters.adoption_curve == "s_curve"
        assert scenario.targets.ai_adoption_rate == 50
        assert scenario.targets.unemployment_rate is None

    def test_unknown_enum_rejected_at_creation(self, engine):
        with pytest.raises(InvalidScenarioError, match="AdoptionCurve"):
            engine.create_scenario({"adoption_curve": "zigzag"})

    @pytest.mark.parametrize(
        "overrides",
        [
            {"end_year": 2025},
            {"end_year": 2020},
            {"ai_adoption_rate": 120},
            {"target_unemployment": -1},
            {"new_job_multiplier": -0.1},
            {"gdp_growth": float("inf")},
        ],
    )
    def test_invalid_scenario_rejected_at_run(self, engine, overrides):
        engine.create_scenario({"start_year": 2025, "end_year": 2027, **overrides})
        with pytest.raises(InvalidScenarioError):
            engine.run_simulation()
        assert engine.last_run is None


class TestBaselineLoading:
    def test_missing_snapshot_raises(self):
        engine = SimulationEngine(StaticProvider(snapshot={"wages": {}}))
        with pytest.raises(DataUnavailableError):
            engine.initialize()

    def test_sector_table_from_provider(self):
        engine = SimulationEngine(StaticProvider())
        engine.initialize()
        assert set(engine.sectors) == {"manufacturing", "healthcare"}

    def test_aggregate_sector_fallback(self, short_config):
        engine = SimulationEngine(StaticProvider(sectors={}))
        engine.create_scenario(short_config)
        run = engine.run_simulation()
        assert list(run.results[0]["sectors"]) == ["all_sectors"]
        assert run.summary["total_jobs_displaced"] > 0


class TestRunInvariants:
    @pytest.mark.parametrize("curve", ["linear", "s_curve", "exponential"])
    @pytest.mark.parametrize("pace", ["slow", "fast", "accelerating"])
    def test_invariants(self, engine, curve, pace):
        engine.create_scenario({
            "start_year": 2025, "end_year": 2028, "adoption_curve": curve,
            "automation_pace": pace, "ai_adoption_rate": 90,
        })
        run = engine.run_simulation()
        results = run.results

        assert len(results) == 3 * 12 + 1
        rates = [r["ai_adoption"]["rate"] for r in results]
        displaced = [r["derived"]["cumulative_displacement"] for r in results]
        created = [r["derived"]["cumulative_new_jobs"] for r in results]
        for step in results:
            assert 0 <= step["labor_market"]["unemployment_rate"] <= 100
            assert step["labor_market"]["total_employment"] >= 0
            assert 0 <= step["ai_adoption"]["rate"] <= 100
        assert all(a <= b for a, b in zip(rates, rates[1:]))
        assert all(a <= b for a, b in zip(displaced, displaced[1:]))
        assert all(a <= b for a, b in zip(created, created[1:]))
        assert run.summary["total_jobs_displaced"] >= 0
        assert run.summary["total_jobs_created"] >= 0

    def test_quarterly_steps(self, engine):
        engine.create_scenario({"start_year": 2025, "end_year": 2027, "steps_per_year": 4})
        results = engine.run_simulation().results
        assert len(results) == 9
        assert results[1]["label"] == "Q2 2025"

    def test_anchor_step_is_baseline(self, engine, short_config):
        engine.create_scenario(short_config)
        first = engine.run_simulation().results[0]
        assert first["step"] == 0
        assert first["label"] == "Jan 2025"
        assert first["labor_market"]["unemployment_rate"] == pytest.approx(4.1)
        assert first["flows"] == {"displaced": 0, "created": 0, "net_change": 0}

    def test_no_adoption_keeps_labor_market_steady(self, engine, short_config):
        engine.create_scenario({**short_config, "ai_adoption_rate": 0})
        run = engine.run_simulation()
        assert run.summary["total_jobs_displaced"] == 0
        assert run.summary["final_unemployment_rate"] == pytest.approx(4.1)

    def test_faster_pace_displaces_more(self, engine, short_config):
        engine.create_scenario({**short_config, "automation_pace": "slow"})
        slow = engine.run_simulation().summary["total_jobs_displaced"]
        engine.create_scenario({**short_config, "automation_pace": "fast"})
        fast = engine.run_simulation().summary["total_jobs_displaced"]
        assert fast > slow

    def test_displacement_lag_defers_losses(self, engine, short_config):
        config = {**short_config, "adoption_curve": "linear"}
        engine.create_scenario(config)
        immediate = engine.run_simulation()
        engine.create_scenario({**config, "displacement_lag": 6})
        lagged = engine.run_simulation()
        assert lagged.summary["total_jobs_displaced"] < immediate.summary["total_jobs_displaced"]
        assert lagged.results[6]["derived"]["cumulative_displacement"] == 0

    def test_created_jobs_follow_multiplier(self, engine, short_config):
        engine.create_scenario({**short_config, "new_job_multiplier": 0.5})
        summary = engine.run_simulation().summary
        assert summary["total_jobs_created"] == pytest.approx(summary["total_jobs_displaced"] * 0.5, rel=1e-3)

    def test_target_unemployment_pulls_rate(self, engine, short_config):
        engine.create_scenario({**short_config, "ai_adoption_rate": 0, "target_unemployment": 8.0})
        final = engine.run_simulation().summary["final_unemployment_rate"]
        assert 4.1 < final < 8.0

    def test_uniform_exposure_without_sector_variation(self, engine, short_config):
        engine.create_scenario({**short_config, "sector_variation": False})
        sectors = engine.run_simulation().results[0]["sectors"]
        assert len({s["automation_exposure"] for s in sectors.values()}) == 1

    def test_productivity_rises_with_adoption(self, engine, short_config):
        engine.create_scenario(short_config)
        summary = engine.run_simulation().summary
        growth = summary["productivity"]["growth_rate"]
        assert growth["final"] > growth["initial"]

    def test_sector_summary_ranks_exposed_sectors_first(self, engine, short_config):
        engine.create_scenario(short_config)
        ranking = engine.run_simulation().summary["sector_summary"]
        assert len(ranking["most_affected"]) == 3
        assert ranking["most_affected"][0]["key"] == "manufacturing"

    def test_recreation_is_deterministic(self, engine, short_config):
        engine.create_scenario(short_config)
        first = engine.run_simulation()
        engine.create_scenario(short_config)
        second = engine.run_simulation()
        assert first.results == second.results
        assert first.summary == second.summary


class TestInterventionsInRun:
    def test_retraining_is_observable(self, provider, short_config):
        """An active retraining program changes the outcome."""
        plain = SimulationEngine(provider, interventions=InterventionSystem())
        plain.create_scenario(short_config)
        baseline = plain.run_simulation().summary

        system = InterventionSystem()
        system.add_intervention("job_retraining", {"funding_per_worker": 20_000})
        treated = SimulationEngine(provider, interventions=system)
        treated.create_scenario(short_config)
        summary = treated.run_simulation().summary

        assert summary["final_unemployment_rate"] < baseline["final_unemployment_rate"]
        assert summary["interventions"]["total_job_effect"] > 0
        assert summary["interventions"]["details"][0]["type"] == "job_retraining"
        assert "interventions" not in baseline

    def test_config_interventions_override_system(self, engine, interventions, short_config):
        interventions.add_intervention("universal_basic_income")
        engine.create_scenario({**short_config, "interventions": [{"type": "job_retraining"}]})
        run = engine.run_simulation()
        assert [i["type"] for i in run.scenario["interventions"]] == ["job_retraining"]

    def test_run_snapshots_interventions(self, engine, interventions, short_config):
        item = interventions.add_intervention("job_retraining")
        engine.create_scenario(short_config)
        run = engine.run_simulation()
        interventions.update_intervention(item.id, {"success_rate": 10})
        assert run.scenario["interventions"][0]["params"]["success_rate"] == 60

    def test_early_retirement_lowers_participation(self, engine, interventions, short_config):
        interventions.add_intervention("early_retirement")
        engine.create_scenario(short_config)
        results = engine.run_simulation().results
        assert results[-1]["labor_market"]["labor_force_participation"] < 62.6

    def test_intervention_window(self, engine, interventions, short_config):
        interventions.add_intervention("public_works", start_year=2026)
        engine.create_scenario(short_config)
        results = engine.run_simulation().results
        assert results[6]["interventions"]["details"] == []
        assert results[-1]["interventions"]["total_job_effect"] > 0

    def test_generous_ubi_moves_unemployment_gradually(self, engine, interventions):
        """Leaving the labor force does not empty the unemployment pool."""
        interventions.add_intervention("universal_basic_income", {"monthly_amount": 5000})
        engine.create_scenario({"start_year": 2025, "end_year": 2028, "ai_adoption_rate": 0})
        urs = [r["labor_market"]["unemployment_rate"] for r in engine.run_simulation().results]
        assert urs[1] > 2.0
        assert abs(urs[1] - urs[0]) < 1.0

    def test_default_ubi_step_change_is_small(self, engine, interventions, short_config):
        interventions.add_intervention("universal_basic_income")
        engine.create_scenario({**short_config, "ai_adoption_rate": 0})
        results = engine.run_simulation().results
        assert results[1]["labor_market"]["labor_force"] < results[0]["labor_market"]["labor_force"]
        step_change = results[1]["labor_market"]["unemployment_rate"] - results[0]["labor_market"]["unemployment_rate"]
        assert abs(step_change) < 0.2

    def test_windowed_subsidy_runs_its_full_duration(self, engine, interventions):
        interventions.add_intervention("wage_subsidy", {"duration": 12}, start_year=2026)
        engine.create_scenario({"start_year": 2025, "end_year": 2028})
        results = engine.run_simulation().results
        paid = [
            r["year"] for r in results
            if any(d["type"] == "wage_subsidy" and d["fiscal_cost"] > 0 for d in r["interventions"]["details"])
        ]
        assert len(paid) == 12
        assert paid[0] == 2026.0


class TestExport:
    def test_export_before_run_raises(self, engine):
        with pytest.raises(NoResultsError):
            engine.export_results()

    def test_json_round_trip(self, engine, interventions, short_config):
        interventions.add_intervention("universal_basic_income")
        engine.create_scenario(short_config)
        run = engine.run_simulation()
        assert json.loads(engine.export_results("json")) == run.to_dict()

    def test_load_results(self, engine, short_config):
        engine.create_scenario(short_config)
        engine.run_simulation()
        exported = engine.export_results()
        other = SimulationEngine(StaticProvider())
        loaded = other.load_results(exported)
        assert loaded.to_dict() == json.loads(exported)
        assert other.export_results() == exported

    def test_csv_export(self, engine, short_config):
        engine.create_scenario(short_config)
        run = engine.run_simulation()
        frame = pd.read_csv(io.StringIO(engine.export_results("csv")))
        assert list(frame.columns) == CSV_COLUMNS
        assert len(frame) == len(run.results)

    def test_unsupported_format(self, engine, short_config):
        engine.create_scenario(short_config)
        engine.run_simulation()
        with pytest.raises(ValueError, match="Unsupported export format"):
            engine.export_results("xml")

    def test_results_frame(self, engine, short_config):
        engine.create_scenario(short_config)
        engine.run_simulation()
        frame = engine.results_frame()
        assert len(frame) == 25
        assert "labor_market.unemployment_rate" in frame.columns
        assert "interventions.details" not in frame.columns

    def test_results_for_year(self, engine, short_config):
        engine.create_scenario(short_config)
        engine.run_simulation()
        assert len(engine.get_results_for_year(2026)) == 12
        assert len(engine.get_results_for_year(2027)) == 1


class TestMinimalBaseline:
    def test_runs_on_minimal_snapshot(self, short_config):
        engine = SimulationEngine(StaticProvider(snapshot=MINIMAL_SNAPSHOT))
        engine.create_scenario({**short_config, "automation_pace": AutomationPace.FAST})
        run = engine.run_simulation()
        assert run.results[0]["labor_market"]["unemployment_rate"] == pytest.approx(4.0)
        assert run.summary["final_unemployment_rate"] > 4.0


class TestSkillTiers:
    def test_tiers_add_up_to_employment(self, engine, short_config):
        engine.create_scenario(short_config)
        last = engine.run_simulation().results[-1]
        groups = last["skills"]["groups"]
        assert set(groups) == {"high", "mid", "low"}
        assert sum(g["share"] for g in groups.values()) == pytest.approx(1.0, abs=1e-3)
        assert sum(g["wage_share"] for g in groups.values()) == pytest.approx(1.0, abs=1e-3)
        total = sum(g["employment"] for g in groups.values())
        assert total == pytest.approx(last["labor_market"]["total_employment"], abs=3)

    def test_adoption_polarizes_employment(self, engine, short_config):
        engine.create_scenario(short_config)
        inequality = engine.run_simulation().summary["inequality"]
        assert inequality["polarization_index"]["final"] > inequality["polarization_index"]["initial"]
        assert inequality["wage_ratio_90_10"]["final"] > inequality["wage_ratio_90_10"]["initial"]
        assert 0 < inequality["gini"]["final"] < 1
