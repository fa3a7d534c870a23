"""Tests for the baseline data provider and static configuration."""

import json

import pytest

from labor_sim.config import DEFAULT_SECTORS, SCENARIO_PRESETS, baseline_snapshot, step_label, step_labels
from labor_sim.data import BaselineDataProvider, normalize_snapshot
from labor_sim.errors import DataUnavailableError
from labor_sim.scenario import build_scenario


class TestNormalizeSnapshot:
    def test_unwraps_value_records_and_aliases(self):
        raw = baseline_snapshot()
        raw["labor_market"]["unemployment_rate"] = {"value": 4.3, "source": "BLS"}
        raw["wages"] = {"average_hourly_earnings": {"value": 36.0}}
        raw["productivity"] = {"labor_productivity_growth": 2.4}
        snapshot = normalize_snapshot(raw)
        assert snapshot["labor_market"]["unemployment_rate"] == 4.3
        assert snapshot["wages"]["average_hourly"] == 36.0
        assert snapshot["productivity"]["growth_rate"] == 2.4

    def test_missing_labor_market(self):
        with pytest.raises(DataUnavailableError, match="labor_market"):
            normalize_snapshot({"wages": {}})

    def test_missing_field(self):
        raw = baseline_snapshot()
        del raw["labor_market"]["job_openings"]
        with pytest.raises(DataUnavailableError, match="job_openings"):
            normalize_snapshot(raw)

    @pytest.mark.parametrize(
        "section,key,value",
        [
            ("labor_market", "total_employment", 0),
            ("labor_market", "unemployment_rate", 100),
        ],
    )
    def test_out_of_range(self, section, key, value):
        raw = baseline_snapshot()
        raw[section][key] = value
        with pytest.raises(DataUnavailableError):
            normalize_snapshot(raw)

    def test_bad_sector(self):
        raw = baseline_snapshot()
        raw["sectors"]["manufacturing"]["automation_exposure"] = 1.5
        with pytest.raises(DataUnavailableError, match="manufacturing"):
            normalize_snapshot(raw)

    def test_not_a_mapping(self):
        with pytest.raises(DataUnavailableError):
            normalize_snapshot(None)


class TestBaselineDataProvider:
    def test_defaults(self):
        provider = BaselineDataProvider()
        snapshot = provider.get_current_snapshot()
        assert snapshot["data_source"] == "baseline"
        assert len(provider.get_sector_data()) == len(DEFAULT_SECTORS)

    def test_returns_copies(self):
        provider = BaselineDataProvider()
        provider.get_sector_data()["manufacturing"]["employment"] = 0
        assert provider.get_sector_data()["manufacturing"]["employment"] == 12_900_000

    def test_reads_json_file(self, tmp_path):
        path = tmp_path / "baseline.json"
        raw = baseline_snapshot()
        raw["labor_market"]["unemployment_rate"] = {"value": 5.0}
        path.write_text(json.dumps(raw), encoding="utf-8")
        provider = BaselineDataProvider(path)
        assert provider.get_current_snapshot()["labor_market"]["unemployment_rate"] == 5.0

    def test_missing_file(self, tmp_path):
        provider = BaselineDataProvider(tmp_path / "missing.json")
        with pytest.raises(DataUnavailableError, match="Could not read"):
            provider.get_current_snapshot()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DataUnavailableError):
            BaselineDataProvider(path).get_sector_data()


class TestConfig:
    def test_step_labels(self):
        assert step_label(0, 2026) == "Jan 2026"
        assert step_label(13, 2026) == "Feb 2027"
        assert step_label(5, 2026, 4) == "Q2 2027"
        assert step_label(3, 2026, 1) == "2029"
        assert len(step_labels(24, 2026)) == 25

    def test_baseline_unemployed_count(self):
        lm = baseline_snapshot()["labor_market"]
        labor_force = lm["total_employment"] + lm["unemployed_count"]
        assert lm["unemployed_count"] / labor_force * 100 == pytest.approx(4.1, abs=0.01)

    @pytest.mark.parametrize("name", list(SCENARIO_PRESETS))
    def test_presets_build_valid_scenarios(self, name):
        scenario = build_scenario(SCENARIO_PRESETS[name])
        scenario.validate()
        assert len(scenario.interventions) == len(SCENARIO_PRESETS[name]["interventions"])
