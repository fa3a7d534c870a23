"""Tests for scenario construction and validation."""

import json

import pytest

from labor_sim.config import AdoptionCurve, AutomationPace
from labor_sim.errors import InvalidScenarioError, InvalidTypeError
from labor_sim.scenario import build_scenario


class TestBuildScenario:
    def test_overrides_take_precedence(self):
        scenario = build_scenario({"ai_adoption_rate": 40}, ai_adoption_rate=80, start_year=2030)
        assert scenario.targets.ai_adoption_rate == 80
        assert scenario.timeframe.start_year == 2030
        assert scenario.timeframe.end_year == 2035

    def test_enums_parsed(self):
        scenario = build_scenario({"adoption_curve": "exponential", "automation_pace": "accelerating"})
        assert scenario.ai_parameters.adoption_curve is AdoptionCurve.EXPONENTIAL
        assert scenario.targets.automation_pace is AutomationPace.ACCELERATING

    def test_non_numeric_field(self):
        with pytest.raises(InvalidScenarioError, match="new_job_multiplier"):
            build_scenario({"new_job_multiplier": "lots"})

    def test_config_interventions_are_built(self):
        scenario = build_scenario({"interventions": [{"type": "wage_subsidy", "params": {"subsidy_rate": 50}}]})
        assert scenario.interventions[0].params["subsidy_rate"] == 50

    def test_config_interventions_validated(self):
        with pytest.raises(InvalidTypeError):
            build_scenario({"interventions": [{"type": "nope"}]})

    def test_omitted_interventions_stay_unset(self):
        assert build_scenario().interventions is None

    def test_total_steps(self):
        scenario = build_scenario(start_year=2025, end_year=2030, steps_per_year=4)
        assert scenario.timeframe.total_steps == 20

    def test_to_dict_is_json_ready(self):
        scenario = build_scenario({"name": "S", "interventions": [{"type": "robot_tax"}]})
        data = scenario.to_dict()
        assert json.loads(json.dumps(data)) == data
        assert data["targets"]["automation_pace"] == "moderate"

    def test_scenario_is_immutable(self):
        scenario = build_scenario()
        with pytest.raises(AttributeError):
            scenario.name = "changed"


class TestValidate:
    def test_valid_defaults(self):
        build_scenario().validate()

    def test_nan_multiplier(self):
        with pytest.raises(InvalidScenarioError):
            build_scenario(new_job_multiplier=float("nan")).validate()

    def test_negative_lag(self):
        with pytest.raises(InvalidScenarioError, match="displacement_lag"):
            build_scenario(displacement_lag=-3).validate()


class TestFieldParsing:
    @pytest.mark.parametrize("raw,expected", [("false", False), ("No", False), (0, False), ("true", True), (True, True)])
    def test_sector_variation_flag_parsed(self, raw, expected):
        assert build_scenario(sector_variation=raw).ai_parameters.sector_variation is expected

    def test_unreadable_flag(self):
        with pytest.raises(InvalidScenarioError, match="sector_variation"):
            build_scenario(sector_variation="sometimes")

    @pytest.mark.parametrize("key", ["start_year", "end_year", "steps_per_year", "displacement_lag"])
    def test_fractional_whole_number_fields_rejected(self, key):
        with pytest.raises(InvalidScenarioError, match=key):
            build_scenario({"start_year": 2025, "end_year": 2030, key: 2025.9})

    def test_integral_floats_and_strings_accepted(self):
        scenario = build_scenario(start_year=2025.0, end_year="2030")
        assert scenario.timeframe.start_year == 2025
        assert isinstance(scenario.timeframe.start_year, int)
        assert scenario.timeframe.end_year == 2030
