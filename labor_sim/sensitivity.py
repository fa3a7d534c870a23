"""
One-at-a-time sensitivity analysis.

Sweeps a single scenario input across a fixed grid of values, holding the
rest of the base config constant, and records how the run outcomes move.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import numpy as np

from .errors import InvalidParameterError

logger = logging.getLogger(__name__)

HIGH_ELASTICITY = 1.5
MEDIUM_ELASTICITY = 0.5


@dataclass(frozen=True)
class SweepParameter:
    name: str
    config_key: str
    unit: str
    base_value: Any
    values: Callable[[Mapping[str, Any]], Sequence[Any]]
    numeric: bool = True


def _start_year(config: Mapping[str, Any]) -> int:
    return int(config.get("start_year") or datetime.now().year)


PARAMETERS: Dict[str, SweepParameter] = {
    "unemployment_rate": SweepParameter(
        "Target Unemployment Rate", "target_unemployment", "%", 10,
        lambda cfg: list(range(4, 21, 2)),
    ),
    "ai_adoption": SweepParameter(
        "AI Adoption Rate", "ai_adoption_rate", "%", 70,
        lambda cfg: list(range(30, 101, 10)),
    ),
    "target_year": SweepParameter(
        "Target Year", "end_year", "", None,
        lambda cfg: [_start_year(cfg) + offset for offset in range(1, 10)],
    ),
    "new_job_multiplier": SweepParameter(
        "New Job Multiplier", "new_job_multiplier", "x", 0.3,
        lambda cfg: [0.0, 0.15, 0.3, 0.5, 0.75, 1.0],
    ),
    "automation_pace": SweepParameter(
        "Automation Pace", "automation_pace", "", "moderate",
        lambda cfg: ["slow", "moderate", "fast", "accelerating"],
        numeric=False,
    ),
}

OUTCOMES: Dict[str, Dict[str, Any]] = {
    "final_unemployment": {
        "name": "Final Unemployment Rate",
        "unit": "%",
        "extract": lambda s: s["labor_market_changes"]["unemployment_rate"]["final"],
    },
    "net_job_impact": {
        "name": "Net Job Impact",
        "unit": "millions",
        "extract": lambda s: s["ai_impact"]["net_impact"] / 1e6,
    },
    "jobs_displaced": {
        "name": "Jobs Displaced",
        "unit": "millions",
        "extract": lambda s: s["total_jobs_displaced"] / 1e6,
    },
    "jobs_created": {
        "name": "Jobs Created",
        "unit": "millions",
        "extract": lambda s: s["total_jobs_created"] / 1e6,
    },
    "productivity_growth": {
        "name": "Final Productivity Growth",
        "unit": "%",
        "extract": lambda s: s["productivity"]["growth_rate"]["final"],
    },
}


def sensitivity_level(elasticity: float) -> str:
    if elasticity >= HIGH_ELASTICITY:
        return "high"
    if elasticity >= MEDIUM_ELASTICITY:
        return "medium"
    return "low"


class SensitivityAnalysis:
    def __init__(self):
        self.parameters = PARAMETERS
        self.outcomes = OUTCOMES
        self.analysis_results: Optional[Dict[str, Any]] = None

    def _parameter(self, parameter_id: str) -> SweepParameter:
        try:
            return self.parameters[parameter_id]
        except KeyError:
            raise InvalidParameterError(
                f"Unknown sensitivity parameter '{parameter_id}' (expected one of: {', '.join(self.parameters)})"
            ) from None

    def run_analysis(
        self,
        parameter_id: str,
        engine,
        base_config: Optional[Mapping[str, Any]] = None,
        outcomes: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        param = self._parameter(parameter_id)
        base_config = dict(base_config or {})
        selected = outcomes or list(self.outcomes)
        base_value = base_config.get(param.config_key, param.base_value)
        if parameter_id == "target_year" and base_value is None:
            base_value = _start_year(base_config) + 5

        saved = (engine.scenario, engine.last_run, engine.state)
        points = []
        try:
            for value in param.values(base_config):
                config = dict(base_config)
                config[param.config_key] = value
                engine.create_scenario(config)
                run = engine.run_simulation()
                points.append({
                    "value": value,
                    "summary": run.summary,
                    "outcomes": {o: self.outcomes[o]["extract"](run.summary) for o in selected},
                })
        finally:
            engine.scenario, engine.last_run, engine.state = saved

        logger.debug("Sensitivity sweep of %s: %d points", parameter_id, len(points))
        self.analysis_results = {
            "parameter_id": parameter_id,
            "parameter": {"name": param.name, "unit": param.unit, "config_key": param.config_key},
            "base_value": base_value,
            "points": points,
        }
        return self.analysis_results

    def calculate_sensitivity(self, analysis: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """Range, mean and elasticity of each outcome across the sweep."""
        analysis = analysis or self.analysis_results
        if not analysis or len(analysis["points"]) < 2:
            return None

        param = self.parameters[analysis["parameter_id"]]
        values = [p["value"] for p in analysis["points"]]
        if param.numeric:
            param_range = float(max(values) - min(values))
            base = analysis["base_value"] or float(np.mean(values))
        else:
            # Categorical sweeps are measured in steps along the option list
            param_range = float(len(values) - 1)
            base = float(len(values) - 1) / 2 or 1.0

        metrics = {}
        for outcome_id in analysis["points"][0]["outcomes"]:
            series = np.array([p["outcomes"][outcome_id] for p in analysis["points"]], dtype=float)
            lo, hi, mean = float(series.min()), float(series.max()), float(series.mean())
            spread = hi - lo
            elasticity = 0.0
            if param_range > 0 and mean != 0 and base:
                elasticity = abs((spread / mean) / (param_range / base))
            metrics[outcome_id] = {
                "name": self.outcomes[outcome_id]["name"],
                "unit": self.outcomes[outcome_id]["unit"],
                "min": lo,
                "max": hi,
                "range": spread,
                "mean": mean,
                "elasticity": elasticity,
                "sensitivity": sensitivity_level(elasticity),
            }
        return metrics

    def generate_tornado_data(self, analyses: Mapping[str, Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """Spread of final unemployment per parameter, widest first."""
        rows = []
        for parameter_id, analysis in analyses.items():
            if not analysis or not analysis["points"]:
                continue
            finals = [p["summary"]["final_unemployment_rate"] for p in analysis["points"]]
            rows.append({
                "parameter_id": parameter_id,
                "parameter": self._parameter(parameter_id).name,
                "low": min(finals),
                "high": max(finals),
                "range": max(finals) - min(finals),
            })
        rows.sort(key=lambda r: r["range"], reverse=True)
        return rows
