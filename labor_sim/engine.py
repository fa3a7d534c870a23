"""
AI labor market projection engine.

Projects a baseline labor market forward under an AI adoption scenario,
one period at a time (monthly by default). Each period:

1. AI Adoption
   The adoption rate follows the scenario's curve (linear, s-curve or
   exponential) from the baseline level toward the target.

2. Displacement and Creation
   New adoption displaces a share of each sector's exposed jobs; a fraction
   of that comes back as new AI-enabled roles in less exposed sectors.

3. Policy Interventions
   Active interventions add jobs, shift participation and wage growth, and
   carry a fiscal cost. Their effects are summed.

4. Labor Market Balance
   Participation shifts resize the labor force without changing the
   employed share. Employment absorbs the AI flows plus convergence toward
   a target unemployment rate and an Okun's-law trend; unemployment and
   job openings follow.

5. Prices, Wages and Productivity
   Inflation from the Phillips curve; real wage growth responds to slack
   and AI wage pressure; productivity growth rises with adoption. Skill
   tiers split employment and wages, and a wage Gini tracks inequality.
"""

import json
import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

import numpy as np
import pandas as pd

from .calculations import compound_growth, okun_law, phillips_curve, safe_divide, unemployment_rate
from .config import AUTOMATION_PACE_MULTIPLIERS, AdoptionCurve, EngineParams, step_label
from .data import normalize_snapshot
from .errors import DataUnavailableError, InvalidScenarioError, NoResultsError, NoScenarioConfiguredError
from .indicators import EconomicIndicators
from .interventions import InterventionSystem, PeriodContext, calculate_effects
from .scenario import Scenario, build_scenario
from .skills import employment_by_skill, inequality_metrics

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "Year",
    "AI Adoption %",
    "Unemployment Rate %",
    "Total Employment",
    "Job Openings",
    "Avg Hourly Wage",
    "Productivity Growth %",
    "Cumulative Displaced",
    "Cumulative New Jobs",
]


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    SCENARIO_SET = "scenario_set"
    RUNNING = "running"
    COMPLETED = "completed"


# ── Adoption curves ─────────────────────────────────────────────────
# Each maps elapsed fraction f in [0, 1] to a shape in [0, 1] with
# shape(0) == 0 and shape(1) == 1.


def _sigmoid(x):
    return 1.0 / (1.0 + np.exp(-x))


def _linear_shape(f: np.ndarray, pace: float, params: EngineParams) -> np.ndarray:
    return f


def _s_curve_shape(f: np.ndarray, pace: float, params: EngineParams) -> np.ndarray:
    k = params.s_curve_steepness * pace
    lo, hi = _sigmoid(-k / 2), _sigmoid(k / 2)
    return (_sigmoid(k * (f - 0.5)) - lo) / (hi - lo)


def _exponential_shape(f: np.ndarray, pace: float, params: EngineParams) -> np.ndarray:
    k = params.exponential_rate * pace
    return (1.0 - np.exp(-k * f)) / (1.0 - np.exp(-k))


ADOPTION_CURVES: Dict[AdoptionCurve, Callable[[np.ndarray, float, EngineParams], np.ndarray]] = {
    AdoptionCurve.LINEAR: _linear_shape,
    AdoptionCurve.S_CURVE: _s_curve_shape,
    AdoptionCurve.EXPONENTIAL: _exponential_shape,
}


def adoption_path(
    curve: AdoptionCurve,
    target: float,
    total_steps: int,
    pace: float = 1.0,
    floor: float = 0.0,
    params: Optional[EngineParams] = None,
) -> np.ndarray:
    """Adoption rate (%) at steps 0..total_steps, non-decreasing and in [0, 100]."""
    params = params or EngineParams()
    floor = min(floor, target)
    f = np.linspace(0.0, 1.0, total_steps + 1)
    path = floor + (target - floor) * ADOPTION_CURVES[curve](f, pace, params)
    return np.maximum.accumulate(np.clip(path, 0.0, 100.0))


@dataclass
class SimulationRun:
    """Output of one projection: scenario, per-period timeline and summary."""

    scenario: Dict[str, Any]
    results: List[Dict[str, Any]]
    summary: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"scenario": self.scenario, "results": self.results, "summary": self.summary}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, text: str) -> "SimulationRun":
        data = json.loads(text)
        try:
            return cls(data["scenario"], data["results"], data["summary"])
        except (KeyError, TypeError) as exc:
            raise ValueError("Results JSON must contain scenario, results and summary") from exc

    def to_dataframe(self) -> pd.DataFrame:
        """One row per period with nested fields flattened to dotted columns."""
        frame = pd.json_normalize(self.results, sep=".")
        return frame.drop(columns=["interventions.details"], errors="ignore")

    def to_csv(self) -> str:
        r = self.results
        frame = pd.DataFrame({
            "Year": [s["year"] for s in r],
            "AI Adoption %": [round(s["ai_adoption"]["rate"], 1) for s in r],
            "Unemployment Rate %": [round(s["labor_market"]["unemployment_rate"], 2) for s in r],
            "Total Employment": [s["labor_market"]["total_employment"] for s in r],
            "Job Openings": [round(s["labor_market"]["job_openings"]) for s in r],
            "Avg Hourly Wage": [round(s["wages"]["average_hourly"], 2) for s in r],
            "Productivity Growth %": [round(s["productivity"]["growth_rate"], 2) for s in r],
            "Cumulative Displaced": [s["derived"]["cumulative_displacement"] for s in r],
            "Cumulative New Jobs": [s["derived"]["cumulative_new_jobs"] for s in r],
        }, columns=CSV_COLUMNS)
        return frame.to_csv(index=False)


class SimulationEngine:
    """Deterministic projection of labor market indicators under AI adoption."""

    def __init__(
        self,
        data_provider,
        indicators: Optional[EconomicIndicators] = None,
        interventions: Optional[InterventionSystem] = None,
        params: Optional[EngineParams] = None,
    ):
        self.data_provider = data_provider
        self.indicators = indicators or EconomicIndicators()
        self.intervention_system = interventions
        self.params = params or EngineParams()

        self.state = EngineState.UNINITIALIZED
        self.baseline: Optional[Dict[str, Any]] = None
        self.sectors: Dict[str, Dict[str, Any]] = {}
        self.scenario: Optional[Scenario] = None
        self.last_run: Optional[SimulationRun] = None

    @property
    def results(self) -> Optional[List[Dict[str, Any]]]:
        return self.last_run.results if self.last_run is not None else None

    # ── Lifecycle ───────────────────────────────────────────────────

    def initialize(self) -> Dict[str, Any]:
        """Load the baseline snapshot used as the period-0 anchor."""
        raw = self.data_provider.get_current_snapshot()
        if raw is None:
            raise DataUnavailableError("Data provider returned no baseline snapshot")
        snapshot = normalize_snapshot(raw)

        sectors = snapshot["sectors"]
        if not sectors:
            table = self.data_provider.get_sector_data() or {}
            sectors = normalize_snapshot({"labor_market": snapshot["labor_market"], "sectors": table})["sectors"]
        if not sectors:
            logger.warning("Baseline has no sector table; using one aggregate sector")
            sectors = {
                "all_sectors": {
                    "name": "All Sectors",
                    "employment": snapshot["labor_market"]["total_employment"],
                    "automation_exposure": self.params.aggregate_exposure,
                }
            }

        self.baseline = snapshot
        self.sectors = sectors
        self.state = EngineState.INITIALIZED if self.scenario is None else EngineState.SCENARIO_SET
        logger.debug("Engine initialized with %d sectors", len(sectors))
        return snapshot

    def create_scenario(self, config: Optional[Mapping[str, Any]] = None, **overrides) -> Scenario:
        self.scenario = build_scenario(config, **overrides)
        if self.state is not EngineState.UNINITIALIZED:
            self.state = EngineState.SCENARIO_SET
        return self.scenario

    def run_simulation(self) -> SimulationRun:
        if self.scenario is None:
            raise NoScenarioConfiguredError("No scenario configured; call create_scenario() first")
        if self.baseline is None:
            self.initialize()

        scenario = self.scenario
        scenario.validate()
        if scenario.interventions is None:
            held = self.intervention_system.snapshot() if self.intervention_system is not None else ()
            scenario = replace(scenario, interventions=held)

        logger.info(
            "Running scenario '%s' %d-%d (%d steps, %d interventions)",
            scenario.name, scenario.timeframe.start_year, scenario.timeframe.end_year,
            scenario.timeframe.total_steps, len(scenario.interventions),
        )
        self.state = EngineState.RUNNING
        try:
            results, intervention_totals = self._project(scenario)
            summary = self._summarize(scenario, results, intervention_totals)
        except Exception:
            self.state = EngineState.SCENARIO_SET
            raise

        self.last_run = SimulationRun(scenario.to_dict(), results, summary)
        self.state = EngineState.COMPLETED
        logger.info(
            "Scenario '%s' finished: unemployment %.2f%% -> %.2f%%",
            scenario.name,
            summary["labor_market_changes"]["unemployment_rate"]["initial"],
            summary["final_unemployment_rate"],
        )
        return self.last_run

    # ── Projection ──────────────────────────────────────────────────

    def _project(self, scenario: Scenario):
        p = self.params
        base = self.baseline
        tf = scenario.timeframe
        spy = tf.steps_per_year
        n = tf.total_steps
        pace = AUTOMATION_PACE_MULTIPLIERS[scenario.targets.automation_pace]
        ai = scenario.ai_parameters
        econ = scenario.economic_parameters
        interventions = scenario.interventions

        lm = base["labor_market"]
        wages = base["wages"]
        productivity = base["productivity"]
        demographics = base["demographics"]

        keys = list(self.sectors)
        names = [self.sectors[k].get("name") or k.replace("_", " ").title() for k in keys]
        sector_emp = np.array([float(self.sectors[k]["employment"]) for k in keys])
        exposure = np.array([float(self.sectors[k]["automation_exposure"]) for k in keys])
        if not ai.sector_variation:
            exposure = np.full_like(exposure, safe_divide(float((sector_emp * exposure).sum()), float(sector_emp.sum())))

        baseline_adoption = float(base["ai_indicators"].get("companies_using_ai", 0.0) or 0.0)
        adoption = adoption_path(
            ai.adoption_curve, scenario.targets.ai_adoption_rate, n, pace, baseline_adoption, p
        )
        lag_steps = int(round(ai.displacement_lag * spy / 12))

        # --- Initial conditions ---
        employment = float(lm["total_employment"])
        base_ur = float(lm["unemployment_rate"])
        base_lfpr = float(lm["labor_force_participation"])
        base_labor_force = employment / (1 - base_ur / 100)
        labor_force = base_labor_force
        ur = base_ur
        lfpr = base_lfpr
        openings = float(lm["job_openings"])
        hourly = float(wages.get("average_hourly", 0.0))
        base_wage_growth = float(wages.get("real_wage_growth", 0.0))
        output_per_hour = float(productivity.get("output_per_hour", 100.0))
        base_productivity_growth = float(productivity.get("growth_rate", 0.0))
        population = float(demographics.get("total_population", PeriodContext.population))
        working_age = float(demographics.get("working_age_population", PeriodContext.working_age_population))

        expected_inflation = econ.inflation
        rate0 = float(adoption[0])
        cum_displaced = 0.0
        cum_created = 0.0
        intervention_totals: Dict[str, Dict[str, Any]] = {}

        results = [
            self._timeline_step(
                scenario, 0, adoption, keys, names, sector_emp, exposure,
                employment=employment, labor_force=labor_force, ur=ur, lfpr=lfpr, openings=openings,
                hourly=hourly, wage_growth=base_wage_growth, output_per_hour=output_per_hour,
                productivity_growth=base_productivity_growth,
                inflation=phillips_curve(ur, p.nairu, expected_inflation, p.phillips_sensitivity),
                displaced=0.0, created=0.0, effects=None,
                cum_displaced=0.0, cum_created=0.0, working_age=working_age,
            )
        ]

        for t in range(1, n + 1):
            year = tf.start_year + t / spy

            # ============================================================
            # 1. AI ADOPTION
            # ============================================================
            rate = float(adoption[t])
            lagged = t - lag_steps
            adoption_change = float(adoption[lagged] - adoption[lagged - 1]) if lagged >= 1 else 0.0

            # ============================================================
            # 2. DISPLACEMENT AND CREATION
            # ============================================================
            displaced_by_sector = sector_emp * exposure * (adoption_change / 100) * pace * p.displacement_intensity
            displaced_by_sector = np.minimum(displaced_by_sector, sector_emp)
            displaced = float(displaced_by_sector.sum())
            created = ai.new_job_multiplier * displaced

            # New roles land where work is least exposed
            weights = sector_emp * (1 - exposure)
            if weights.sum() <= 0:
                weights = np.ones_like(sector_emp)
            created_by_sector = created * weights / weights.sum()

            # ============================================================
            # 3. POLICY INTERVENTIONS
            # ============================================================
            context = PeriodContext(
                year=year,
                elapsed_years=(t - 1) / spy,
                steps_per_year=spy,
                population=population,
                working_age_population=working_age,
                total_employment=employment,
                labor_force=labor_force,
                average_hourly=hourly,
                displaced=displaced,
                created=created,
            )
            effects = calculate_effects(interventions, context)
            for detail in effects.details:
                totals = intervention_totals.setdefault(detail["id"], {
                    "id": detail["id"],
                    "intervention": detail["intervention"],
                    "type": detail["type"],
                    "total_job_effect": 0.0,
                    "total_fiscal_cost": 0.0,
                    "total_economic_impact": 0.0,
                    "active_periods": 0,
                })
                totals["total_job_effect"] += detail["job_effect"]
                totals["total_fiscal_cost"] += detail["fiscal_cost"]
                totals["total_economic_impact"] += detail["economic_impact"]
                totals["active_periods"] += 1

            # ============================================================
            # 4. LABOR MARKET BALANCE
            # ============================================================
            lfpr = min(100.0, max(0.0, base_lfpr + effects.total.lfpr_effect))
            new_labor_force = base_labor_force * safe_divide(lfpr, base_lfpr, 1.0)

            # Entrants and leavers keep the current employed/unemployed mix
            employment += (new_labor_force - labor_force) * safe_divide(employment, labor_force, 1.0)
            labor_force = new_labor_force

            target_pull = 0.0
            if scenario.targets.unemployment_rate is not None:
                unemployed = labor_force - employment
                target_unemployed = labor_force * scenario.targets.unemployment_rate / 100
                target_pull = (unemployed - target_unemployed) * p.target_convergence / spy

            # Okun: growth above potential lowers unemployment over the year
            okun_delta = okun_law(econ.gdp_growth - p.potential_gdp_growth, econ.labor_elasticity)
            trend_jobs = -okun_delta / 100 / spy * labor_force

            employment = employment + created - displaced + target_pull + trend_jobs + effects.total.job_effect
            employment = min(labor_force, max(0.0, employment))

            previous_ur = ur
            ur = unemployment_rate(employment, labor_force)
            openings = max(p.min_job_openings, openings * (1 - (ur - previous_ur) * p.job_openings_sensitivity))

            sector_emp = np.maximum(0.0, sector_emp - displaced_by_sector + created_by_sector)

            # ============================================================
            # 5. PRICES, WAGES AND PRODUCTIVITY
            # ============================================================
            inflation = phillips_curve(ur, p.nairu, expected_inflation, p.phillips_sensitivity)
            wage_growth = (
                base_wage_growth
                + (inflation - expected_inflation) * p.wage_slack_pass_through
                - (rate - rate0) * p.wage_pressure_per_adoption_point
                + effects.total.wage_effect
            )
            productivity_growth = base_productivity_growth + (rate - rate0) * p.productivity_per_adoption_point
            hourly = compound_growth(hourly, wage_growth / 100 / spy, 1)
            output_per_hour = compound_growth(output_per_hour, productivity_growth / 100 / spy, 1)

            cum_displaced += displaced
            cum_created += created

            state = (employment, labor_force, ur, openings, inflation, wage_growth, hourly,
                     output_per_hour, displaced, created, effects.total.fiscal_cost,
                     effects.total.economic_impact, effects.total.job_effect)
            if not all(math.isfinite(v) for v in state):
                raise InvalidScenarioError(f"Projection produced a non-finite value at step {t}")

            results.append(
                self._timeline_step(
                    scenario, t, adoption, keys, names, sector_emp, exposure,
                    employment=employment, labor_force=labor_force, ur=ur, lfpr=lfpr, openings=openings,
                    hourly=hourly, wage_growth=wage_growth, output_per_hour=output_per_hour,
                    productivity_growth=productivity_growth, inflation=inflation,
                    displaced=displaced, created=created, effects=effects,
                    cum_displaced=cum_displaced, cum_created=cum_created, working_age=working_age,
                )
            )

        return results, intervention_totals

    def _timeline_step(self, scenario, t, adoption, keys, names, sector_emp, exposure, *,
                       employment, labor_force, ur, lfpr, openings, hourly, wage_growth,
                       output_per_hour, productivity_growth, inflation, displaced, created,
                       effects, cum_displaced, cum_created, working_age) -> Dict[str, Any]:
        tf = scenario.timeframe
        econ = scenario.economic_parameters
        unemployed = labor_force - employment

        if effects is None:
            intervention_block = {
                "total_job_effect": 0.0,
                "total_wage_effect": 0.0,
                "total_lfpr_effect": 0.0,
                "total_fiscal_cost": 0.0,
                "total_economic_impact": 0.0,
                "details": [],
            }
        else:
            intervention_block = effects.to_dict()
            intervention_block["details"] = [
                {k: v for k, v in d.items() if k != "id"} for d in effects.details
            ]

        by_skill = employment_by_skill(employment, float(adoption[t]), productivity_growth / 100)
        skills = {
            "groups": {
                key: {
                    "name": group["name"],
                    "employment": int(round(group["employment"])),
                    "share": round(group["share"], 4),
                    "average_hourly": round(group["average_hourly"], 4),
                    "wage_share": round(group["wage_share"], 4),
                }
                for key, group in by_skill.items()
            },
            "inequality": {k: round(v, 4) for k, v in inequality_metrics(by_skill).items()},
        }

        return {
            "step": t,
            "year": round(tf.start_year + t / tf.steps_per_year, 2),
            "label": step_label(t, tf.start_year, tf.steps_per_year),
            "progress": round(t / tf.total_steps * 100, 2),
            "labor_market": {
                "unemployment_rate": round(ur, 4),
                "total_employment": int(round(employment)),
                "labor_force": int(round(labor_force)),
                "labor_force_participation": round(lfpr, 3),
                "job_openings": int(round(openings)),
            },
            "ai_adoption": {
                "rate": round(float(adoption[t]), 3),
                "change_from_baseline": round(float(adoption[t] - adoption[0]), 3),
                "curve_type": scenario.ai_parameters.adoption_curve.value,
            },
            "wages": {
                "average_hourly": round(hourly, 4),
                "real_wage_growth": round(wage_growth, 4),
            },
            "productivity": {
                "output_per_hour": round(output_per_hour, 4),
                "growth_rate": round(productivity_growth, 4),
            },
            "economy": {
                "inflation": round(inflation, 4),
                "output_gap": round(safe_divide(ur - self.params.nairu, econ.labor_elasticity), 4),
            },
            "sectors": {
                key: {
                    "name": name,
                    "employment": int(round(float(emp))),
                    "automation_exposure": round(float(exp), 4),
                }
                for key, name, emp, exp in zip(keys, names, sector_emp, exposure)
            },
            "flows": {
                "displaced": int(round(displaced)),
                "created": int(round(created)),
                "net_change": int(round(created - displaced)),
            },
            "skills": skills,
            "interventions": intervention_block,
            "derived": {
                "cumulative_displacement": int(round(cum_displaced)),
                "cumulative_new_jobs": int(round(cum_created)),
                "net_ai_job_impact": int(round(cum_created - cum_displaced)),
                "employment_to_population": round(safe_divide(employment, working_age) * 100, 3),
                "jobs_per_unemployed": round(safe_divide(openings, unemployed), 4),
            },
        }

    # ── Summary ─────────────────────────────────────────────────────

    def _summarize(self, scenario: Scenario, results, intervention_totals) -> Dict[str, Any]:
        first, last = results[0], results[-1]
        tf = scenario.timeframe

        def change(section, key):
            initial, final = first[section][key], last[section][key]
            return {"initial": initial, "final": final, "change": final - initial}

        hourly_0 = first["wages"]["average_hourly"]
        hourly_1 = last["wages"]["average_hourly"]

        summary = {
            "scenario_name": scenario.name,
            "timeframe": {
                "start_year": tf.start_year,
                "end_year": tf.end_year,
                "steps_per_year": tf.steps_per_year,
                "total_steps": tf.total_steps,
            },
            "final_unemployment_rate": last["labor_market"]["unemployment_rate"],
            "total_jobs_displaced": last["derived"]["cumulative_displacement"],
            "total_jobs_created": last["derived"]["cumulative_new_jobs"],
            "labor_market_changes": {
                key: change("labor_market", key)
                for key in ("unemployment_rate", "total_employment", "job_openings", "labor_force_participation")
            },
            "ai_impact": {
                "initial_adoption": first["ai_adoption"]["rate"],
                "final_adoption": last["ai_adoption"]["rate"],
                "cumulative_displacement": last["derived"]["cumulative_displacement"],
                "cumulative_new_jobs": last["derived"]["cumulative_new_jobs"],
                "net_impact": last["derived"]["net_ai_job_impact"],
            },
            "wages": {
                "average_hourly": {
                    "initial": hourly_0,
                    "final": hourly_1,
                    "change_percent": round(safe_divide(hourly_1 - hourly_0, hourly_0) * 100, 3),
                },
            },
            "productivity": {
                "growth_rate": {
                    "initial": first["productivity"]["growth_rate"],
                    "final": last["productivity"]["growth_rate"],
                },
            },
            "sector_summary": self._sector_summary(first["sectors"], last["sectors"]),
            "inequality": {
                key: {"initial": first["skills"]["inequality"][key], "final": last["skills"]["inequality"][key]}
                for key in ("gini", "wage_ratio_90_10", "polarization_index")
            },
        }

        if any(i.active for i in scenario.interventions):
            periods = max(1, len(results) - 1)
            totals = {
                key: sum(step["interventions"][key] for step in results)
                for key in ("total_job_effect", "total_wage_effect", "total_fiscal_cost", "total_economic_impact")
            }
            summary["interventions"] = {
                **totals,
                "per_period_averages": {key: value / periods for key, value in totals.items()},
                "details": list(intervention_totals.values()),
            }
        return summary

    @staticmethod
    def _sector_summary(initial, final, count: int = 3) -> Dict[str, List[Dict[str, Any]]]:
        rows = []
        for key, start in initial.items():
            end = final[key]
            delta = end["employment"] - start["employment"]
            rows.append({
                "key": key,
                "name": start["name"],
                "initial": start["employment"],
                "final": end["employment"],
                "change": delta,
                "change_percent": round(safe_divide(delta, start["employment"]) * 100, 3),
            })
        rows.sort(key=lambda r: r["change_percent"])
        return {
            "most_affected": rows[:count],
            "least_affected": list(reversed(rows[-count:])),
        }

    # ── Results access ──────────────────────────────────────────────

    def _require_results(self) -> SimulationRun:
        if self.last_run is None:
            raise NoResultsError("No simulation results; call run_simulation() first")
        return self.last_run

    def export_results(self, format: str = "json") -> str:
        run = self._require_results()
        if format == "json":
            return run.to_json()
        if format == "csv":
            return run.to_csv()
        raise ValueError(f"Unsupported export format: {format}")

    def load_results(self, text: str) -> SimulationRun:
        """Restore a previously exported JSON run as the engine's last run."""
        self.last_run = SimulationRun.from_json(text)
        return self.last_run

    def results_frame(self) -> pd.DataFrame:
        return self._require_results().to_dataframe()

    def get_results_for_year(self, year: int) -> List[Dict[str, Any]]:
        return [step for step in self._require_results().results if math.floor(step["year"]) == year]
