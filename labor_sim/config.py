"""
Configuration for the AI Labor Market Simulator.

Defines the baseline US labor market snapshot, economic sectors with their
automation exposure, engine calibration parameters, and scenario presets.
Baseline figures approximate BLS/FRED releases from late 2024.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class AdoptionCurve(str, Enum):
    LINEAR = "linear"
    S_CURVE = "s_curve"
    EXPONENTIAL = "exponential"


class AutomationPace(str, Enum):
    SLOW = "slow"
    MODERATE = "moderate"
    FAST = "fast"
    ACCELERATING = "accelerating"


# Scales the steepness of the adoption curve and the displacement intensity
AUTOMATION_PACE_MULTIPLIERS: Dict[AutomationPace, float] = {
    AutomationPace.SLOW: 0.5,
    AutomationPace.MODERATE: 1.0,
    AutomationPace.FAST: 1.5,
    AutomationPace.ACCELERATING: 2.0,
}


@dataclass
class SectorConfig:
    """An economic sector with employment and automation exposure."""

    key: str
    name: str
    employment: int
    automation_exposure: float  # 0-1, fraction of tasks susceptible to AI
    median_wage: float = 0.0  # USD/year

    @property
    def at_risk_jobs(self) -> int:
        return round(self.employment * self.automation_exposure)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "employment": self.employment,
            "automation_exposure": self.automation_exposure,
            "median_wage": self.median_wage,
        }


# Ten supersectors from the BLS Current Employment Statistics (~141M payroll jobs).
# Exposure scores follow task-based estimates (Eloundou et al. 2023, McKinsey 2023).
DEFAULT_SECTORS: List[SectorConfig] = [
    SectorConfig("manufacturing", "Manufacturing", 12_900_000, 0.60, 62_000),
    SectorConfig("retail_trade", "Retail Trade", 15_600_000, 0.55, 36_000),
    SectorConfig("healthcare", "Healthcare & Social Assistance", 22_500_000, 0.25, 58_000),
    SectorConfig("information", "Information & Technology", 3_000_000, 0.45, 105_000),
    SectorConfig("finance", "Finance & Insurance", 9_200_000, 0.50, 88_000),
    SectorConfig("transportation", "Transportation & Warehousing", 6_600_000, 0.55, 52_000),
    SectorConfig("construction", "Construction", 8_200_000, 0.25, 60_000),
    SectorConfig("professional_services", "Professional & Business Services", 22_900_000, 0.45, 80_000),
    SectorConfig("leisure_hospitality", "Leisure & Hospitality", 16_900_000, 0.35, 32_000),
    SectorConfig("government", "Government", 23_200_000, 0.20, 64_000),
]


# BLS household survey, Oct 2024
BASELINE_LABOR_MARKET: Dict[str, float] = {
    "total_employment": 161_400_000,
    "unemployment_rate": 4.1,
    "labor_force_participation": 62.6,
    "job_openings": 7_700_000,  # JOLTS
}

BASELINE_WAGES: Dict[str, float] = {
    "average_hourly": 35.46,  # CES average hourly earnings, private
    "median_weekly": 1_165.0,
    "real_wage_growth": 1.2,  # % year over year
}

BASELINE_PRODUCTIVITY: Dict[str, float] = {
    "growth_rate": 2.0,  # % nonfarm business output per hour
    "output_per_hour": 116.5,  # index, 2017=100
}

BASELINE_AI_INDICATORS: Dict[str, float] = {
    "companies_using_ai": 0.0,  # % of firms; 0 anchors adoption curves at the origin
    "ai_job_postings_share": 1.8,
}

BASELINE_DEMOGRAPHICS: Dict[str, float] = {
    "total_population": 335_000_000,  # Census 2024
    "working_age_population": 268_000_000,  # civilian noninstitutional 16+
    "adult_share": 0.78,  # share of population 18+
}


@dataclass(frozen=True)
class SkillGroup:
    """A skill tier of the workforce and how AI interacts with its tasks."""

    name: str
    share_of_workforce: float
    average_hourly: float  # USD
    complementarity: float  # 0-1, how much AI augments the group's work
    substitutability: float  # 0-1, how much of the work AI can take over
    wage_elasticity: float  # wage response to the net AI effect
    employment_response: float  # employment change per 100pp of adoption
    substitution_cost: float  # wage drag per unit of substitutability


# Skill-biased technical change tiers (Acemoglu & Autor 2011 polarization pattern)
SKILL_GROUPS: Dict[str, SkillGroup] = {
    "high": SkillGroup("High-Skill", 0.30, 45.0, 0.7, 0.2, 0.3, 0.02, 0.01),
    "mid": SkillGroup("Mid-Skill", 0.40, 25.0, 0.3, 0.6, 0.5, -0.03, 0.015),
    "low": SkillGroup("Low-Skill", 0.30, 15.0, 0.2, 0.4, 0.6, -0.01, 0.01),
}


@dataclass
class EngineParams:
    """Calibration constants for the projection engine."""

    steps_per_year: int = 12  # monthly stepping

    # --- Adoption curves ---
    s_curve_steepness: float = 10.0  # logistic slope at moderate pace
    exponential_rate: float = 3.0  # k in 1 - e^(-k f) at moderate pace

    # --- Labor flows ---
    # Fraction of exposed jobs displaced per 100pp of adoption, before pace scaling
    displacement_intensity: float = 0.1
    # Yearly fraction of the unemployment gap closed when a target is set
    target_convergence: float = 0.5

    # --- Macro relationships ---
    potential_gdp_growth: float = 2.0  # CBO long-run estimate
    nairu: float = 4.4  # CBO noncyclical rate, 2024
    phillips_sensitivity: float = -0.5
    wage_slack_pass_through: float = 0.5  # share of inflation pressure reaching real wages
    wage_pressure_per_adoption_point: float = 0.01
    productivity_per_adoption_point: float = 0.02
    job_openings_sensitivity: float = 0.05  # openings change per pp of unemployment change
    min_job_openings: float = 1_000_000.0

    # Exposure used when the baseline carries no sector table
    aggregate_exposure: float = 0.4


DEFAULT_PARAMS = EngineParams()


# Named scenario presets: engine config plus interventions to add
SCENARIO_PRESETS: Dict[str, Dict[str, Any]] = {
    "Baseline": {
        "name": "Baseline",
        "ai_adoption_rate": 50,
        "automation_pace": "moderate",
        "adoption_curve": "s_curve",
        "interventions": [],
    },
    "Slow Adoption": {
        "name": "Slow Adoption",
        "ai_adoption_rate": 35,
        "automation_pace": "slow",
        "adoption_curve": "linear",
        "new_job_multiplier": 0.4,
        "interventions": [],
    },
    "Rapid Disruption": {
        "name": "Rapid Disruption",
        "ai_adoption_rate": 85,
        "automation_pace": "fast",
        "adoption_curve": "exponential",
        "new_job_multiplier": 0.2,
        "interventions": [],
    },
    "Aggressive Policy Response": {
        "name": "Aggressive Policy Response",
        "ai_adoption_rate": 70,
        "automation_pace": "fast",
        "adoption_curve": "s_curve",
        "interventions": [
            {"type": "universal_basic_income", "params": {"monthly_amount": 1000}},
            {"type": "job_retraining", "params": {"funding_per_worker": 20_000}},
            {"type": "transition_assistance"},
        ],
    },
    "Soft Landing": {
        "name": "Soft Landing",
        "ai_adoption_rate": 60,
        "automation_pace": "moderate",
        "adoption_curve": "s_curve",
        "new_job_multiplier": 0.5,
        "target_unemployment": 4.5,
        "interventions": [
            {"type": "job_retraining"},
            {"type": "education_investment"},
            {"type": "entrepreneurship"},
        ],
    },
}


_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def step_label(step: int, start_year: int, steps_per_year: int = 12) -> str:
    """Label for one step, e.g. 'Mar 2027', 'Q2 2027' or '2027'."""
    year = start_year + step // steps_per_year
    sub = step % steps_per_year
    if steps_per_year == 12:
        return f"{_MONTHS[sub]} {year}"
    if steps_per_year == 4:
        return f"Q{sub + 1} {year}"
    if steps_per_year == 1:
        return str(year)
    return f"{year}.{sub + 1}"


def step_labels(total_steps: int, start_year: int, steps_per_year: int = 12) -> List[str]:
    """Generate labels for steps 0..total_steps inclusive."""
    return [step_label(s, start_year, steps_per_year) for s in range(total_steps + 1)]


def baseline_snapshot(sectors: Optional[List[SectorConfig]] = None) -> Dict[str, Any]:
    """Assemble the default snapshot in the data provider's shape."""
    sectors = DEFAULT_SECTORS if sectors is None else sectors
    lm = dict(BASELINE_LABOR_MARKET)
    ur = lm["unemployment_rate"]
    lm["unemployed_count"] = round(lm["total_employment"] * (ur / 100) / (1 - ur / 100))
    return {
        "data_source": "baseline",
        "labor_market": lm,
        "wages": dict(BASELINE_WAGES),
        "productivity": dict(BASELINE_PRODUCTIVITY),
        "sectors": {s.key: s.to_dict() for s in sectors},
        "ai_indicators": dict(BASELINE_AI_INDICATORS),
        "demographics": dict(BASELINE_DEMOGRAPHICS),
    }


_TRUE_WORDS = {"true", "yes", "on", "1"}
_FALSE_WORDS = {"false", "no", "off", "0"}


def parse_bool(value: Any) -> bool:
    """Read a config flag. Accepts bools, 0/1 and yes/no style strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ValueError(f"Expected a boolean, got {value!r}")
