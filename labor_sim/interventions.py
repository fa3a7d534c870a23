"""
Policy interventions.

Registry of intervention types (parameterized policy levers) and the
user-managed list of intervention instances. Each type maps to a closed-form
effect function evaluated once per simulation period:

    job_effect       jobs added to employment this period
    wage_effect      percentage points added to annual real wage growth
    lfpr_effect      level shift of labor force participation (pp)
    fiscal_cost      public cost this period (negative = revenue)
    economic_impact  output supported this period (USD)

Effects of several active interventions are summed, never compounded, so
the order in which interventions were added has no bearing on results.
"""

import copy
import json
import logging
import math
import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .config import BASELINE_DEMOGRAPHICS, BASELINE_LABOR_MARKET, BASELINE_WAGES, parse_bool
from .errors import InvalidParameterError, InvalidTypeError

logger = logging.getLogger(__name__)

HOURS_PER_YEAR = 2080
MARGINAL_PROPENSITY_TO_CONSUME = 0.7
JOBS_PER_DOLLAR_OF_DEMAND = 1e-5  # one job per $100K of new spending
REFERENCE_RETRAINING_FUNDING = 10_000.0
WORK_WEEK_PHASE_IN_YEARS = 5.0
EARLY_RETIREMENT_REFILL_SHARE = 0.6
JOBS_PER_NEW_FIRM = 2.5  # Census BDS, average first-year employment
GIG_WORKFORCE_SHARE = 0.15  # independent and platform workers

_UNSET: Any = object()


class InterventionKind(str, Enum):
    UNIVERSAL_BASIC_INCOME = "universal_basic_income"
    JOB_RETRAINING = "job_retraining"
    WAGE_SUBSIDY = "wage_subsidy"
    PUBLIC_WORKS = "public_works"
    TAX_INCENTIVES = "tax_incentives"
    EDUCATION_INVESTMENT = "education_investment"
    TRANSITION_ASSISTANCE = "transition_assistance"
    REDUCED_WORK_WEEK = "reduced_work_week"
    EARLY_RETIREMENT = "early_retirement"
    ENTREPRENEURSHIP = "entrepreneurship"
    ROBOT_TAX = "robot_tax"
    JOB_GUARANTEE = "job_guarantee"
    PORTABLE_BENEFITS = "portable_benefits"


@dataclass(frozen=True)
class ParameterSpec:
    type: str  # number | select | multiselect | boolean
    default: Any
    min: Optional[float] = None
    max: Optional[float] = None
    unit: Optional[str] = None
    options: Tuple[str, ...] = ()
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        default = list(self.default) if isinstance(self.default, tuple) else self.default
        out: Dict[str, Any] = {"type": self.type, "default": default}
        if self.min is not None:
            out["min"] = self.min
        if self.max is not None:
            out["max"] = self.max
        if self.unit:
            out["unit"] = self.unit
        if self.options:
            out["options"] = list(self.options)
        if self.description:
            out["description"] = self.description
        return out


def _number(default, lo, hi, unit=None, description=""):
    return ParameterSpec("number", default, lo, hi, unit, (), description)


def _select(default, *options):
    return ParameterSpec("select", default, options=tuple(options))


def _multiselect(default, *options):
    return ParameterSpec("multiselect", tuple(default), options=tuple(options))


def _boolean(default):
    return ParameterSpec("boolean", default)


@dataclass(frozen=True)
class InterventionType:
    """Static registry entry describing one kind of policy lever."""

    type: str
    name: str
    description: str
    category: str
    parameters: Mapping[str, ParameterSpec]

    def defaults(self) -> Dict[str, Any]:
        return {
            key: list(spec.default) if spec.type == "multiselect" else spec.default
            for key, spec in self.parameters.items()
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "parameters": {k: v.to_dict() for k, v in self.parameters.items()},
        }


INTERVENTION_TYPES: Mapping[InterventionKind, InterventionType] = MappingProxyType({
    InterventionKind.UNIVERSAL_BASIC_INCOME: InterventionType(
        "universal_basic_income",
        "Universal Basic Income",
        "Monthly cash payment to all adult citizens",
        "income_support",
        {
            "monthly_amount": _number(1000, 0, 5000, "USD/month"),
            "eligibility_age": _number(18, 16, 25, "years"),
            "phase_out_threshold": _number(
                0, 0, 200_000, "USD/year", "Income level at which UBI phases out (0 = universal)"
            ),
        },
    ),
    InterventionKind.JOB_RETRAINING: InterventionType(
        "job_retraining",
        "Job Retraining Programs",
        "Funded retraining for workers displaced by automation",
        "workforce_development",
        {
            "funding_per_worker": _number(10_000, 1000, 50_000, "USD"),
            "program_duration": _number(6, 1, 24, "months"),
            "success_rate": _number(60, 0, 100, "%"),
            "eligibility": _select("displaced_only", "all_unemployed", "displaced_only", "means_tested"),
        },
    ),
    InterventionKind.WAGE_SUBSIDY: InterventionType(
        "wage_subsidy",
        "Wage Subsidies",
        "Government subsidies to employers for maintaining employment",
        "employment_support",
        {
            "subsidy_rate": _number(25, 0, 100, "% of wage"),
            "max_wage_covered": _number(50_000, 0, 150_000, "USD/year"),
            "duration": _number(12, 1, 36, "months"),
            "sector_targeting": _select(
                "high_automation_risk", "all", "high_automation_risk", "manufacturing", "retail", "transportation"
            ),
        },
    ),
    InterventionKind.PUBLIC_WORKS: InterventionType(
        "public_works",
        "Public Works Program",
        "Government as employer of last resort on infrastructure and care work",
        "employment_support",
        {
            "hourly_wage": _number(20, 15, 30, "USD/hour"),
            "eligibility": _select("all_unemployed", "all_unemployed", "long_term_only", "displaced_only"),
        },
    ),
    InterventionKind.TAX_INCENTIVES: InterventionType(
        "tax_incentives",
        "Hiring Tax Incentives",
        "Tax credits for employers that hire or retain workers",
        "taxation",
        {
            "credit_per_hire": _number(5000, 0, 20_000, "USD"),
            "targeting": _select("displaced_workers", "all_hires", "displaced_workers", "small_business"),
        },
    ),
    InterventionKind.EDUCATION_INVESTMENT: InterventionType(
        "education_investment",
        "Education & Skills Investment",
        "Subsidized education for AI-complementary skills",
        "workforce_development",
        {
            "subsidy_amount": _number(15_000, 0, 100_000, "USD/year"),
            "income_cap": _number(75_000, 0, 200_000, "USD/year"),
            "program_type": _select("bootcamp", "stem_degree", "vocational", "bootcamp", "apprenticeship"),
        },
    ),
    InterventionKind.TRANSITION_ASSISTANCE: InterventionType(
        "transition_assistance",
        "Transition Assistance",
        "Direct payments to workers displaced by automation",
        "income_support",
        {
            "replacement_rate": _number(70, 0, 100, "% of previous wage"),
            "duration": _number(24, 6, 48, "months"),
            "retraining_requirement": _boolean(True),
        },
    ),
    InterventionKind.REDUCED_WORK_WEEK: InterventionType(
        "reduced_work_week",
        "Reduced Work Week",
        "Mandate or incentivize shorter work weeks to spread employment",
        "work_sharing",
        {
            "target_hours": _number(32, 20, 40, "hours/week"),
            "wage_adjustment": _select("partial_subsidy", "full_wage", "proportional", "partial_subsidy"),
            "implementation": _select("incentive", "mandate", "incentive", "voluntary"),
        },
    ),
    InterventionKind.EARLY_RETIREMENT: InterventionType(
        "early_retirement",
        "Early Retirement Option",
        "Bridge pensions for older workers in exposed occupations",
        "safety_net",
        {
            "eligibility_age": _number(62, 55, 66, "years"),
            "benefit_rate": _number(60, 0, 100, "% of wage"),
            "uptake_rate": _number(15, 0, 100, "% of eligible"),
        },
    ),
    InterventionKind.ENTREPRENEURSHIP: InterventionType(
        "entrepreneurship",
        "Entrepreneurship Grants",
        "Seed grants for new small businesses founded by displaced workers",
        "employment_support",
        {
            "grant_amount": _number(25_000, 5000, 100_000, "USD"),
            "grants_per_year": _number(50_000, 0, 500_000, "grants/year"),
            "survival_rate": _number(50, 0, 100, "%"),
        },
    ),
    InterventionKind.ROBOT_TAX: InterventionType(
        "robot_tax",
        "Automation Tax",
        "Tax on automation labor savings to fund worker transition",
        "taxation",
        {
            "tax_rate": _number(5, 0, 50, "% of labor cost savings"),
        },
    ),
    InterventionKind.JOB_GUARANTEE: InterventionType(
        "job_guarantee",
        "Federal Job Guarantee",
        "Guaranteed public job at a set wage for anyone who wants one",
        "employment_support",
        {
            "hourly_wage": _number(20, 15, 30, "USD/hour"),
            "job_types": _multiselect(
                ("infrastructure", "caregiving"), "infrastructure", "caregiving", "environment", "community_service"
            ),
            "eligibility": _select("all_unemployed", "all_unemployed", "long_term_only", "displaced_only"),
        },
    ),
    InterventionKind.PORTABLE_BENEFITS: InterventionType(
        "portable_benefits",
        "Portable Benefits System",
        "Benefits that follow workers across jobs and gig work",
        "safety_net",
        {
            "benefit_types": _multiselect(
                ("healthcare", "retirement"), "healthcare", "retirement", "unemployment", "disability"
            ),
            "funding_model": _select("payroll_tax", "employer_mandate", "payroll_tax", "general_revenue"),
            "contribution_rate": _number(5, 0, 20, "% of earnings"),
        },
    ),
})


@dataclass(frozen=True)
class PeriodContext:
    """Labor market state an intervention sees for one period.

    `year` of None means "no calendar": activity windows are not applied.
    Handlers read `elapsed_years` as time since their own programme began;
    `calculate_effect` rebases it for interventions with a `start_year`.
    """

    year: Optional[float] = None
    elapsed_years: float = 0.0
    steps_per_year: int = 12
    population: float = BASELINE_DEMOGRAPHICS["total_population"]
    working_age_population: float = BASELINE_DEMOGRAPHICS["working_age_population"]
    total_employment: float = BASELINE_LABOR_MARKET["total_employment"]
    labor_force: float = BASELINE_LABOR_MARKET["total_employment"] / (1 - BASELINE_LABOR_MARKET["unemployment_rate"] / 100)
    average_hourly: float = BASELINE_WAGES["average_hourly"]
    displaced: float = 0.0  # AI-displaced workers this period
    created: float = 0.0

    @property
    def unemployed(self) -> float:
        return max(0.0, self.labor_force - self.total_employment)

    @property
    def annual_wage(self) -> float:
        return self.average_hourly * HOURS_PER_YEAR

    @property
    def period_share(self) -> float:
        return 1.0 / self.steps_per_year

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]] = None, **overrides) -> "PeriodContext":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in (data or {}).items() if k in known}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass
class InterventionEffect:
    job_effect: float = 0.0
    wage_effect: float = 0.0
    lfpr_effect: float = 0.0
    fiscal_cost: float = 0.0
    economic_impact: float = 0.0

    def __add__(self, other: "InterventionEffect") -> "InterventionEffect":
        return InterventionEffect(
            self.job_effect + other.job_effect,
            self.wage_effect + other.wage_effect,
            self.lfpr_effect + other.lfpr_effect,
            self.fiscal_cost + other.fiscal_cost,
            self.economic_impact + other.economic_impact,
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "job_effect": self.job_effect,
            "wage_effect": self.wage_effect,
            "lfpr_effect": self.lfpr_effect,
            "fiscal_cost": self.fiscal_cost,
            "economic_impact": self.economic_impact,
        }


@dataclass
class EffectBreakdown:
    total: InterventionEffect = field(default_factory=InterventionEffect)
    details: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_job_effect": self.total.job_effect,
            "total_wage_effect": self.total.wage_effect,
            "total_lfpr_effect": self.total.lfpr_effect,
            "total_fiscal_cost": self.total.fiscal_cost,
            "total_economic_impact": self.total.economic_impact,
            "details": self.details,
        }


@dataclass
class InterventionInstance:
    id: str
    type: str
    name: str
    category: str
    params: Dict[str, Any]
    description: str = ""
    active: bool = True
    start_year: Optional[float] = None
    end_year: Optional[float] = None

    def is_active_in(self, year: Optional[float]) -> bool:
        if not self.active:
            return False
        if year is None:
            return True
        if self.start_year is not None and year < self.start_year:
            return False
        if self.end_year is not None and year > self.end_year:
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "params": dict(self.params),
            "active": self.active,
            "start_year": self.start_year,
            "end_year": self.end_year,
        }


# ── Effect functions ────────────────────────────────────────────────


def _adult_share(eligibility_age: float) -> float:
    # ~1.3% of the population per single year of age around 18
    return min(0.85, max(0.6, BASELINE_DEMOGRAPHICS["adult_share"] + (18 - eligibility_age) * 0.013))


def _ubi_effect(params, ctx: PeriodContext) -> InterventionEffect:
    amount = params["monthly_amount"]
    threshold = params["phase_out_threshold"]
    coverage = 1.0 if threshold <= 0 else min(1.0, max(0.2, threshold / 120_000))
    recipients = ctx.population * _adult_share(params["eligibility_age"]) * coverage
    annual_cost = amount * 12 * recipients

    # Tax financing offsets most of the demand injection
    net_demand = annual_cost * MARGINAL_PROPENSITY_TO_CONSUME * 0.1
    share = ctx.period_share
    return InterventionEffect(
        job_effect=net_demand * JOBS_PER_DOLLAR_OF_DEMAND * share,
        wage_effect=0.1 * amount / 1000,  # reservation wage rises
        lfpr_effect=-0.5 * amount / 1000,  # income effect
        fiscal_cost=annual_cost * share,
        economic_impact=annual_cost * MARGINAL_PROPENSITY_TO_CONSUME * 1.2 * share,
    )


_RETRAINING_REACH = {"all_unemployed": 2.0, "displaced_only": 1.0, "means_tested": 0.6}


def _retraining_effect(params, ctx: PeriodContext) -> InterventionEffect:
    participants = ctx.displaced * _RETRAINING_REACH.get(params["eligibility"], 1.0)
    funding = max(0.0, params["funding_per_worker"])
    # Diminishing returns on spend per worker
    funding_factor = min(1.5, math.sqrt(funding / REFERENCE_RETRAINING_FUNDING))
    success = min(1.0, params["success_rate"] / 100 * funding_factor)
    retrained = participants * success
    return InterventionEffect(
        job_effect=retrained * 0.8,  # 80% of graduates find work
        wage_effect=0.05,
        lfpr_effect=0.02,
        fiscal_cost=participants * funding,
        economic_impact=retrained * ctx.annual_wage * 1.15 * ctx.period_share,
    )


_SUBSIDY_ELIGIBLE_SHARE = {
    "all": 1.0,
    "high_automation_risk": 0.15,
    "manufacturing": 0.08,
    "retail": 0.10,
    "transportation": 0.04,
}


def _wage_subsidy_effect(params, ctx: PeriodContext) -> InterventionEffect:
    if ctx.elapsed_years * 12 >= params["duration"]:
        return InterventionEffect()
    targeting = params["sector_targeting"]
    eligible = ctx.total_employment * _SUBSIDY_ELIGIBLE_SHARE.get(targeting, 0.15)
    rate = params["subsidy_rate"] / 100
    per_worker = min(ctx.annual_wage, params["max_wage_covered"]) * rate
    retention = 0.01 if targeting == "all" else 0.05
    jobs_saved = eligible * retention * rate
    share = ctx.period_share
    return InterventionEffect(
        job_effect=jobs_saved * share,
        wage_effect=-0.02,
        fiscal_cost=eligible * per_worker * share,
        economic_impact=jobs_saved * ctx.annual_wage * 0.8 * share,
    )


_PUBLIC_WORKS_TAKEUP = {"all_unemployed": 0.4, "long_term_only": 0.2, "displaced_only": 0.3}


def _public_works_effect(params, ctx: PeriodContext) -> InterventionEffect:
    participants = ctx.unemployed * _PUBLIC_WORKS_TAKEUP.get(params["eligibility"], 0.4)
    annual_wage = params["hourly_wage"] * HOURS_PER_YEAR
    share = ctx.period_share
    return InterventionEffect(
        job_effect=participants * share,
        wage_effect=0.15 * params["hourly_wage"] / 20,  # wage floor
        lfpr_effect=0.1,
        fiscal_cost=participants * annual_wage * 1.3 * share,  # incl. overhead
        economic_impact=participants * annual_wage * 0.8 * 1.5 * share,
    )


_TAX_INCENTIVE_TARGETING = {"all_hires": 1.0, "displaced_workers": 1.5, "small_business": 0.8}


def _tax_incentive_effect(params, ctx: PeriodContext) -> InterventionEffect:
    credit = params["credit_per_hire"]
    induced = ctx.labor_force * 0.002 * (credit / 5000) * _TAX_INCENTIVE_TARGETING.get(params["targeting"], 1.0)
    # Most credited hires would have happened anyway
    credited = induced * 4
    share = ctx.period_share
    return InterventionEffect(
        job_effect=induced * share,
        lfpr_effect=0.01,
        fiscal_cost=credited * credit * share,
        economic_impact=induced * ctx.annual_wage * 0.9 * share,
    )


_PROGRAM_JOB_FACTOR = {"stem_degree": 1.2, "vocational": 1.0, "bootcamp": 0.9, "apprenticeship": 1.3}


def _education_effect(params, ctx: PeriodContext) -> InterventionEffect:
    participants = ctx.working_age_population * 0.05 * min(1.0, params["income_cap"] / 100_000)
    annual_cost = participants * params["subsidy_amount"]
    future_jobs = participants * 0.001 * _PROGRAM_JOB_FACTOR.get(params["program_type"], 1.0)
    share = ctx.period_share
    return InterventionEffect(
        job_effect=future_jobs * share,
        wage_effect=0.02,
        lfpr_effect=-0.01,  # some leave the workforce to study
        fiscal_cost=annual_cost * share,
        economic_impact=(annual_cost * 0.8 + future_jobs * ctx.annual_wage * 1.2) * share,
    )


def _transition_effect(params, ctx: PeriodContext) -> InterventionEffect:
    displaced = ctx.displaced
    # Full benefit liability is booked in the period the cohort is displaced
    liability = displaced * ctx.annual_wage * params["replacement_rate"] / 100 * params["duration"] / 12
    match_rate = 0.1 * (1.5 if params["retraining_requirement"] else 1.0)
    better_matches = displaced * match_rate
    return InterventionEffect(
        job_effect=better_matches,
        wage_effect=0.05,
        lfpr_effect=0.02,
        fiscal_cost=liability,
        economic_impact=liability * 0.8 * 1.5 + better_matches * ctx.annual_wage * 0.1,
    )


_WORK_WEEK_IMPLEMENTATION = {"mandate": 1.0, "incentive": 0.4, "voluntary": 0.15}


def _work_week_effect(params, ctx: PeriodContext) -> InterventionEffect:
    reduction = max(0.0, (40 - params["target_hours"]) / 40)
    total_new = ctx.total_employment * reduction * 0.5 * _WORK_WEEK_IMPLEMENTATION.get(params["implementation"], 0.4)
    share = ctx.period_share
    subsidy = 0.25 if params["wage_adjustment"] == "partial_subsidy" else 0.0
    return InterventionEffect(
        job_effect=total_new * share / WORK_WEEK_PHASE_IN_YEARS,
        wage_effect=0.1 if params["wage_adjustment"] == "full_wage" else -0.05,
        lfpr_effect=0.05,
        fiscal_cost=total_new * ctx.annual_wage * subsidy * share,
        economic_impact=total_new * ctx.annual_wage * MARGINAL_PROPENSITY_TO_CONSUME * share,
    )


def _early_retirement_effect(params, ctx: PeriodContext) -> InterventionEffect:
    older_share = min(0.15, max(0.0, 0.012 * (67 - params["eligibility_age"])))
    retirees = ctx.total_employment * older_share * params["uptake_rate"] / 100
    # Retirements happen over the first year, then the stock is stable
    phase = min(1.0, ctx.elapsed_years + ctx.period_share)
    share = ctx.period_share
    unfilled = (1 - EARLY_RETIREMENT_REFILL_SHARE) * retirees * share if ctx.elapsed_years < 1 else 0.0
    pensions = retirees * phase * ctx.annual_wage * params["benefit_rate"] / 100 * share
    return InterventionEffect(
        job_effect=-unfilled,
        wage_effect=0.02,
        lfpr_effect=-retirees * phase / max(ctx.working_age_population, 1.0) * 100,
        fiscal_cost=pensions,
        economic_impact=pensions * 0.8,
    )


def _entrepreneurship_effect(params, ctx: PeriodContext) -> InterventionEffect:
    grants = params["grants_per_year"] * ctx.period_share
    size_factor = min(1.5, math.sqrt(max(0.0, params["grant_amount"]) / 25_000))
    jobs = grants * params["survival_rate"] / 100 * JOBS_PER_NEW_FIRM * size_factor
    return InterventionEffect(
        job_effect=jobs,
        lfpr_effect=0.01,
        fiscal_cost=grants * params["grant_amount"],
        economic_impact=jobs * ctx.annual_wage * 1.2,
    )


def _robot_tax_effect(params, ctx: PeriodContext) -> InterventionEffect:
    rate = params["tax_rate"] / 100
    revenue = ctx.displaced * ctx.annual_wage * rate
    slowed = ctx.displaced * 0.1 * rate
    return InterventionEffect(
        job_effect=slowed,
        fiscal_cost=-revenue,
        economic_impact=revenue + slowed * ctx.annual_wage * 0.5 - revenue * 0.3,
    )


def _portable_benefits_effect(params, ctx: PeriodContext) -> InterventionEffect:
    gig_workers = ctx.total_employment * GIG_WORKFORCE_SHARE
    contributions = gig_workers * ctx.annual_wage * params["contribution_rate"] / 100
    # Less job lock: some covered workers start firms or switch into better matches
    jobs = gig_workers * 0.02
    mobility_gain = gig_workers * 0.03 * ctx.annual_wage * 0.1
    share = ctx.period_share
    return InterventionEffect(
        job_effect=jobs * share,
        lfpr_effect=0.03,
        fiscal_cost=contributions * share if params["funding_model"] == "general_revenue" else 0.0,
        economic_impact=(mobility_gain + jobs * ctx.annual_wage * 1.2) * share,
    )


EFFECT_HANDLERS: Mapping[InterventionKind, Callable[[Mapping[str, Any], PeriodContext], InterventionEffect]] = MappingProxyType({
    InterventionKind.UNIVERSAL_BASIC_INCOME: _ubi_effect,
    InterventionKind.JOB_RETRAINING: _retraining_effect,
    InterventionKind.WAGE_SUBSIDY: _wage_subsidy_effect,
    InterventionKind.PUBLIC_WORKS: _public_works_effect,
    InterventionKind.TAX_INCENTIVES: _tax_incentive_effect,
    InterventionKind.EDUCATION_INVESTMENT: _education_effect,
    InterventionKind.TRANSITION_ASSISTANCE: _transition_effect,
    InterventionKind.REDUCED_WORK_WEEK: _work_week_effect,
    InterventionKind.EARLY_RETIREMENT: _early_retirement_effect,
    InterventionKind.ENTREPRENEURSHIP: _entrepreneurship_effect,
    InterventionKind.ROBOT_TAX: _robot_tax_effect,
    # Same employer-of-last-resort economics; job_types only labels the work
    InterventionKind.JOB_GUARANTEE: _public_works_effect,
    InterventionKind.PORTABLE_BENEFITS: _portable_benefits_effect,
})


def _kind(type_key: Union[str, InterventionKind]) -> InterventionKind:
    try:
        return InterventionKind(type_key)
    except ValueError:
        raise InvalidTypeError(f"Unknown intervention type: {type_key}") from None


def _program_context(intervention: InterventionInstance, context: PeriodContext) -> PeriodContext:
    """Measure elapsed time from the intervention's own start year."""
    if intervention.start_year is None or context.year is None:
        return context
    return replace(context, elapsed_years=max(0.0, context.year - intervention.start_year))


def calculate_effect(intervention: InterventionInstance, context: PeriodContext) -> InterventionEffect:
    kind = _kind(intervention.type)
    params = INTERVENTION_TYPES[kind].defaults()
    params.update(intervention.params)
    return EFFECT_HANDLERS[kind](params, _program_context(intervention, context))


def coerce_param(itype: InterventionType, key: str, value: Any) -> Any:
    """Check one parameter value against its spec, returning the stored form."""
    spec = itype.parameters[key]
    label = f"{itype.type}.{key}"
    if spec.type == "number":
        if isinstance(value, bool):
            raise InvalidParameterError(f"{label} must be a number, got {value!r}")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise InvalidParameterError(f"{label} must be a number, got {value!r}") from None
        if not math.isfinite(number):
            raise InvalidParameterError(f"{label} must be finite")
        if (spec.min is not None and number < spec.min) or (spec.max is not None and number > spec.max):
            raise InvalidParameterError(f"{label}={number:g} is outside [{spec.min:g}, {spec.max:g}]")
        return value if isinstance(value, (int, float)) else number
    if spec.type == "select":
        if value not in spec.options:
            raise InvalidParameterError(f"{label} must be one of {', '.join(spec.options)}, got {value!r}")
        return value
    if spec.type == "multiselect":
        chosen = [value] if isinstance(value, str) else value
        if not isinstance(chosen, (list, tuple)):
            raise InvalidParameterError(f"{label} must be a list of options, got {value!r}")
        chosen = list(chosen)
        unknown = [v for v in chosen if v not in spec.options]
        if unknown:
            raise InvalidParameterError(f"{label} has unknown options: {', '.join(map(str, unknown))}")
        return chosen
    try:
        return parse_bool(value)
    except ValueError:
        raise InvalidParameterError(f"{label} must be a boolean, got {value!r}") from None


def calculate_effects(interventions: Iterable[InterventionInstance], context: PeriodContext) -> EffectBreakdown:
    """Sum the effects of every intervention active in `context.year`."""
    breakdown = EffectBreakdown()
    for intervention in interventions:
        if not intervention.is_active_in(context.year):
            continue
        effect = calculate_effect(intervention, context)
        breakdown.total = breakdown.total + effect
        breakdown.details.append({
            "id": intervention.id,
            "intervention": intervention.name,
            "type": intervention.type,
            **effect.to_dict(),
        })
    return breakdown


class InterventionSystem:
    """Owns the list of interventions the user has configured."""

    def __init__(self):
        self._interventions: List[InterventionInstance] = []

    @property
    def interventions(self) -> Tuple[InterventionInstance, ...]:
        return tuple(self._interventions)

    @property
    def intervention_types(self) -> Mapping[InterventionKind, InterventionType]:
        return INTERVENTION_TYPES

    def __len__(self) -> int:
        return len(self._interventions)

    def __iter__(self):
        return iter(tuple(self._interventions))

    def get_available_types(self) -> List[InterventionType]:
        return list(INTERVENTION_TYPES.values())

    def get_type(self, type_key: Union[str, InterventionKind]) -> InterventionType:
        return INTERVENTION_TYPES[_kind(type_key)]

    def _build(self, type_key, params=None, name=None, active=True, start_year=None, end_year=None, id=None):
        itype = self.get_type(type_key)
        merged = itype.defaults()
        for key, value in (params or {}).items():
            if key in merged:
                merged[key] = coerce_param(itype, key, value)
            else:
                logger.warning("Ignoring unknown parameter '%s' for intervention %s", key, itype.type)
        return InterventionInstance(
            id=id or uuid.uuid4().hex,
            type=itype.type,
            name=name or itype.name,
            category=itype.category,
            description=itype.description,
            params=merged,
            active=active,
            start_year=start_year,
            end_year=end_year,
        )

    def add_intervention(
        self,
        type_key: Union[str, InterventionKind],
        params: Optional[Mapping[str, Any]] = None,
        *,
        name: Optional[str] = None,
        active: bool = True,
        start_year: Optional[float] = None,
        end_year: Optional[float] = None,
    ) -> InterventionInstance:
        intervention = self._build(type_key, params, name, active, start_year, end_year)
        self._interventions.append(intervention)
        logger.debug("Added intervention %s (%s)", intervention.type, intervention.id)
        return intervention

    def get(self, intervention_id: str) -> Optional[InterventionInstance]:
        for intervention in self._interventions:
            if intervention.id == intervention_id:
                return intervention
        return None

    def remove_intervention(self, intervention_id: str) -> None:
        before = len(self._interventions)
        self._interventions = [i for i in self._interventions if i.id != intervention_id]
        if len(self._interventions) < before:
            logger.debug("Removed intervention %s", intervention_id)

    def update_intervention(
        self,
        intervention_id: str,
        params: Optional[Mapping[str, Any]] = None,
        active: Optional[bool] = None,
        start_year: Any = _UNSET,
        end_year: Any = _UNSET,
    ) -> Optional[InterventionInstance]:
        intervention = self.get(intervention_id)
        if intervention is None:
            return None
        if params:
            itype = self.get_type(intervention.type)
            # Check every value before touching the instance
            accepted = {}
            for key, value in params.items():
                if key in itype.parameters:
                    accepted[key] = coerce_param(itype, key, value)
                else:
                    logger.warning("Ignoring unknown parameter '%s' for intervention %s", key, intervention.type)
            intervention.params.update(accepted)
        if active is not None:
            intervention.active = active
        if start_year is not _UNSET:
            intervention.start_year = start_year
        if end_year is not _UNSET:
            intervention.end_year = end_year
        return intervention

    def toggle(self, intervention_id: str) -> Optional[InterventionInstance]:
        intervention = self.get(intervention_id)
        if intervention is not None:
            intervention.active = not intervention.active
        return intervention

    def clear(self) -> None:
        self._interventions = []

    def replace_all(self, specs: Iterable[Union[InterventionInstance, Mapping[str, Any]]]) -> None:
        """Swap in a new list; nothing changes if any entry is invalid."""
        built: List[InterventionInstance] = []
        seen = set()
        for spec in specs:
            if isinstance(spec, InterventionInstance):
                spec = spec.to_dict()
            ident = spec.get("id")
            if ident in seen:
                ident = None
            intervention = self._build(
                spec["type"],
                spec.get("params", spec.get("parameters")),
                spec.get("name"),
                spec.get("active", True),
                spec.get("start_year"),
                spec.get("end_year"),
                id=ident,
            )
            seen.add(intervention.id)
            built.append(intervention)
        self._interventions = built

    def active_interventions(self) -> List[InterventionInstance]:
        return [i for i in self._interventions if i.active]

    def snapshot(self) -> Tuple[InterventionInstance, ...]:
        return tuple(copy.deepcopy(i) for i in self._interventions)

    def calculate_effects(self, context: PeriodContext) -> EffectBreakdown:
        return calculate_effects(self._interventions, context)

    def calculate_total_cost(
        self,
        period_context: Optional[Union[PeriodContext, Mapping[str, Any]]] = None,
        population_size: Optional[float] = None,
    ) -> float:
        """Net public cost of all active interventions for one period.

        Without a `year` in the context every active intervention counts,
        whatever its start and end years.
        """
        if isinstance(period_context, PeriodContext):
            context = period_context
            if population_size is not None:
                context = PeriodContext.from_mapping(context.__dict__, population=population_size)
        else:
            context = PeriodContext.from_mapping(period_context, population=population_size)
        total = sum(
            calculate_effect(i, context).fiscal_cost
            for i in self._interventions
            if i.is_active_in(context.year)
        )
        return max(0.0, total)

    def get_by_category(self) -> Dict[str, List[str]]:
        categories: Dict[str, List[str]] = {}
        for intervention in self._interventions:
            categories.setdefault(intervention.category, []).append(intervention.name)
        return categories

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_interventions": len(self._interventions),
            "active_interventions": len(self.active_interventions()),
            "by_category": self.get_by_category(),
            "interventions": [i.to_dict() for i in self._interventions],
        }

    def export_config(self) -> str:
        return json.dumps(
            {
                "interventions": [i.to_dict() for i in self._interventions],
                "exported_at": datetime.now(timezone.utc).isoformat(),
            },
            indent=2,
        )

    def import_config(self, config: Union[str, Mapping[str, Any]]) -> None:
        parsed = json.loads(config) if isinstance(config, str) else config
        self.replace_all(parsed.get("interventions", []))
