"""
Scenario definition.

A scenario is the immutable input to one projection run. `build_scenario`
turns a flat config dict (the shape presets and callers use) into a
`Scenario`, filling every omitted field with its default. Range checks
happen in `Scenario.validate`, which the engine calls before running.
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from .config import AdoptionCurve, AutomationPace, parse_bool
from .errors import InvalidScenarioError
from .interventions import InterventionInstance, InterventionSystem

DEFAULT_HORIZON_YEARS = 5


@dataclass(frozen=True)
class Timeframe:
    start_year: int
    end_year: int
    steps_per_year: int = 12

    @property
    def duration(self) -> int:
        return self.end_year - self.start_year

    @property
    def total_steps(self) -> int:
        return self.duration * self.steps_per_year


@dataclass(frozen=True)
class Targets:
    unemployment_rate: Optional[float] = None
    ai_adoption_rate: float = 50.0
    automation_pace: AutomationPace = AutomationPace.MODERATE


@dataclass(frozen=True)
class AIParameters:
    adoption_curve: AdoptionCurve = AdoptionCurve.S_CURVE
    new_job_multiplier: float = 0.3  # new roles per displaced job
    sector_variation: bool = True
    displacement_lag: int = 0  # months between adoption and job loss


@dataclass(frozen=True)
class EconomicParameters:
    gdp_growth: float = 2.0
    inflation: float = 2.5
    interest_rate: float = 4.0
    labor_elasticity: float = -0.5  # Okun coefficient


@dataclass(frozen=True)
class Scenario:
    name: str
    timeframe: Timeframe
    targets: Targets = field(default_factory=Targets)
    ai_parameters: AIParameters = field(default_factory=AIParameters)
    economic_parameters: EconomicParameters = field(default_factory=EconomicParameters)
    # None means "use whatever the intervention system holds at run time"
    interventions: Optional[Tuple[InterventionInstance, ...]] = None
    description: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def validate(self) -> None:
        tf = self.timeframe
        if tf.end_year <= tf.start_year:
            raise InvalidScenarioError(
                f"end_year ({tf.end_year}) must be after start_year ({tf.start_year})"
            )
        if tf.steps_per_year < 1:
            raise InvalidScenarioError("steps_per_year must be at least 1")

        target_u = self.targets.unemployment_rate
        if target_u is not None and not 0 <= target_u <= 100:
            raise InvalidScenarioError(f"Target unemployment rate {target_u} is outside [0, 100]")
        if not 0 <= self.targets.ai_adoption_rate <= 100:
            raise InvalidScenarioError(
                f"Target AI adoption rate {self.targets.ai_adoption_rate} is outside [0, 100]"
            )
        multiplier = self.ai_parameters.new_job_multiplier
        if not (math.isfinite(multiplier) and multiplier >= 0):
            raise InvalidScenarioError("new_job_multiplier must be a non-negative number")
        if self.ai_parameters.displacement_lag < 0:
            raise InvalidScenarioError("displacement_lag must be non-negative")

        econ = self.economic_parameters
        for key in ("gdp_growth", "inflation", "interest_rate", "labor_elasticity"):
            if not math.isfinite(getattr(econ, key)):
                raise InvalidScenarioError(f"Economic parameter {key} must be finite")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created": self.created,
            "timeframe": {
                "start_year": self.timeframe.start_year,
                "end_year": self.timeframe.end_year,
                "steps_per_year": self.timeframe.steps_per_year,
            },
            "targets": {
                "unemployment_rate": self.targets.unemployment_rate,
                "ai_adoption_rate": self.targets.ai_adoption_rate,
                "automation_pace": self.targets.automation_pace.value,
            },
            "ai_parameters": {
                "adoption_curve": self.ai_parameters.adoption_curve.value,
                "new_job_multiplier": self.ai_parameters.new_job_multiplier,
                "sector_variation": self.ai_parameters.sector_variation,
                "displacement_lag": self.ai_parameters.displacement_lag,
            },
            "economic_parameters": {
                "gdp_growth": self.economic_parameters.gdp_growth,
                "inflation": self.economic_parameters.inflation,
                "interest_rate": self.economic_parameters.interest_rate,
                "labor_elasticity": self.economic_parameters.labor_elasticity,
            },
            "interventions": [i.to_dict() for i in (self.interventions or ())],
        }


def _enum(enum_cls, value, default):
    if value is None:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidScenarioError(f"Invalid {enum_cls.__name__} '{value}' (expected one of: {allowed})") from None


def _number(config, key, default):
    value = config.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidScenarioError(f"Scenario field '{key}' must be numeric, got {value!r}") from None


def _integer(config, key, default):
    value = _number(config, key, default)
    if not float(value).is_integer():
        raise InvalidScenarioError(f"Scenario field '{key}' must be a whole number, got {config.get(key)!r}")
    return int(value)


def _flag(config, key, default):
    value = config.get(key)
    if value is None:
        return default
    try:
        return parse_bool(value)
    except ValueError:
        raise InvalidScenarioError(f"Scenario field '{key}' must be true or false, got {value!r}") from None


def build_scenario(config: Optional[Mapping[str, Any]] = None, **overrides) -> Scenario:
    """Build a Scenario from a flat config, defaulting every omitted field."""
    config = dict(config or {})
    config.update(overrides)

    start_year = _integer(config, "start_year", datetime.now().year)
    end_year = _integer(config, "end_year", start_year + DEFAULT_HORIZON_YEARS)

    interventions = None
    if config.get("interventions") is not None:
        staging = InterventionSystem()
        staging.replace_all(config["interventions"])
        interventions = staging.snapshot()

    return Scenario(
        name=config.get("name") or "Custom Scenario",
        description=config.get("description") or "",
        timeframe=Timeframe(start_year, end_year, _integer(config, "steps_per_year", 12)),
        targets=Targets(
            unemployment_rate=_number(config, "target_unemployment", None),
            ai_adoption_rate=_number(config, "ai_adoption_rate", 50.0),
            automation_pace=_enum(AutomationPace, config.get("automation_pace"), AutomationPace.MODERATE),
        ),
        ai_parameters=AIParameters(
            adoption_curve=_enum(AdoptionCurve, config.get("adoption_curve"), AdoptionCurve.S_CURVE),
            new_job_multiplier=_number(config, "new_job_multiplier", 0.3),
            sector_variation=_flag(config, "sector_variation", True),
            displacement_lag=_integer(config, "displacement_lag", 0),
        ),
        economic_parameters=EconomicParameters(
            gdp_growth=_number(config, "gdp_growth", 2.0),
            inflation=_number(config, "inflation", 2.5),
            interest_rate=_number(config, "interest_rate", 4.0),
            labor_elasticity=_number(config, "labor_elasticity", -0.5),
        ),
        interventions=interventions,
    )
