from .comparison import ScenarioComparison
from .config import AdoptionCurve, AutomationPace, EngineParams, SCENARIO_PRESETS
from .data import BaselineDataProvider
from .engine import SimulationEngine, SimulationRun
from .errors import (
    ComparisonError,
    DataUnavailableError,
    InvalidParameterError,
    InvalidScenarioError,
    InvalidTypeError,
    LaborSimError,
    NoResultsError,
    NoScenarioConfiguredError,
)
from .indicators import EconomicIndicators
from .interventions import InterventionKind, InterventionSystem, PeriodContext
from .logging_utils import configure_logging
from .montecarlo import MonteCarloSimulation
from .scenario import Scenario, build_scenario
from .sensitivity import SensitivityAnalysis
from .session import Capabilities, SimulationSession
