"""
Session wiring.

Builds the data provider, indicators, intervention system, engine and
scenario comparison, and hands each collaborator to the ones that need it.
Optional collaborators (narrative text, report export) come in through
`Capabilities`.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from .calculations import format_number, format_percent
from .comparison import ComparisonEntry, ScenarioComparison
from .config import SCENARIO_PRESETS, EngineParams
from .data import BaselineDataProvider
from .engine import SimulationEngine, SimulationRun
from .errors import InvalidScenarioError, LaborSimError
from .indicators import EconomicIndicators
from .interventions import InterventionSystem
from .montecarlo import MonteCarloSimulation
from .sensitivity import SensitivityAnalysis

logger = logging.getLogger(__name__)


@dataclass
class Capabilities:
    narrative: Optional[Callable[[SimulationRun], str]] = None
    report_exporter: Optional[Callable[[SimulationRun], Any]] = None


class SimulationSession:
    def __init__(
        self,
        data_provider=None,
        params: Optional[EngineParams] = None,
        capabilities: Optional[Capabilities] = None,
    ):
        self.data_provider = data_provider if data_provider is not None else BaselineDataProvider()
        self.indicators = EconomicIndicators()
        self.interventions = InterventionSystem()
        self.engine = SimulationEngine(self.data_provider, self.indicators, self.interventions, params)
        self.capabilities = capabilities or Capabilities()
        self.comparison = ScenarioComparison()
        self.config: Dict[str, Any] = {}

    def apply_preset(self, name: str) -> Dict[str, Any]:
        """Load a named preset: scenario config plus its interventions."""
        try:
            preset = SCENARIO_PRESETS[name]
        except KeyError:
            raise InvalidScenarioError(
                f"Unknown preset '{name}' (expected one of: {', '.join(SCENARIO_PRESETS)})"
            ) from None
        self.interventions.replace_all(preset.get("interventions", []))
        self.config = {k: v for k, v in preset.items() if k != "interventions"}
        logger.info("Applied preset '%s' with %d interventions", name, len(self.interventions))
        return dict(self.config)

    def run(self, config: Optional[Mapping[str, Any]] = None) -> SimulationRun:
        self.engine.create_scenario(self.config if config is None else config)
        return self.engine.run_simulation()

    def add_to_comparison(self, name: Optional[str] = None, run: Optional[SimulationRun] = None) -> ComparisonEntry:
        run = run or self.engine.last_run
        if run is None:
            raise LaborSimError("Nothing to compare; run a simulation first")
        return self.comparison.add_scenario(run, name)

    def monte_carlo(
        self,
        iterations: int = 100,
        seed: Optional[int] = None,
        config: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        simulation = MonteCarloSimulation(self.engine, iterations=iterations, seed=seed)
        return simulation.run(self.config if config is None else config)

    def sensitivity(self, parameter_id: str, config: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        return SensitivityAnalysis().run_analysis(parameter_id, self.engine, self.config if config is None else config)

    def jobs_at_risk(self) -> Dict[str, Any]:
        if self.engine.baseline is None:
            self.engine.initialize()
        return self.indicators.calculate_jobs_at_risk(self.engine.sectors)

    def describe(self, run: Optional[SimulationRun] = None) -> str:
        run = run or self.engine.last_run
        if run is None:
            raise LaborSimError("Nothing to describe; run a simulation first")
        if self.capabilities.narrative is not None:
            return self.capabilities.narrative(run)

        s = run.summary
        ur = s["labor_market_changes"]["unemployment_rate"]
        tf = s["timeframe"]
        return (
            f"From {tf['start_year']} to {tf['end_year']}, unemployment moves from "
            f"{format_percent(ur['initial'])} to {format_percent(ur['final'])}. "
            f"AI displaces {format_number(s['total_jobs_displaced'])} jobs and creates "
            f"{format_number(s['total_jobs_created'])} "
            f"(net {format_number(s['ai_impact']['net_impact'])})."
        )

    def export_report(self, run: Optional[SimulationRun] = None) -> Any:
        if self.capabilities.report_exporter is None:
            raise LaborSimError("No report exporter configured for this session")
        run = run or self.engine.last_run
        if run is None:
            raise LaborSimError("Nothing to export; run a simulation first")
        return self.capabilities.report_exporter(run)
