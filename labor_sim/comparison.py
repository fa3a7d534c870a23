"""
Side-by-side comparison of finished runs.

Holds a small set of named `SimulationRun`s and lines up their headline
outcomes as rows and their unemployment and employment paths as series.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from .engine import SimulationRun
from .errors import ComparisonError

logger = logging.getLogger(__name__)

MAX_SCENARIOS = 3


@dataclass
class ComparisonEntry:
    name: str
    run: SimulationRun
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    added_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


def comparison_metrics(run: SimulationRun) -> Dict[str, Any]:
    """Configuration and outcome figures for one run."""
    scenario, summary = run.scenario, run.summary
    last = run.results[-1]
    ur = summary["labor_market_changes"]["unemployment_rate"]
    return {
        # Configuration
        "end_year": scenario["timeframe"]["end_year"],
        "target_unemployment": scenario["targets"]["unemployment_rate"],
        "ai_adoption_target": scenario["targets"]["ai_adoption_rate"],
        "automation_pace": scenario["targets"]["automation_pace"],
        "interventions": len(scenario.get("interventions") or []),
        # Outcomes
        "final_unemployment": ur["final"],
        "unemployment_change": ur["change"],
        "jobs_displaced": summary["ai_impact"]["cumulative_displacement"],
        "jobs_created": summary["ai_impact"]["cumulative_new_jobs"],
        "net_job_impact": summary["ai_impact"]["net_impact"],
        "final_ai_adoption": summary["ai_impact"]["final_adoption"],
        "final_productivity_growth": summary["productivity"]["growth_rate"]["final"],
        "final_wage_growth": last["wages"]["real_wage_growth"],
        "wage_change_percent": summary["wages"]["average_hourly"]["change_percent"],
        "final_gini": last.get("skills", {}).get("inequality", {}).get("gini"),
        "fiscal_cost": summary.get("interventions", {}).get("total_fiscal_cost", 0.0),
    }


class ScenarioComparison:
    """A bounded, name-unique collection of runs to compare."""

    def __init__(self, max_scenarios: int = MAX_SCENARIOS):
        if max_scenarios < 2:
            raise ValueError("A comparison needs room for at least two scenarios")
        self.max_scenarios = max_scenarios
        self._entries: List[ComparisonEntry] = []

    @property
    def scenarios(self) -> Tuple[ComparisonEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def add_scenario(self, run: SimulationRun, name: Optional[str] = None) -> ComparisonEntry:
        name = name or run.summary.get("scenario_name") or run.scenario.get("name") or "Scenario"
        if len(self._entries) >= self.max_scenarios:
            raise ComparisonError(f"Comparison is full ({self.max_scenarios} scenarios)")
        if any(entry.name == name for entry in self._entries):
            raise ComparisonError(f"A scenario named '{name}' is already in the comparison")
        entry = ComparisonEntry(name, run)
        self._entries.append(entry)
        logger.debug("Added '%s' to comparison (%d/%d)", name, len(self._entries), self.max_scenarios)
        return entry

    def remove_scenario(self, entry_id: str) -> bool:
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.id != entry_id]
        return len(self._entries) < before

    def clear(self) -> None:
        self._entries = []

    def extract_metrics(self) -> List[Dict[str, Any]]:
        return [
            {"id": entry.id, "name": entry.name, "metrics": comparison_metrics(entry.run)}
            for entry in self._entries
        ]

    def series(self) -> Dict[str, Dict[str, List[float]]]:
        """Per-scenario paths keyed by scenario name."""
        return {
            entry.name: {
                "year": [s["year"] for s in entry.run.results],
                "unemployment_rate": [s["labor_market"]["unemployment_rate"] for s in entry.run.results],
                "total_employment": [s["labor_market"]["total_employment"] for s in entry.run.results],
                "ai_adoption": [s["ai_adoption"]["rate"] for s in entry.run.results],
            }
            for entry in self._entries
        }

    def get_comparison_data(self) -> Optional[Dict[str, Any]]:
        """Metrics and series, or None until at least two runs are held."""
        if len(self._entries) < 2:
            return None
        return {
            "scenarios": [entry.name for entry in self._entries],
            "metrics": self.extract_metrics(),
            "series": self.series(),
        }

    def to_frame(self) -> pd.DataFrame:
        """One row per scenario, one column per metric."""
        rows = {entry.name: comparison_metrics(entry.run) for entry in self._entries}
        return pd.DataFrame.from_dict(rows, orient="index")
