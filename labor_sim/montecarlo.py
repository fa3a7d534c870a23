"""
Monte Carlo wrapper around the projection engine.

Each iteration perturbs the scenario's uncertain inputs with seeded normal
noise, runs the engine once and keeps a handful of outcome metrics. The
collected samples are summarized as percentile distributions.
"""

import asyncio
import logging
import math
from collections import defaultdict
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

import numpy as np

from .calculations import format_number

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 1000
HISTOGRAM_BINS = 20
PERCENTILES = (5, 10, 25, 50, 75, 90, 95)

# Roughly 95% of draws fall within +/- the variance of the base value
DEFAULT_VARIANCES: Dict[str, float] = {
    "ai_adoption_rate": 15.0,  # pp
    "new_job_multiplier": 0.15,
    "gdp_growth": 1.0,  # pp
    "labor_elasticity": 0.15,
    "displacement_lag": 3.0,  # months
}

# Value used when the base config leaves a perturbed field unset
BASE_DEFAULTS: Dict[str, float] = {
    "ai_adoption_rate": 50.0,
    "new_job_multiplier": 0.3,
    "gdp_growth": 2.0,
    "labor_elasticity": -0.5,
    "displacement_lag": 0,
}

BOUNDS: Dict[str, Tuple[Optional[float], Optional[float]]] = {
    "ai_adoption_rate": (0.0, 100.0),
    "new_job_multiplier": (0.0, None),
    "gdp_growth": (None, None),
    "labor_elasticity": (None, 0.0),
    "displacement_lag": (0.0, None),
}

METRICS = (
    "final_unemployment_rate",
    "cumulative_displacement",
    "cumulative_new_jobs",
    "net_job_change",
    "final_employment",
    "final_ai_adoption",
    "final_wage_growth",
)


def calculate_distribution(values) -> Dict[str, Any]:
    """Summary statistics, percentiles and a 20-bin histogram."""
    x = np.asarray(values, dtype=float)
    x = x[np.isfinite(x)]
    if x.size == 0:
        return {}
    pct = np.percentile(x, PERCENTILES)
    counts, edges = np.histogram(x, bins=HISTOGRAM_BINS)
    return {
        "min": float(x.min()),
        "max": float(x.max()),
        "mean": float(x.mean()),
        "std": float(x.std()),
        "p5": float(pct[0]),
        "p10": float(pct[1]),
        "p25": float(pct[2]),
        "median": float(pct[3]),
        "p75": float(pct[4]),
        "p90": float(pct[5]),
        "p95": float(pct[6]),
        "histogram": {
            "counts": [int(c) for c in counts],
            "bin_edges": [float(e) for e in edges],
        },
    }


class MonteCarloSimulation:
    """Repeated perturbed runs of a SimulationEngine."""

    def __init__(self, engine, iterations: int = DEFAULT_ITERATIONS, seed: Optional[int] = None):
        self.engine = engine
        self.iterations = iterations
        self.seed = seed
        self.variances = dict(DEFAULT_VARIANCES)
        self.results: Optional[Dict[str, Any]] = None
        self.samples: List[Dict[str, float]] = []
        self.is_running = False
        self._cancelled = False

    def configure(
        self,
        iterations: Optional[int] = None,
        seed: Optional[int] = None,
        variances: Optional[Mapping[str, float]] = None,
    ) -> None:
        if iterations is not None:
            if iterations < 1:
                raise ValueError("iterations must be at least 1")
            self.iterations = int(iterations)
        if seed is not None:
            self.seed = seed
        for key, value in (variances or {}).items():
            if key not in DEFAULT_VARIANCES:
                raise ValueError(f"Unknown Monte Carlo parameter: {key}")
            self.variances[key] = float(value)

    def cancel(self) -> None:
        """Stop after the iteration in progress; the partial result is kept."""
        self._cancelled = True

    def randomize(self, base_config: Mapping[str, Any], rng: np.random.Generator) -> Dict[str, Any]:
        config = dict(base_config)
        for key, variance in self.variances.items():
            base = config.get(key)
            if base is None:
                base = BASE_DEFAULTS[key]
            value = float(base) + rng.normal(0.0, variance / 2) if variance > 0 else float(base)
            lo, hi = BOUNDS[key]
            if lo is not None:
                value = max(lo, value)
            if hi is not None:
                value = min(hi, value)
            config[key] = int(round(value)) if key == "displacement_lag" else value
        return config

    @staticmethod
    def extract_key_metrics(run) -> Dict[str, Any]:
        summary = run.summary
        final = run.results[-1]
        yearly = {}
        for step in run.results:
            # Last step of each calendar year
            yearly[int(math.floor(step["year"]))] = step["labor_market"]["unemployment_rate"]
        return {
            "final_unemployment_rate": summary["final_unemployment_rate"],
            "cumulative_displacement": summary["ai_impact"]["cumulative_displacement"],
            "cumulative_new_jobs": summary["ai_impact"]["cumulative_new_jobs"],
            "net_job_change": summary["ai_impact"]["net_impact"],
            "final_employment": final["labor_market"]["total_employment"],
            "final_ai_adoption": final["ai_adoption"]["rate"],
            "final_wage_growth": summary["wages"]["average_hourly"]["change_percent"],
            "yearly_unemployment": yearly,
        }

    def _iterate(self, base_config: Mapping[str, Any], on_progress) -> Iterator[int]:
        """Run iterations one at a time, restoring the engine afterwards."""
        rng = np.random.default_rng(self.seed)
        saved = (self.engine.scenario, self.engine.last_run, self.engine.state)
        self.samples = []
        self._cancelled = False
        self.is_running = True
        logger.info("Monte Carlo: %d iterations (seed=%s)", self.iterations, self.seed)
        try:
            for i in range(self.iterations):
                if self._cancelled:
                    logger.info("Monte Carlo cancelled after %d iterations", i)
                    break
                self.engine.create_scenario(self.randomize(base_config, rng))
                self.samples.append(self.extract_key_metrics(self.engine.run_simulation()))
                if on_progress is not None:
                    on_progress((i + 1) / self.iterations * 100)
                yield i
        finally:
            self.engine.scenario, self.engine.last_run, self.engine.state = saved
            self.is_running = False

    def _finish(self) -> Dict[str, Any]:
        yearly = defaultdict(list)
        for sample in self.samples:
            for year, rate in sample["yearly_unemployment"].items():
                yearly[year].append(rate)

        self.results = {
            "iterations": len(self.samples),
            "requested_iterations": self.iterations,
            "seed": self.seed,
            "cancelled": self._cancelled,
            "distributions": {
                metric: calculate_distribution([s[metric] for s in self.samples]) for metric in METRICS
            },
            "yearly_unemployment": {
                year: calculate_distribution(rates) for year, rates in sorted(yearly.items())
            },
        }
        return self.results

    def run(
        self,
        base_config: Optional[Mapping[str, Any]] = None,
        on_progress: Optional[Callable[[float], None]] = None,
    ) -> Dict[str, Any]:
        for _ in self._iterate(base_config or {}, on_progress):
            pass
        return self._finish()

    async def run_async(
        self,
        base_config: Optional[Mapping[str, Any]] = None,
        on_progress: Optional[Callable[[float], None]] = None,
    ) -> Dict[str, Any]:
        """Like `run`, but yields to the event loop after every iteration."""
        for _ in self._iterate(base_config or {}, on_progress):
            await asyncio.sleep(0)
        return self._finish()

    def get_probability(self, metric: str, threshold: float, comparison: str = "less") -> Optional[float]:
        """Share of iterations where `metric` is less/greater than (or equal to) `threshold`."""
        if not self.samples or metric not in METRICS:
            return None
        values = np.array([s[metric] for s in self.samples], dtype=float)
        if comparison == "less":
            hits = values < threshold
        elif comparison == "greater":
            hits = values > threshold
        elif comparison == "equal":
            hits = values == threshold
        else:
            raise ValueError(f"Unknown comparison: {comparison}")
        return float(hits.mean())

    def generate_report(self) -> Optional[Dict[str, Any]]:
        if self.results is None or not self.samples:
            return None
        dist = self.results["distributions"]
        unemployment = dist["final_unemployment_rate"]
        displacement = dist["cumulative_displacement"]
        net = dist["net_job_change"]
        return {
            "iterations": self.results["iterations"],
            "unemployment": {
                "most_likely": unemployment["median"],
                "range": f"{unemployment['p10']:.1f}% - {unemployment['p90']:.1f}%",
                "confidence_90": {"low": unemployment["p5"], "high": unemployment["p95"]},
                "probability_above_10": self.get_probability("final_unemployment_rate", 10, "greater"),
            },
            "displacement": {
                "most_likely": displacement["median"],
                "range": f"{format_number(displacement['p10'])} - {format_number(displacement['p90'])}",
                "confidence_90": {"low": displacement["p5"], "high": displacement["p95"]},
            },
            "net_job_change": {
                "most_likely": net["median"],
                "range": f"{format_number(net['p10'])} - {format_number(net['p90'])}",
                "probability_positive": self.get_probability("net_job_change", 0, "greater"),
            },
        }
