"""
Economic calculation helpers.

Closed-form macro relationships used by the projection engine (Okun's law,
Phillips curve, Beveridge curve) plus growth, inequality and display
formatting utilities. Everything here is a pure function over floats.
"""

import math
from typing import Optional, Sequence

import numpy as np

# Vacancy rate x unemployment rate along the US Beveridge curve (~4.5% x ~4%)
BEVERIDGE_MATCHING_CONSTANT = 18.0
BEVERIDGE_FLOOR = 0.1
BEVERIDGE_CEILING = 49.9


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning `default` for a zero or non-finite denominator."""
    if denominator == 0 or not math.isfinite(denominator):
        return default
    return numerator / denominator


def okun_law(gdp_gap_percent: float, okun_coefficient: float = -0.5) -> float:
    """Change in unemployment (pp) implied by an output gap (% of potential).

    With the usual negative coefficient, output below potential raises
    unemployment: okun_law(-2, -0.5) == 1.0.
    """
    return gdp_gap_percent * okun_coefficient


def phillips_curve(
    unemployment_rate: float,
    nairu: float,
    expected_inflation: float,
    sensitivity: float = -0.5,
) -> float:
    """Expectations-augmented Phillips curve.

    Returns `expected_inflation` exactly when unemployment sits at the NAIRU;
    unemployment below the NAIRU pushes inflation above expectations.
    """
    return expected_inflation + sensitivity * (unemployment_rate - nairu)


def beveridge_curve(vacancy_rate_percent: float) -> float:
    """Unemployment rate implied by a vacancy rate (hyperbolic, bounded)."""
    if vacancy_rate_percent <= 0:
        return BEVERIDGE_CEILING
    implied = BEVERIDGE_MATCHING_CONSTANT / vacancy_rate_percent
    return min(BEVERIDGE_CEILING, max(BEVERIDGE_FLOOR, implied))


def gini_coefficient(values: Sequence[float], weights: Optional[Sequence[float]] = None) -> float:
    """Gini coefficient via mean absolute difference, in [0, 1].

    `weights` gives each value a population share (e.g. the employment of a
    wage group); unweighted input counts every value once.
    """
    x = np.asarray(list(values), dtype=float)
    if x.size == 0:
        return 0.0
    w = np.ones_like(x) if weights is None else np.asarray(list(weights), dtype=float)
    if w.shape != x.shape:
        raise ValueError("weights must match values in length")
    total = w.sum()
    if total <= 0:
        return 0.0
    mean = (w * x).sum() / total
    if mean <= 0:
        return 0.0
    diff_sum = (w[:, None] * w[None, :] * np.abs(x[:, None] - x[None, :])).sum()
    return float(min(1.0, max(0.0, diff_sum / (2 * total * total * mean))))


def compound_growth(principal: float, rate: float, periods: float) -> float:
    if periods == 0:
        return principal
    return principal * (1 + rate) ** periods


def cagr(initial: float, final: float, years: float) -> float:
    """Compound annual growth rate; 0 when undefined."""
    if initial <= 0 or final < 0 or years <= 0:
        return 0.0
    return (final / initial) ** (1 / years) - 1


def logistic(t: float, ceiling: float = 1.0, steepness: float = 1.0, midpoint: float = 0.0) -> float:
    return ceiling / (1.0 + math.exp(-steepness * (t - midpoint)))


def unemployment_rate(employed: float, labor_force: float) -> float:
    """Unemployment rate in percent, clamped to [0, 100]."""
    if labor_force <= 0:
        return 0.0
    rate = (labor_force - employed) / labor_force * 100
    return min(100.0, max(0.0, rate))


def format_number(num: float) -> str:
    """Compact display form: 1500000 -> '1.5M', 1500 -> '1.5K', 150 -> '150'."""
    magnitude = abs(num)
    if magnitude >= 1e6:
        return f"{num / 1e6:.1f}M"
    if magnitude >= 1e3:
        return f"{num / 1e3:.1f}K"
    return f"{round(num, 1):g}"


def format_percent(value: float, precision: int = 1) -> str:
    return f"{value:.{precision}f}%"
