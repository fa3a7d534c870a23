"""
Skill-biased technical change.

Splits employment and wages across high, mid and low skill tiers as AI
adoption rises. Complementarity lifts wages where AI augments the work,
substitution drags on routine mid-skill jobs, and employment shifts toward
the ends of the distribution (polarization).
"""

from typing import Any, Dict, Mapping, Optional

import numpy as np

from .calculations import gini_coefficient, safe_divide
from .config import SKILL_GROUPS, SkillGroup


def skill_premiums(
    adoption_rate: float,
    productivity_growth: float = 0.02,
    groups: Optional[Mapping[str, SkillGroup]] = None,
) -> Dict[str, Dict[str, float]]:
    """Wage and employment change per skill tier at an adoption rate (%).

    `productivity_growth` is a fraction (0.02 = 2%/yr).
    """
    groups = SKILL_GROUPS if groups is None else groups
    adoption = adoption_rate / 100
    premiums = {}
    for key, group in groups.items():
        net = (
            group.complementarity * adoption * productivity_growth
            - group.substitutability * adoption * group.substitution_cost
        )
        premiums[key] = {
            "wage_change": net * group.wage_elasticity,
            "employment_change": adoption * group.employment_response,
            "premium_vs_median": 1 + net,
        }
    return premiums


def employment_by_skill(
    total_employment: float,
    adoption_rate: float,
    productivity_growth: float = 0.02,
    groups: Optional[Mapping[str, SkillGroup]] = None,
) -> Dict[str, Dict[str, Any]]:
    """Employment, wage and wage-bill share per tier.

    Employment shares are renormalized so the tiers add back up to
    `total_employment`.
    """
    groups = SKILL_GROUPS if groups is None else groups
    premiums = skill_premiums(adoption_rate, productivity_growth, groups)
    keys = list(groups)

    raw = np.array([groups[k].share_of_workforce * (1 + premiums[k]["employment_change"]) for k in keys])
    shares = raw / raw.sum()
    wages = np.array([groups[k].average_hourly * (1 + premiums[k]["wage_change"]) for k in keys])
    wage_bill = shares * wages
    wage_shares = wage_bill / wage_bill.sum()

    return {
        key: {
            "name": groups[key].name,
            "employment": float(total_employment * share),
            "share": float(share),
            "average_hourly": float(wage),
            "wage_share": float(wage_share),
        }
        for key, share, wage, wage_share in zip(keys, shares, wages, wage_shares)
    }


def inequality_metrics(by_skill: Mapping[str, Mapping[str, Any]]) -> Dict[str, float]:
    """Wage ratios, polarization and an employment-weighted wage Gini.

    Expects the `high`, `mid` and `low` tiers from `employment_by_skill`.
    """
    high, mid, low = by_skill["high"], by_skill["mid"], by_skill["low"]
    wages = [g["average_hourly"] for g in by_skill.values()]
    shares = [g["share"] for g in by_skill.values()]
    return {
        "wage_ratio_90_10": safe_divide(high["average_hourly"], low["average_hourly"]),
        "wage_ratio_90_50": safe_divide(high["average_hourly"], mid["average_hourly"]),
        "wage_ratio_50_10": safe_divide(mid["average_hourly"], low["average_hourly"]),
        "skill_premium": safe_divide(high["average_hourly"], float(np.mean(wages))),
        "polarization_index": safe_divide(high["share"] + low["share"], mid["share"]),
        "gini": gini_coefficient(wages, weights=shares),
    }
