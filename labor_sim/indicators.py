"""
Sector automation exposure and jobs-at-risk aggregation.
"""

from typing import Any, Dict, Mapping

from .calculations import safe_divide

RISK_LEVELS = ("low", "medium", "medium-high", "high")

# Lower bounds per tier; "medium" starts strictly above 0.30
HIGH_RISK_THRESHOLD = 0.70
MEDIUM_HIGH_RISK_THRESHOLD = 0.50
MEDIUM_RISK_THRESHOLD = 0.30


def _sector_name(key: str, data: Mapping[str, Any]) -> str:
    name = data.get("name")
    if name:
        return name
    return key.replace("_", " ").title()


class EconomicIndicators:
    """Classifies sectors by automation exposure and totals jobs at risk."""

    def get_risk_level(self, exposure: float) -> str:
        if exposure >= HIGH_RISK_THRESHOLD:
            return "high"
        if exposure >= MEDIUM_HIGH_RISK_THRESHOLD:
            return "medium-high"
        if exposure > MEDIUM_RISK_THRESHOLD:
            return "medium"
        return "low"

    def calculate_sector_exposure(self, sectors: Mapping[str, Mapping[str, Any]]) -> Dict[str, Dict[str, Any]]:
        exposures = {}
        for key, data in sectors.items():
            exposure = data["automation_exposure"]
            employment = data["employment"]
            exposures[key] = {
                "name": _sector_name(key, data),
                "employment": employment,
                "exposure": exposure,
                "risk_level": self.get_risk_level(exposure),
                "at_risk_jobs": round(employment * exposure),
            }
        return exposures

    def calculate_jobs_at_risk(self, sectors: Mapping[str, Mapping[str, Any]]) -> Dict[str, Any]:
        total_employment = 0
        total_at_risk = 0.0
        by_risk_level = {level: 0 for level in RISK_LEVELS}

        for data in sectors.values():
            employment = data["employment"]
            exposure = data["automation_exposure"]
            total_employment += employment
            total_at_risk += employment * exposure
            by_risk_level[self.get_risk_level(exposure)] += employment

        percentage = safe_divide(total_at_risk, total_employment) * 100
        return {
            "total_employment": total_employment,
            "total_at_risk": round(total_at_risk),
            "percentage_at_risk": f"{percentage:.1f}",
            "by_risk_level": by_risk_level,
        }

    def automation_exposure_index(self, sectors: Mapping[str, Mapping[str, Any]]) -> float:
        """Employment-weighted mean exposure on a 0-100 scale."""
        total = sum(d["employment"] for d in sectors.values())
        weighted = sum(d["employment"] * d["automation_exposure"] for d in sectors.values())
        return safe_divide(weighted, total) * 100
