"""
Baseline data provider.

Supplies the period-0 anchor for the engine: a labor market snapshot and a
sector table. Serves the static defaults from `config` or reads a JSON file
in the baseline-data layout, where each figure may be a plain number or a
``{"value": ..., "source": ...}`` record.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .config import baseline_snapshot
from .errors import DataUnavailableError

logger = logging.getLogger(__name__)

# Alternate field names used by published baseline files
_ALIASES = {
    "wages": {"average_hourly_earnings": "average_hourly", "median_weekly_earnings": "median_weekly"},
    "productivity": {"labor_productivity_growth": "growth_rate"},
}

REQUIRED_LABOR_FIELDS = ("total_employment", "unemployment_rate", "labor_force_participation", "job_openings")


def _unwrap(value: Any) -> Any:
    if isinstance(value, Mapping) and "value" in value:
        return value["value"]
    return value


def _flatten_section(section: Mapping[str, Any], aliases: Mapping[str, str]) -> Dict[str, Any]:
    out = {}
    for key, value in section.items():
        out[aliases.get(key, key)] = _unwrap(value)
    return out


def normalize_snapshot(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Flatten value records and check the fields the engine depends on."""
    if not isinstance(raw, Mapping):
        raise DataUnavailableError("Baseline snapshot must be a mapping")
    try:
        labor_market = _flatten_section(raw["labor_market"], {})
    except (KeyError, AttributeError) as exc:
        raise DataUnavailableError("Baseline snapshot has no labor_market section") from exc

    missing = [f for f in REQUIRED_LABOR_FIELDS if not isinstance(labor_market.get(f), (int, float))]
    if missing:
        raise DataUnavailableError(f"Baseline labor_market is missing numeric fields: {', '.join(missing)}")
    if labor_market["total_employment"] <= 0:
        raise DataUnavailableError("Baseline total_employment must be positive")
    if not 0 <= labor_market["unemployment_rate"] < 100:
        raise DataUnavailableError("Baseline unemployment_rate must be in [0, 100)")

    snapshot = {key: copy.deepcopy(value) for key, value in raw.items()}
    snapshot["labor_market"] = labor_market
    for section in ("wages", "productivity", "ai_indicators", "demographics"):
        snapshot[section] = _flatten_section(raw.get(section) or {}, _ALIASES.get(section, {}))

    sectors = {}
    for key, data in (raw.get("sectors") or {}).items():
        data = _flatten_section(data, {})
        try:
            employment = float(data["employment"])
            exposure = float(data["automation_exposure"])
        except (KeyError, TypeError, ValueError) as exc:
            raise DataUnavailableError(f"Sector '{key}' needs numeric employment and automation_exposure") from exc
        if employment < 0 or not 0 <= exposure <= 1:
            raise DataUnavailableError(f"Sector '{key}' has out-of-range employment or exposure")
        sectors[key] = data
    snapshot["sectors"] = sectors
    return snapshot


class BaselineDataProvider:
    """Read-only source of the baseline snapshot and sector table."""

    def __init__(self, path: Optional[Union[str, Path]] = None, snapshot: Optional[Mapping[str, Any]] = None):
        self.path = Path(path) if path is not None else None
        self._raw = snapshot
        self._snapshot: Optional[Dict[str, Any]] = None

    def _load(self) -> Dict[str, Any]:
        if self._snapshot is not None:
            return self._snapshot
        if self._raw is not None:
            raw = self._raw
        elif self.path is not None:
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                raise DataUnavailableError(f"Could not read baseline data from {self.path}: {exc}") from exc
            logger.info("Loaded baseline data from %s", self.path)
        else:
            raw = baseline_snapshot()
        self._snapshot = normalize_snapshot(raw)
        return self._snapshot

    def get_current_snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(self._load())

    def get_sector_data(self) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(self._load()["sectors"])
