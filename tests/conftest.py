import copy

import pytest

from labor_sim.data import BaselineDataProvider
from labor_sim.engine import SimulationEngine
from labor_sim.interventions import InterventionSystem

MINIMAL_SNAPSHOT = {
    "labor_market": {
        "total_employment": 160_000_000,
        "unemployment_rate": 4.0,
        "labor_force_participation": 62.5,
        "job_openings": 8_000_000,
    },
    "wages": {"average_hourly": 35.0, "real_wage_growth": 1.0},
    "productivity": {"growth_rate": 1.5, "output_per_hour": 110.0},
    "sectors": {},
    "ai_indicators": {},
    "demographics": {},
}

TWO_SECTORS = {
    "manufacturing": {"name": "Manufacturing", "employment": 12_000_000, "automation_exposure": 0.6},
    "healthcare": {"name": "Healthcare", "employment": 20_000_000, "automation_exposure": 0.3},
}


class StaticProvider:
    """In-memory data provider returning fixed payloads."""

    def __init__(self, snapshot=None, sectors=None):
        self.snapshot = MINIMAL_SNAPSHOT if snapshot is None else snapshot
        self.sectors = TWO_SECTORS if sectors is None else sectors

    def get_current_snapshot(self):
        return copy.deepcopy(self.snapshot)

    def get_sector_data(self):
        return copy.deepcopy(self.sectors)


@pytest.fixture
def provider():
    return BaselineDataProvider()


@pytest.fixture
def static_provider():
    return StaticProvider()


@pytest.fixture
def interventions():
    return InterventionSystem()


@pytest.fixture
def engine(provider, interventions):
    return SimulationEngine(provider, interventions=interventions)


@pytest.fixture
def short_config():
    return {"name": "Test", "start_year": 2025, "end_year": 2027}
