"""
Shared fixtures for the stock optimization tests.
"""
from datetime import date, datetime, timedelta, timezone
from typing import List, Sequence

import pytest

from backend.stock_optimization.clock import FixedClock
from backend.stock_optimization.config import EngineSettings, build_parameters
from backend.stock_optimization.engine import InventoryOptimizationEngine
from backend.stock_optimization.models import DemandObservation
from backend.stock_optimization.sources import InMemoryHistorySource

TODAY = date(2024, 6, 30)
LOCATION = "WH-01"


def daily(start: date, values: Sequence[float]) -> List[DemandObservation]:
    """One observation per consecutive day starting at `start`."""
    return [DemandObservation(start + timedelta(days=i), float(v)) for i, v in enumerate(values)]


def recent(values: Sequence[float]) -> List[DemandObservation]:
    """Observations ending the day before TODAY."""
    return daily(TODAY - timedelta(days=len(values)), values)


@pytest.fixture
def clock():
    """Fixed 'now' so forecasts and timestamps are reproducible."""
    return FixedClock(datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def parameters():
    """Reference parameters: 95% service, S=50, H=0.25, L=7."""
    return build_parameters()


@pytest.fixture
def flat_history():
    """90 days of exactly 10 units/day."""
    return recent([10.0] * 90)


@pytest.fixture
def variable_history():
    """91 days of a repeating weekly pattern around 10 units/day."""
    return recent([8, 12, 9, 11, 10, 14, 6] * 13)


@pytest.fixture
def december_history():
    """Calendar 2023 with December demand double every other month."""
    start = date(2023, 1, 1)
    values = []
    for i in range(365):
        day = start + timedelta(days=i)
        values.append(20.0 if day.month == 12 else 10.0)
    return daily(start, values)


@pytest.fixture
def two_year_december_history():
    """June 2022 through May 2024: every month seen twice, December double."""
    start = date(2022, 6, 1)
    values = []
    day = start
    while day < date(2024, 6, 1):
        values.append(20.0 if day.month == 12 else 10.0)
        day += timedelta(days=1)
    return daily(start, values)


@pytest.fixture
def source(clock, flat_history, variable_history):
    """
    Five products at WH-01: P1-P4 with history, P5 stocked but never sold.
    WH-02 holds surplus of P1.
    """
    histories = {
        ("P1", LOCATION): flat_history,
        ("P2", LOCATION): variable_history,
        ("P3", LOCATION): recent([5.0, 7.0, 6.0] * 30),
        ("P4", LOCATION): recent([20.0, 30.0] * 45),
    }
    stock = {
        LOCATION: {"P1": 50.0, "P2": 400.0, "P3": 20.0, "P4": 1000.0, "P5": 30.0},
        "WH-02": {"P1": 150.0, "P2": 80.0},
    }
    return InMemoryHistorySource(histories, stock, clock=clock)


@pytest.fixture
def settings():
    return EngineSettings(workers=4)


@pytest.fixture
def engine(source, settings, clock):
    return InventoryOptimizationEngine(source, settings=settings, clock=clock)


@pytest.fixture
def recent_history():
    """Factory: observations ending the day before the fixed clock's date."""
    return recent
