"""
Stock Optimization - Time source

Forecasts pick seasonal indices by calendar month of "today + offset", so
"today" is injected instead of read from the wall clock inside the
computation.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Protocol, Tuple


class Clock(Protocol):
    """Anything that can tell the current instant."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Always returns the same instant (tests, replays)."""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant


def today(clock: Clock) -> date:
    return clock.now().date()


def history_window(clock: Clock, days_back: int) -> Tuple[date, date]:
    """First and last full day of a `days_back` lookback ending yesterday."""
    end = today(clock) - timedelta(days=1)
    return end - timedelta(days=max(0, days_back) - 1), end
