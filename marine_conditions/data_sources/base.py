"""Interfaces and adapters for remote tide and weather sources."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Protocol

from marine_conditions.domain import Location, TideExtremePoint, WeatherRecord


class TideDataSource(Protocol):
    """Anything that can list predicted tide extremes for a location."""

    def fetch_range(self, location: Location, start: datetime, end: datetime) -> List[TideExtremePoint]:
        """Return the extremes between start and end (order not guaranteed)."""
        ...


class WeatherDataSource(Protocol):
    """Anything that can provide current and per-day weather for a location."""

    def fetch_current(self, location: Location) -> WeatherRecord:
        """Return the current weather observation."""
        ...

    def fetch_range(self, location: Location, start: datetime, end: datetime) -> List[WeatherRecord]:
        """Return weather samples (typically one per day) between start and end."""
        ...


@dataclass
class CallableTideDataSource(TideDataSource):
    """Wrap a `(latitude, longitude, start, end)` callable as a tide source."""

    extremes: Callable[..., List[TideExtremePoint]]

    def fetch_range(self, location: Location, start: datetime, end: datetime) -> List[TideExtremePoint]:
        """Delegate to the configured extremes callable."""
        return self.extremes(location.latitude, location.longitude, start, end)


@dataclass
class CallableWeatherDataSource(WeatherDataSource):
    """Wrap current/daily callables taking coordinates as a weather source."""

    current: Callable[..., WeatherRecord]
    daily: Callable[..., List[WeatherRecord]]

    def fetch_current(self, location: Location) -> WeatherRecord:
        """Delegate to the configured current-weather callable."""
        return self.current(location.latitude, location.longitude)

    def fetch_range(self, location: Location, start: datetime, end: datetime) -> List[WeatherRecord]:
        """Delegate to the configured daily-weather callable."""
        return self.daily(location.latitude, location.longitude, start, end)
