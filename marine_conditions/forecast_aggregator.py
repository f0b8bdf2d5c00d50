"""Reduce multi-day extremes or weather samples to one record per UTC day."""
from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from marine_conditions.domain import (
    TideExtremePoint,
    TideState,
    WeatherRecord,
    ensure_utc,
    utc_noon,
)
from marine_conditions.errors import InvalidInputError
from marine_conditions.tide_interpolation import interpolate_tide_state, sort_extrema
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="forecast_aggregator")

MAX_FORECAST_DAYS = 7

R = TypeVar("R")


def clamp_forecast_days(days: int, maximum: int = MAX_FORECAST_DAYS) -> int:
    """Clamp a requested horizon to `maximum`; anything below 1 is rejected."""
    if isinstance(days, bool) or not isinstance(days, int):
        raise InvalidInputError(f"days must be an integer, got {days!r}")
    if days < 1:
        raise InvalidInputError(f"days must be at least 1, got {days}")
    if days > maximum:
        logger.debug("Clamping forecast days", extra={"requested": days, "maximum": maximum})
        return maximum
    return days


def group_by_utc_day(
    items: Iterable[R], timestamp: Callable[[R], datetime] = lambda item: item.timestamp
) -> Dict[date, List[R]]:
    """Group items by the UTC calendar day of their timestamp, days ascending."""
    grouped: Dict[date, List[R]] = {}
    for item in items:
        grouped.setdefault(ensure_utc(timestamp(item)).date(), []).append(item)
    return OrderedDict(sorted(grouped.items()))


def closest_to(records: Sequence[R], instant: datetime) -> Optional[R]:
    """Record whose timestamp is nearest `instant`; the earlier one wins a tie."""
    if not records:
        return None
    instant = ensure_utc(instant)
    return min(records, key=lambda r: (abs((r.timestamp - instant).total_seconds()), r.timestamp))


def aggregate_tide_forecast(
    extrema: Iterable[TideExtremePoint], days: Optional[int] = None
) -> List[TideState]:
    """One tide state per UTC day, evaluated at 12:00 UTC.

    Each noon is interpolated against the full extremes list so that states
    near a day boundary can use neighbouring days.
    """
    ordered = sort_extrema(extrema)
    states = [interpolate_tide_state(ordered, utc_noon(day)) for day in group_by_utc_day(ordered)]
    states.sort(key=lambda s: s.timestamp)
    if days is not None:
        states = states[:days]
    logger.debug("Aggregated tide forecast", extra={"extrema": len(ordered), "days": len(states)})
    return states


def aggregate_weather_forecast(
    samples: Iterable[WeatherRecord], days: Optional[int] = None
) -> List[WeatherRecord]:
    """One sample per UTC day (closest to noon), returned unchanged."""
    daily = [closest_to(day_samples, utc_noon(day)) for day, day_samples in group_by_utc_day(samples).items()]
    if days is not None:
        daily = daily[:days]
    return daily
