"""Domain vocabulary and immutable schemas for tide and weather data.

Everything that flows between data sources, the interpolator, the cache and
callers is defined here. All timestamps are normalised to UTC when a model is
built, so day bucketing and interpolation never see mixed offsets.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


def ensure_utc(value: datetime) -> datetime:
    """Return `value` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_day_start(value: datetime | date) -> datetime:
    """Midnight UTC of the calendar day containing `value`."""
    day = ensure_utc(value).date() if isinstance(value, datetime) else value
    return datetime.combine(day, time(0, 0), tzinfo=timezone.utc)


def utc_noon(day: date) -> datetime:
    return datetime.combine(day, time(12, 0), tzinfo=timezone.utc)


class _FrozenModel(BaseModel):
    """Base model: immutable, no unknown fields."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class _TimestampedModel(_FrozenModel):
    timestamp: datetime

    @field_validator("timestamp", mode="after")
    @classmethod
    def _normalise_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class ExtremeKind(str, Enum):
    """High or low water."""
    HIGH = "high"
    LOW = "low"


class TideTrend(str, Enum):
    """Direction of the tide at an instant."""
    RISING = "rising"
    FALLING = "falling"
    HIGH = "high"
    LOW = "low"


class Location(_FrozenModel):
    """A place to query conditions for. Two locations are equal when their ids match."""
    id: str = Field(min_length=1)
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    name: str | None = None

    @field_validator("id", mode="after")
    @classmethod
    def _strip_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("location id must not be blank")
        return v

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Location):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


class TideExtremePoint(_TimestampedModel):
    """A predicted high or low tide."""
    height: float
    kind: ExtremeKind


class TideState(_TimestampedModel):
    """Tide height and direction at one instant, with the upcoming extremes."""
    height: float
    trend: TideTrend
    next_high_tide: TideExtremePoint | None = None
    next_low_tide: TideExtremePoint | None = None


_COMPASS_POINTS = (
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
)


class WeatherRecord(_TimestampedModel):
    """Weather at a sampled instant (current observation or one forecast day)."""
    temperature: float
    wind_speed: float
    wind_direction: float = Field(description="degrees, meteorological convention")
    precipitation: float
    cloud_cover: float
    pressure: float
    humidity: float
    uv_index: float
    water_temperature: float | None = None

    @property
    def wind_compass(self) -> str:
        """16-point compass label for `wind_direction`."""
        index = int(((self.wind_direction % 360) + 11.25) // 22.5) % 16
        return _COMPASS_POINTS[index]
