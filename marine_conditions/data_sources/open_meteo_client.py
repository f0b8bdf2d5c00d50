"""Helpers for fetching weather and sea temperature from the Open-Meteo APIs."""
from __future__ import annotations

import datetime as dt
from typing import List, Optional

from marine_conditions.data_sources import http
from marine_conditions.domain import WeatherRecord, ensure_utc, utc_noon
from marine_conditions.errors import DecodingError, FetchError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="open_meteo_client")

OPEN_METEO_WEATHER_URL = "https://api.open-meteo.com/v1/forecast"
OPEN_METEO_MARINE_URL = "https://marine-api.open-meteo.com/v1/marine"

CURRENT_VARS = [
    "temperature_2m",
    "relative_humidity_2m",
    "precipitation",
    "cloud_cover",
    "pressure_msl",
    "wind_speed_10m",
    "wind_direction_10m",
    "uv_index",
]

DAILY_VARS = [
    "temperature_2m_max",
    "relative_humidity_2m_mean",
    "precipitation_sum",
    "cloud_cover_mean",
    "pressure_msl_mean",
    "wind_speed_10m_max",
    "wind_direction_10m_dominant",
    "uv_index_max",
]

EXPECTED_UNITS = {
    "temperature_2m": "°C",
    "temperature_2m_max": "°C",
    "relative_humidity_2m": "%",
    "relative_humidity_2m_mean": "%",
    "precipitation": "mm",
    "precipitation_sum": "mm",
    "cloud_cover": "%",
    "cloud_cover_mean": "%",
    "pressure_msl": "hPa",
    "pressure_msl_mean": "hPa",
    "wind_speed_10m": "km/h",
    "wind_speed_10m_max": "km/h",
    "wind_direction_10m": "°",
    "wind_direction_10m_dominant": "°",
}

# Acceptable alternative spellings that should not trigger warnings.
ALLOWED_UNIT_SYNONYMS = {
    "°C": {"°C", "°F"},
    "%": {"%", "percent"},
    "mm": {"mm", "inch"},
    "hPa": {"hPa", "mb"},
    "km/h": {"km/h", "mph", "m/s", "kn"},
    "°": {"°", "deg", "degrees"},
}


def _warn_on_unexpected_units(units: dict, *, context: str) -> None:
    """Log a warning if Open-Meteo returns units we did not request/expect."""
    if not units:
        return
    for field, expected in EXPECTED_UNITS.items():
        actual = units.get(field)
        if not actual or actual == expected:
            continue
        allowed = ALLOWED_UNIT_SYNONYMS.get(expected, set())
        if actual not in allowed:
            logger.warning(
                "Unexpected Open-Meteo unit",
                extra={"context": context, "field": field, "unit": actual, "expected": expected},
            )


def _iso_to_utc(s: str) -> dt.datetime:
    """Open-Meteo local time strings are requested in UTC."""
    return ensure_utc(dt.datetime.fromisoformat(s))


def _or_zero(value: Optional[float]) -> float:
    return 0.0 if value is None else value


def fetch_sea_surface_temperature(
    latitude: float,
    longitude: float,
    *,
    timeout: float = http.DEFAULT_TIMEOUT_SECONDS,
) -> Optional[float]:
    """Current sea-surface temperature, or None when the marine API has none."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "current": "sea_surface_temperature",
        "timezone": "UTC",
    }
    try:
        data = http.get_json(OPEN_METEO_MARINE_URL, params, timeout=timeout, context="marine_current")
        return data["current"].get("sea_surface_temperature")
    except (FetchError, KeyError, TypeError, AttributeError) as exc:
        logger.warning("Sea-surface temperature unavailable", extra={"error": str(exc)})
        return None


def fetch_weather_current(
    latitude: float,
    longitude: float,
    *,
    include_water_temperature: bool = True,
    timeout: float = http.DEFAULT_TIMEOUT_SECONDS,
) -> WeatherRecord:
    """Fetch the latest weather observation for the given coordinates."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "current": ",".join(CURRENT_VARS),
        "timezone": "UTC",
    }
    data = http.get_json(OPEN_METEO_WEATHER_URL, params, timeout=timeout, context="weather_current")

    try:
        current = data["current"]
        _warn_on_unexpected_units(data.get("current_units") or {}, context="weather_current")
        water_temperature = (
            fetch_sea_surface_temperature(latitude, longitude, timeout=timeout)
            if include_water_temperature else None
        )
        return WeatherRecord(
            timestamp=_iso_to_utc(current["time"]),
            temperature=current["temperature_2m"],
            wind_speed=current["wind_speed_10m"],
            wind_direction=current["wind_direction_10m"],
            precipitation=_or_zero(current.get("precipitation")),
            cloud_cover=current["cloud_cover"],
            pressure=current["pressure_msl"],
            humidity=current["relative_humidity_2m"],
            uv_index=_or_zero(current.get("uv_index")),
            water_temperature=water_temperature,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise DecodingError(f"Malformed Open-Meteo current weather: {exc}") from exc


def fetch_weather_days(
    latitude: float,
    longitude: float,
    start: dt.datetime,
    end: dt.datetime,
    *,
    timeout: float = http.DEFAULT_TIMEOUT_SECONDS,
) -> List[WeatherRecord]:
    """Fetch one daily weather summary per UTC day in [start, end], stamped at noon."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "daily": ",".join(DAILY_VARS),
        "start_date": ensure_utc(start).date().isoformat(),
        "end_date": ensure_utc(end).date().isoformat(),
        "timezone": "UTC",
    }
    data = http.get_json(OPEN_METEO_WEATHER_URL, params, timeout=timeout, context="weather_daily")

    try:
        daily = data["daily"]
        days = daily["time"]
    except (KeyError, TypeError) as exc:
        raise DecodingError(f"Malformed Open-Meteo daily weather: {exc}") from exc
    _warn_on_unexpected_units(data.get("daily_units") or {}, context="weather_daily")

    def column(name: str) -> list:
        return daily.get(name) or [None] * len(days)

    temperature = column("temperature_2m_max")
    humidity = column("relative_humidity_2m_mean")
    precipitation = column("precipitation_sum")
    cloud = column("cloud_cover_mean")
    pressure = column("pressure_msl_mean")
    wind_speed = column("wind_speed_10m_max")
    wind_dir = column("wind_direction_10m_dominant")
    uv = column("uv_index_max")

    out: List[WeatherRecord] = []
    for i, day in enumerate(days):
        try:
            out.append(
                WeatherRecord(
                    timestamp=utc_noon(dt.date.fromisoformat(day)),
                    temperature=temperature[i],
                    wind_speed=wind_speed[i],
                    wind_direction=wind_dir[i],
                    precipitation=_or_zero(precipitation[i]),
                    cloud_cover=cloud[i],
                    pressure=pressure[i],
                    humidity=humidity[i],
                    uv_index=_or_zero(uv[i]),
                )
            )
        except (IndexError, TypeError, ValueError) as exc:
            logger.warning("Skipping incomplete forecast day", extra={"day": day, "error": str(exc)})
    return out
