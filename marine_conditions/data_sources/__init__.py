"""Remote data sources for tide extremes and weather."""

from .base import (
    CallableTideDataSource,
    CallableWeatherDataSource,
    TideDataSource,
    WeatherDataSource,
)
from .factory import build_tide_source, build_weather_source
from .open_meteo_client import fetch_weather_current, fetch_weather_days
from .worldtides_client import fetch_tide_extremes

__all__ = [
    "build_tide_source",
    "build_weather_source",
    "TideDataSource",
    "WeatherDataSource",
    "CallableTideDataSource",
    "CallableWeatherDataSource",
    "fetch_tide_extremes",
    "fetch_weather_current",
    "fetch_weather_days",
]
