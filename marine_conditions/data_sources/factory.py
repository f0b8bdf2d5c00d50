"""Factory helpers for choosing tide and weather sources at startup."""

from __future__ import annotations

from functools import partial

from marine_conditions import config
from marine_conditions.data_sources.base import (
    CallableTideDataSource,
    CallableWeatherDataSource,
    TideDataSource,
    WeatherDataSource,
)
from marine_conditions.data_sources.open_meteo_client import fetch_weather_current, fetch_weather_days
from marine_conditions.data_sources.worldtides_client import fetch_tide_extremes
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


DEFAULT_TIDE_SOURCE = "worldtides"
DEFAULT_WEATHER_SOURCE = "open_meteo"


def build_tide_source(settings: config.Settings | None = None) -> TideDataSource:
    """Instantiate the configured tide source."""
    settings = settings or config.settings
    source = (settings.tide_source or DEFAULT_TIDE_SOURCE).lower()

    if source == "worldtides":
        if not settings.worldtides_api_key:
            raise ValueError("worldtides_api_key must be set for the WorldTides source")
        logger.info("Using WorldTides tide source", extra={"datum": settings.tide_datum})
        return CallableTideDataSource(
            extremes=partial(
                fetch_tide_extremes,
                api_key=settings.worldtides_api_key,
                datum=settings.tide_datum,
                timeout=settings.request_timeout_seconds,
            )
        )

    raise ValueError(f"Unknown tide source '{source}'")


def build_weather_source(settings: config.Settings | None = None) -> WeatherDataSource:
    """Instantiate the configured weather source."""
    settings = settings or config.settings
    source = (settings.weather_source or DEFAULT_WEATHER_SOURCE).lower()

    if source == "open_meteo":
        logger.info("Using Open-Meteo weather source")
        return CallableWeatherDataSource(
            current=partial(fetch_weather_current, timeout=settings.request_timeout_seconds),
            daily=partial(fetch_weather_days, timeout=settings.request_timeout_seconds),
        )

    raise ValueError(f"Unknown weather source '{source}'")
