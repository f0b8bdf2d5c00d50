"""Cached access to tide and weather conditions with stale-data fallback."""
from __future__ import annotations

import datetime as dt
import threading
from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Optional

from marine_conditions import config
from marine_conditions.app_types import CacheEntry, Conditions
from marine_conditions.cache_store import CacheKey, CacheKind, CacheStore, QueryShape, build_cache_store
from marine_conditions.cache_store.base import coerce_ttl
from marine_conditions.data_sources import (
    TideDataSource,
    WeatherDataSource,
    build_tide_source,
    build_weather_source,
)
from marine_conditions.domain import (
    Location,
    TideExtremePoint,
    TideState,
    WeatherRecord,
    ensure_utc,
    utc_day_start,
    utc_now,
)
from marine_conditions.errors import (
    FetchError,
    InvalidInputError,
    NoDataAvailableError,
    UnknownFetchError,
)
from marine_conditions.forecast_aggregator import (
    aggregate_tide_forecast,
    aggregate_weather_forecast,
    clamp_forecast_days,
    closest_to,
)
from marine_conditions.tide_interpolation import interpolate_tide_state, sort_extrema
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="service")


class CachedEnvironmentalService:
    """Serve tide and weather conditions from cache, refreshing from remote sources.

    Every query follows the same policy: a fresh cache entry is returned as is;
    otherwise the remote source is asked, and a successful answer replaces the
    entry. When the remote call fails, whatever is cached (however old) is
    returned with `stale=True`; the FetchError only reaches the caller when
    nothing is cached. Concurrent misses on the same key share one remote call.
    """

    def __init__(
        self,
        store: CacheStore,
        tide_source: TideDataSource,
        weather_source: WeatherDataSource,
        *,
        settings: config.Settings | None = None,
        clock: Callable[[], dt.datetime] | None = None,
    ) -> None:
        self.store = store
        self.tide_source = tide_source
        self.weather_source = weather_source
        self.settings = settings or config.settings
        self._clock = clock or utc_now
        self._inflight: Dict[CacheKey, Future] = {}
        self._inflight_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Tide
    # ------------------------------------------------------------------

    def get_current_tide(self, location: Location) -> Conditions[TideState]:
        """Tide state right now."""
        location = self._require_location(location)
        key = CacheKey(CacheKind.TIDE, QueryShape.CURRENT, location.id)

        def fetch() -> TideState:
            now = self._clock()
            window = self.settings.tide_window
            extrema = self._fetch_extrema(location, now - window, now + window)
            return interpolate_tide_state(extrema, now)

        return self._cached_query(key, self.settings.current_tide_ttl_seconds, fetch)

    def get_tide_forecast(self, location: Location, days: int) -> Conditions[List[TideState]]:
        """One noon tide state per UTC day, starting today, for up to `days` days."""
        location = self._require_location(location)
        days = clamp_forecast_days(days, self.settings.max_forecast_days)
        key = CacheKey(CacheKind.TIDE, QueryShape.FORECAST, location.id)
        result = self._cached_query(
            key,
            self.settings.tide_forecast_ttl_seconds,
            lambda: self._load_tide_forecast(location),
            accept=lambda states: len(states) >= days,
        )
        return result.truncated(days)

    def get_tide_at(self, location: Location, instant: dt.datetime) -> Conditions[TideState]:
        """Tide state at an arbitrary instant.

        Cached extremes are used when they are fresh and cover `instant`.
        Otherwise extremes around `instant` are fetched (and not cached). If
        that fetch fails, the cached daily forecast state nearest `instant`
        is returned as stale.
        """
        location = self._require_location(location)
        instant = self._require_instant(instant)
        extrema_key = CacheKey(CacheKind.TIDE, QueryShape.EXTREMA, location.id)

        entry = self.store.get(extrema_key)
        if entry is not None and entry.payload and self._is_fresh(entry, self.settings.tide_forecast_ttl_seconds):
            ordered = sort_extrema(entry.payload)
            if ordered[0].timestamp <= instant <= ordered[-1].timestamp:
                logger.debug("Tide at instant served from cached extremes", extra={"location": location.id})
                return Conditions(interpolate_tide_state(ordered, instant), entry.written_at)

        window = self.settings.tide_window
        try:
            extrema = self._fetch_extrema(location, instant - window, instant + window)
        except FetchError as exc:
            forecast_key = CacheKey(CacheKind.TIDE, QueryShape.FORECAST, location.id)
            return self._closest_cached(forecast_key, instant, exc)
        return Conditions(interpolate_tide_state(extrema, instant), self._clock())

    # ------------------------------------------------------------------
    # Weather
    # ------------------------------------------------------------------

    def get_current_weather(self, location: Location) -> Conditions[WeatherRecord]:
        """Latest weather observation."""
        location = self._require_location(location)
        key = CacheKey(CacheKind.WEATHER, QueryShape.CURRENT, location.id)
        return self._cached_query(
            key,
            self.settings.current_weather_ttl_seconds,
            lambda: self._call_source("current weather", self.weather_source.fetch_current, location),
        )

    def get_weather_forecast(self, location: Location, days: int) -> Conditions[List[WeatherRecord]]:
        """One weather record per UTC day, starting today, for up to `days` days."""
        location = self._require_location(location)
        days = clamp_forecast_days(days, self.settings.max_forecast_days)
        key = CacheKey(CacheKind.WEATHER, QueryShape.FORECAST, location.id)
        result = self._cached_query(
            key,
            self.settings.weather_forecast_ttl_seconds,
            lambda: self._load_weather_forecast(location),
            accept=lambda records: len(records) >= days,
        )
        return result.truncated(days)

    def get_weather_at(self, location: Location, instant: dt.datetime) -> Conditions[WeatherRecord]:
        """Weather record nearest `instant`.

        A fresh cached forecast answers when it has a record on the same UTC
        day. Otherwise samples for the surrounding days are fetched and the
        nearest one wins; on failure the nearest cached forecast record is
        returned as stale.
        """
        location = self._require_location(location)
        instant = self._require_instant(instant)
        key = CacheKey(CacheKind.WEATHER, QueryShape.FORECAST, location.id)

        entry = self.store.get(key)
        if entry is not None and self._is_fresh(entry, self.settings.weather_forecast_ttl_seconds):
            same_day = [r for r in entry.payload if r.timestamp.date() == instant.date()]
            if same_day:
                return Conditions(closest_to(same_day, instant), entry.written_at)

        try:
            samples = self._call_source(
                "weather range",
                self.weather_source.fetch_range,
                location,
                instant - dt.timedelta(days=1),
                instant + dt.timedelta(days=1),
            )
            if not samples:
                raise NoDataAvailableError(f"No weather data around {instant.isoformat()}")
        except FetchError as exc:
            return self._closest_cached(key, instant, exc)
        return Conditions(closest_to(samples, instant), self._clock())

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def clear_cache(self, kind: Optional[CacheKind] = None) -> None:
        """Drop cached conditions, optionally only one kind."""
        logger.info("Clearing cache", extra={"kind": kind.value if kind else "all"})
        self.store.clear(kind)

    def prefetch(self, location: Location) -> List[CacheKind]:
        """Refresh both forecast caches so they are available offline.

        Failures are logged and skipped. Returns the kinds that refreshed.
        """
        location = self._require_location(location)
        loaders = (
            (CacheKind.TIDE, lambda: self._load_tide_forecast(location)),
            (CacheKind.WEATHER, lambda: self._load_weather_forecast(location)),
        )
        refreshed: List[CacheKind] = []
        for kind, load in loaders:
            key = CacheKey(kind, QueryShape.FORECAST, location.id)
            try:
                self._refresh(key, load)
            except FetchError as exc:
                logger.warning(
                    "Prefetch failed",
                    extra={"location": location.id, "kind": kind.value, "error": str(exc)},
                )
                continue
            refreshed.append(kind)
        return refreshed

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_tide_forecast(self, location: Location) -> List[TideState]:
        """Fetch the full forecast horizon, cache its extremes and reduce to noon states."""
        max_days = self.settings.max_forecast_days
        start = utc_day_start(self._clock())
        extrema = self._fetch_extrema(location, start, start + dt.timedelta(days=max_days))
        self.store.put(CacheKey(CacheKind.TIDE, QueryShape.EXTREMA, location.id), extrema)
        return aggregate_tide_forecast(extrema, max_days)

    def _load_weather_forecast(self, location: Location) -> List[WeatherRecord]:
        max_days = self.settings.max_forecast_days
        start = utc_day_start(self._clock())
        samples = self._call_source(
            "weather range", self.weather_source.fetch_range, location, start, start + dt.timedelta(days=max_days)
        )
        if not samples:
            raise NoDataAvailableError(f"No weather forecast for location {location.id}")
        return aggregate_weather_forecast(samples, max_days)

    def _fetch_extrema(self, location: Location, start: dt.datetime, end: dt.datetime) -> List[TideExtremePoint]:
        extrema = self._call_source("tide extremes", self.tide_source.fetch_range, location, start, end)
        if not extrema:
            raise NoDataAvailableError(f"No tide extremes for location {location.id}")
        return extrema

    def _cached_query(
        self,
        key: CacheKey,
        ttl: int,
        fetch: Callable[[], Any],
        accept: Callable[[Any], bool] | None = None,
    ) -> Conditions:
        entry = self.store.get(key)
        if entry is not None and self._is_fresh(entry, ttl):
            if accept is None or accept(entry.payload):
                logger.debug("Cache hit", extra={"key": str(key)})
                return Conditions(entry.payload, entry.written_at)

        try:
            fresh = self._refresh(key, fetch)
        except FetchError as exc:
            cached = self.store.get(key)
            if cached is None:
                logger.error("Fetch failed with nothing cached", extra={"key": str(key), "error": str(exc)})
                raise
            logger.warning(
                "Fetch failed; serving stale cache",
                extra={"key": str(key), "error": str(exc), "written_at": cached.written_at.isoformat()},
            )
            return Conditions(cached.payload, cached.written_at, stale=True)
        return Conditions(fresh.payload, fresh.written_at)

    def _is_fresh(self, entry: CacheEntry, ttl: int) -> bool:
        """True when `entry` is no older than `ttl`."""
        return entry.age(self._clock()) <= coerce_ttl(ttl)

    def _closest_cached(self, key: CacheKey, instant: dt.datetime, exc: FetchError) -> Conditions:
        cached = self.store.get(key)
        if cached is None or not cached.payload:
            logger.error("Fetch failed with nothing cached", extra={"key": str(key), "error": str(exc)})
            raise exc
        logger.warning(
            "Fetch failed; serving closest cached record",
            extra={"key": str(key), "error": str(exc), "at": instant.isoformat()},
        )
        return Conditions(closest_to(cached.payload, instant), cached.written_at, stale=True)

    def _refresh(self, key: CacheKey, fetch: Callable[[], Any]):
        """Fetch and store a new value for key, sharing the call with concurrent refreshers."""
        return self._coalesce(key, lambda: self.store.put(key, fetch()))

    def _coalesce(self, key: CacheKey, fn: Callable[[], Any]) -> Any:
        with self._inflight_lock:
            future = self._inflight.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._inflight[key] = future

        if not leader:
            logger.debug("Joining in-flight refresh", extra={"key": str(key)})
            return future.result()

        try:
            result = fn()
        except BaseException as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._inflight_lock:
                self._inflight.pop(key, None)

    @staticmethod
    def _call_source(description: str, fn: Callable[..., Any], *args: Any) -> Any:
        """Invoke a data source, wrapping anything outside the FetchError family."""
        try:
            return fn(*args)
        except FetchError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error from data source", extra={"source": description})
            raise UnknownFetchError(f"{description} failed: {exc}") from exc

    @staticmethod
    def _require_location(location: Location) -> Location:
        if not isinstance(location, Location):
            raise InvalidInputError(f"Expected a Location, got {type(location).__name__}")
        return location

    @staticmethod
    def _require_instant(instant: dt.datetime) -> dt.datetime:
        if not isinstance(instant, dt.datetime):
            raise InvalidInputError(f"Expected a datetime, got {type(instant).__name__}")
        return ensure_utc(instant)


def build_service(settings: config.Settings | None = None) -> CachedEnvironmentalService:
    """Wire the configured cache store and data sources into a service."""
    settings = settings or config.settings
    return CachedEnvironmentalService(
        build_cache_store(settings),
        build_tide_source(settings),
        build_weather_source(settings),
        settings=settings,
    )


def main():
    """Manual test helper: print current conditions and a short forecast."""
    from utils.logging_utils import setup_logging

    setup_logging(level="DEBUG", job_name="marine_conditions")
    service = build_service()
    location = Location(id="la-jolla", latitude=32.87, longitude=-117.25, name="La Jolla")

    tide = service.get_current_tide(location)
    print(f"tide now: {tide.data.height:.2f} m, {tide.data.trend.value} (stale={tide.stale})\n"
          f"    next high: {tide.data.next_high_tide}\n"
          f"    next low: {tide.data.next_low_tide}")

    weather = service.get_current_weather(location)
    w = weather.data
    print(f"weather now: {w.temperature} °C, wind {w.wind_speed} km/h {w.wind_compass}\n"
          f"    water temperature: {w.water_temperature}")

    for state in service.get_tide_forecast(location, 3).data:
        print(f"forecast {state.timestamp:%Y-%m-%d}: {state.height:.2f} m {state.trend.value}")


if __name__ == "__main__":
    main()
