"""Fetch predicted high/low tides from the WorldTides v2 API."""
from __future__ import annotations

import datetime as dt
from typing import List

from marine_conditions.data_sources import http
from marine_conditions.domain import ExtremeKind, TideExtremePoint, ensure_utc
from marine_conditions.errors import DecodingError, NoDataAvailableError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="worldtides_client")

WORLDTIDES_URL = "https://www.worldtides.info/api/v2"


def _parse_extreme(item: dict) -> TideExtremePoint:
    """Convert one `extremes` element ({dt, height, type}) to a TideExtremePoint."""
    return TideExtremePoint(
        timestamp=dt.datetime.fromtimestamp(int(item["dt"]), tz=dt.timezone.utc),
        height=float(item["height"]),
        kind=ExtremeKind(str(item["type"]).strip().lower()),
    )


def fetch_tide_extremes(
    latitude: float,
    longitude: float,
    start: dt.datetime,
    end: dt.datetime,
    *,
    api_key: str,
    datum: str = "MLLW",
    timeout: float = http.DEFAULT_TIMEOUT_SECONDS,
) -> List[TideExtremePoint]:
    """Fetch the high/low tides between `start` and `end` (UTC) for a coordinate."""
    start = ensure_utc(start)
    end = ensure_utc(end)
    params = {
        "extremes": "",
        "lat": latitude,
        "lon": longitude,
        "start": int(start.timestamp()),
        "length": max(1, int((end - start).total_seconds())),
        "datum": datum,
        "key": api_key,
    }
    logger.debug(
        "Requesting tide extremes",
        extra={"lat": latitude, "lon": longitude, "start": start.isoformat(), "end": end.isoformat()},
    )
    data = http.get_json(WORLDTIDES_URL, params, timeout=timeout, context="worldtides_extremes")

    if not isinstance(data, dict):
        raise DecodingError("Unexpected WorldTides response body")
    status = data.get("status", 200)
    if status != 200:
        raise http.error_for_status(int(status), data.get("error"))

    raw_extremes = data.get("extremes")
    if not raw_extremes:
        raise NoDataAvailableError("No tide data available for this location")
    try:
        extremes = [_parse_extreme(item) for item in raw_extremes]
    except (KeyError, TypeError, ValueError) as exc:
        raise DecodingError(f"Malformed tide extreme: {exc}") from exc

    logger.info("Fetched tide extremes", extra={"count": len(extremes), "station": data.get("station")})
    return extremes
