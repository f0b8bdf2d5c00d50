"""Turn a sparse list of tide extremes into a tide state at any instant.

Heights are linearly interpolated between the extreme at or before the query
instant and the first extreme after it. This is only an approximation of the
real (roughly sinusoidal) curve, but it is exact at the extremes themselves.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from marine_conditions.domain import (
    ExtremeKind,
    TideExtremePoint,
    TideState,
    TideTrend,
    ensure_utc,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="tide_interpolation")


def sort_extrema(extrema: Iterable[TideExtremePoint]) -> List[TideExtremePoint]:
    """Ascending by timestamp; extremes sharing a timestamp keep input order."""
    return sorted(extrema, key=lambda e: e.timestamp)


def _trend_for_kind(kind: ExtremeKind) -> TideTrend:
    return TideTrend.HIGH if kind is ExtremeKind.HIGH else TideTrend.LOW


def classify_trend(previous_kind: ExtremeKind, next_kind: ExtremeKind) -> TideTrend:
    """Trend between two consecutive extremes.

    Two extremes of the same kind in a row is a data anomaly; the trend then
    follows the kind of the earlier one.
    """
    if previous_kind is ExtremeKind.HIGH and next_kind is ExtremeKind.LOW:
        return TideTrend.FALLING
    if previous_kind is ExtremeKind.LOW and next_kind is ExtremeKind.HIGH:
        return TideTrend.RISING
    return _trend_for_kind(previous_kind)


def _first_after(
    ordered: Sequence[TideExtremePoint], at: datetime, kind: ExtremeKind
) -> Optional[TideExtremePoint]:
    for extreme in ordered:
        if extreme.kind is kind and extreme.timestamp > at:
            return extreme
    return None


def interpolate_tide_state(extrema: Iterable[TideExtremePoint], at: datetime) -> TideState:
    """Compute the tide state at `at` from (possibly unsorted) extremes.

    With no extremes at all this returns height 0.0 and trend LOW; callers
    should read that as "no data" rather than a real reading.
    """
    at = ensure_utc(at)
    ordered = sort_extrema(extrema)
    if not ordered:
        logger.debug("No extremes supplied; returning empty tide state", extra={"at": at.isoformat()})
        return TideState(timestamp=at, height=0.0, trend=TideTrend.LOW)

    previous: Optional[TideExtremePoint] = None
    following: Optional[TideExtremePoint] = None
    for extreme in ordered:
        if extreme.timestamp <= at:
            previous = extreme
        else:
            following = extreme
            break

    if previous is None:
        previous = ordered[0]
    if following is None:
        following = ordered[-1]

    span = (following.timestamp - previous.timestamp).total_seconds()
    if span <= 0 or at <= previous.timestamp:
        # query sits on an extreme or outside the covered range
        height = previous.height
        trend = _trend_for_kind(previous.kind)
    else:
        ratio = (at - previous.timestamp).total_seconds() / span
        height = previous.height + (following.height - previous.height) * ratio
        trend = classify_trend(previous.kind, following.kind)
        if previous.kind is following.kind:
            logger.debug(
                "Consecutive extremes share a kind; using previous kind for trend",
                extra={"kind": previous.kind.value, "previous": previous.timestamp.isoformat()},
            )

    return TideState(
        timestamp=at,
        height=height,
        trend=trend,
        next_high_tide=_first_after(ordered, at, ExtremeKind.HIGH),
        next_low_tide=_first_after(ordered, at, ExtremeKind.LOW),
    )
