"""Shared protocol, composite key and helpers for cache backends."""

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Optional, Protocol, Union

from marine_conditions.app_types import CacheEntry
from marine_conditions.errors import InvalidInputError

TtlLike = Union[timedelta, int, float]


class CacheKind(str, Enum):
    """What kind of data an entry holds."""
    TIDE = "tide"
    WEATHER = "weather"


class QueryShape(str, Enum):
    """Which query produced an entry."""
    CURRENT = "current"
    FORECAST = "forecast"
    EXTREMA = "extrema"


@dataclass(frozen=True)
class CacheKey:
    """Composite cache key: (kind, query shape, location id)."""
    kind: CacheKind
    shape: QueryShape
    location_id: str

    def __str__(self) -> str:
        return f"{self.kind.value}_{self.shape.value}_{self.location_id}"


def coerce_ttl(ttl: Optional[TtlLike]) -> timedelta:
    """Accept a timedelta or a number of seconds; reject None and negatives."""
    if ttl is None or isinstance(ttl, bool):
        raise InvalidInputError("ttl is required")
    if not isinstance(ttl, timedelta):
        if not isinstance(ttl, (int, float)):
            raise InvalidInputError(f"ttl must be a timedelta or seconds, got {ttl!r}")
        ttl = timedelta(seconds=ttl)
    if ttl < timedelta(0):
        raise InvalidInputError(f"ttl must not be negative, got {ttl}")
    return ttl


def copy_payload(payload: Any) -> Any:
    """Shallow-copy list payloads so cached lists cannot be mutated by callers."""
    if isinstance(payload, (list, tuple)):
        return list(payload)
    return payload


class CacheStore(Protocol):
    """Protocol for cache backends."""

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        """Return the entry for `key` whether or not it is still fresh."""

    def put(self, key: CacheKey, payload: Any) -> CacheEntry:
        """Replace the entry for `key`, stamping it with the current time."""

    def is_expired(self, key: CacheKey, ttl: TtlLike) -> bool:
        """True when there is no entry or it is older than `ttl`."""

    def clear(self, kind: Optional[CacheKind] = None) -> None:
        """Drop every entry, or only entries of `kind`."""

    def evict_older_than(self, max_age: TtlLike) -> int:
        """Drop entries older than `max_age`, returning how many were removed."""
