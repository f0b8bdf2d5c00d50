"""Redis-backed cache store using the flat `{kind}_{shape}_{locationId}` key layout."""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import TypeAdapter

from marine_conditions.app_types import CacheEntry
from marine_conditions.cache_store.base import (
    CacheKey,
    CacheKind,
    CacheStore,
    QueryShape,
    TtlLike,
    coerce_ttl,
    copy_payload,
)
from marine_conditions.domain import TideExtremePoint, TideState, WeatherRecord, utc_now
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache_store/redis_cache_store")

TIMESTAMP_SUFFIX = "_ts"

PAYLOAD_ADAPTERS: Dict[Tuple[CacheKind, QueryShape], TypeAdapter] = {
    (CacheKind.TIDE, QueryShape.CURRENT): TypeAdapter(TideState),
    (CacheKind.TIDE, QueryShape.FORECAST): TypeAdapter(List[TideState]),
    (CacheKind.TIDE, QueryShape.EXTREMA): TypeAdapter(List[TideExtremePoint]),
    (CacheKind.WEATHER, QueryShape.CURRENT): TypeAdapter(WeatherRecord),
    (CacheKind.WEATHER, QueryShape.FORECAST): TypeAdapter(List[WeatherRecord]),
}


def _escape_id(location_id: str) -> str:
    """Percent-encode '%' and '_' so an id can never end in the timestamp suffix."""
    return location_id.replace("%", "%25").replace("_", "%5F")


def _as_text(raw: Any) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8")
    return str(raw)


class RedisCacheStore(CacheStore):
    """Durable store: JSON payload and epoch-seconds write time under sibling keys."""

    def __init__(self, client, prefix: str = "marine:", clock: Callable[[], datetime] | None = None) -> None:
        """Initialize with a Redis client and key prefix."""
        logger.debug("Initializing RedisCacheStore", extra={"prefix": prefix})
        self.client = client
        self.prefix = prefix
        self._clock = clock or utc_now

    def _key(self, key: CacheKey) -> str:
        """Return the Redis key holding the payload."""
        return f"{self.prefix}{key.kind.value}_{key.shape.value}_{_escape_id(key.location_id)}"

    def _ts_key(self, key: CacheKey) -> str:
        """Return the Redis key holding the write timestamp."""
        return self._key(key) + TIMESTAMP_SUFFIX

    @staticmethod
    def _adapter(key: CacheKey) -> TypeAdapter:
        adapter = PAYLOAD_ADAPTERS.get((key.kind, key.shape))
        if adapter is None:
            raise KeyError(f"No payload type registered for {key.kind.value}/{key.shape.value}")
        return adapter

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        """Fetch and decode an entry, or None if missing or unreadable."""
        try:
            raw, raw_ts = self.client.mget([self._key(key), self._ts_key(key)])
        except Exception as exc:  # pragma: no cover
            logger.error("Failed to read cache entry from Redis: %s", exc, extra={"key": str(key)})
            return None
        if raw is None or raw_ts is None:
            return None
        try:
            payload = self._adapter(key).validate_json(raw)
            written_at = datetime.fromtimestamp(float(_as_text(raw_ts)), tz=timezone.utc)
        except Exception as exc:
            logger.error("Failed to decode cache entry: %s", exc, extra={"key": str(key)})
            return None
        return CacheEntry(payload=payload, written_at=written_at)

    def put(self, key: CacheKey, payload: Any) -> CacheEntry:
        """Write payload and timestamp in one MSET; failures are logged, not raised."""
        entry = CacheEntry(payload=copy_payload(payload), written_at=self._clock())
        try:
            serialized = self._adapter(key).dump_json(entry.payload)
        except Exception as exc:
            logger.error("Failed to serialize cache payload: %s", exc, extra={"key": str(key)})
            return entry
        try:
            self.client.mset({
                self._key(key): serialized,
                self._ts_key(key): repr(entry.written_at.timestamp()),
            })
        except Exception as exc:  # pragma: no cover
            logger.error("Failed to write cache entry to Redis: %s", exc, extra={"key": str(key)})
        return entry

    def is_expired(self, key: CacheKey, ttl: TtlLike) -> bool:
        """True if the entry is missing, unreadable, or older than ttl."""
        ttl = coerce_ttl(ttl)
        entry = self.get(key)
        if entry is None:
            return True
        return entry.age(self._clock()) > ttl

    def clear(self, kind: Optional[CacheKind] = None) -> None:
        """Best-effort delete of every key under the prefix (optionally one kind)."""
        pattern = f"{self.prefix}{kind.value}_*" if kind is not None else f"{self.prefix}*"
        try:
            for redis_key in self.client.scan_iter(pattern):
                self.client.delete(redis_key)
        except Exception as exc:  # pragma: no cover
            logger.error("Failed to clear cache in Redis: %s", exc, extra={"pattern": pattern})

    def evict_older_than(self, max_age: TtlLike) -> int:
        """Delete payload/timestamp pairs written more than max_age ago."""
        max_age = coerce_ttl(max_age)
        cutoff = self._clock().timestamp() - max_age.total_seconds()
        removed = 0
        try:
            for ts_key in list(self.client.scan_iter(f"{self.prefix}*{TIMESTAMP_SUFFIX}")):
                ts_key = _as_text(ts_key)
                raw_ts = self.client.get(ts_key)
                try:
                    written = float(_as_text(raw_ts)) if raw_ts is not None else None
                except ValueError:
                    written = None
                if written is None or written < cutoff:
                    self.client.delete(ts_key[: -len(TIMESTAMP_SUFFIX)], ts_key)
                    removed += 1
        except Exception as exc:  # pragma: no cover
            logger.error("Failed to evict old cache entries from Redis: %s", exc)
        if removed:
            logger.info("Evicted old cache entries", extra={"count": removed})
        return removed
