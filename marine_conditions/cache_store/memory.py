"""In-memory cache store, bounded by an optional LRU entry limit."""

import threading
from collections import OrderedDict
from datetime import datetime
from typing import Any, Callable, Optional

from marine_conditions.app_types import CacheEntry
from marine_conditions.cache_store.base import (
    CacheKey,
    CacheKind,
    CacheStore,
    TtlLike,
    coerce_ttl,
    copy_payload,
)
from marine_conditions.domain import utc_now
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache_store/in_memory_cache_store")


class InMemoryCacheStore(CacheStore):
    """Thread-safe in-process store. Entries never expire on their own."""

    def __init__(self, max_entries: int | None = None, clock: Callable[[], datetime] | None = None) -> None:
        """Initialize with an optional entry limit and a UTC clock."""
        logger.debug("Initializing InMemoryCacheStore", extra={"max_entries": max_entries})
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._clock = clock or utc_now
        self._entries: "OrderedDict[CacheKey, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        """Return the entry for key, marking it recently used."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            self._entries.move_to_end(key)
        return CacheEntry(payload=copy_payload(entry.payload), written_at=entry.written_at)

    def put(self, key: CacheKey, payload: Any) -> CacheEntry:
        """Overwrite the entry for key and evict the least recently used if over the limit."""
        entry = CacheEntry(payload=copy_payload(payload), written_at=self._clock())
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while self.max_entries is not None and len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted least recently used entry", extra={"key": str(evicted)})
        return entry

    def is_expired(self, key: CacheKey, ttl: TtlLike) -> bool:
        """True if there is no entry or it is older than ttl."""
        ttl = coerce_ttl(ttl)
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return True
        return entry.age(self._clock()) > ttl

    def clear(self, kind: Optional[CacheKind] = None) -> None:
        """Clear all entries, or only those of one kind."""
        with self._lock:
            if kind is None:
                self._entries.clear()
                return
            for key in [k for k in self._entries if k.kind == kind]:
                del self._entries[key]

    def evict_older_than(self, max_age: TtlLike) -> int:
        """Remove entries written more than max_age ago."""
        max_age = coerce_ttl(max_age)
        now = self._clock()
        with self._lock:
            old = [k for k, e in self._entries.items() if e.age(now) > max_age]
            for key in old:
                del self._entries[key]
        if old:
            logger.info("Evicted old cache entries", extra={"count": len(old)})
        return len(old)
