"""Shared dataclasses and lightweight types used across modules."""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Cached payload with the time of the fetch that produced it."""
    payload: T
    written_at: datetime

    def age(self, now: datetime):
        return now - self.written_at


@dataclass(frozen=True)
class Conditions(Generic[T]):
    """Value handed back to callers.

    `stale` is True when the value came from cache because a refresh failed,
    so a UI can show a staleness indicator next to `written_at`.
    """
    data: T
    written_at: Optional[datetime]
    stale: bool = False

    def truncated(self, count: int) -> "Conditions[T]":
        """Copy with list data cut to the first `count` items."""
        return replace(self, data=list(self.data)[:count])
