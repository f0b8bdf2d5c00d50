"""Cache storage backends."""

from .base import CacheKey, CacheKind, CacheStore, QueryShape
from .factory import build_cache_store
from .memory import InMemoryCacheStore
from .redis import RedisCacheStore

__all__ = [
    "CacheKey",
    "CacheKind",
    "CacheStore",
    "QueryShape",
    "build_cache_store",
    "InMemoryCacheStore",
    "RedisCacheStore",
]
