"""Factory helpers for choosing a cache backend at startup."""

from __future__ import annotations

import redis

from marine_conditions import config
from marine_conditions.cache_store.base import CacheStore
from marine_conditions.cache_store.memory import InMemoryCacheStore
from marine_conditions.cache_store.redis import RedisCacheStore
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="cache_store/factory")


def build_cache_store(settings: config.Settings | None = None) -> CacheStore:
    """Use Redis when configured and reachable, otherwise an in-memory store."""
    settings = settings or config.settings
    url = settings.cache_redis_url
    logger.debug(f"Initializing cache store: redis_url='{mask_url(url) if url else 'None'}'")
    if url:
        try:
            client = redis.Redis.from_url(url)
            client.ping()
            logger.info("Using RedisCacheStore", extra={"redis_url": mask_url(url)})
            return RedisCacheStore(client, prefix=settings.cache_key_prefix)
        except Exception as exc:
            logger.warning("Falling back to InMemoryCacheStore (Redis unavailable)", extra={"error": str(exc)})
    return InMemoryCacheStore(max_entries=settings.cache_max_entries)
