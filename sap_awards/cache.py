"""
Read-through caching for the public awards endpoints.

Two interchangeable backends share one interface (get/set/delete/delete_pattern):
MemoryCache keeps entries in this process, RedisCache shares them across
instances. Services receive the cache through the get_cache dependency.

Consistency: every write path invalidates the affected keys before it
responds, so a read after a write always recomputes. TTLs only bound how
long an entry can live when an invalidation could not reach it (another
process using the memory backend).
"""

import fnmatch
import json
import logging
import time
from threading import Lock
from typing import Any, Optional

import redis

from . import config
from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)

CATEGORIES_KEY = "award_categories:all"
NOMINATIONS_PREFIX = "nominations:"


class MemoryCache:
    """Process-local TTL cache. Values are stored serialized so callers never share objects."""

    def __init__(self):
        self._entries: dict[str, tuple[float, str]] = {}
        self._lock = Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"❌ Cache MISS: {key}")
                return None
            expires_at, serialized = entry
            if time.monotonic() >= expires_at:
                del self._entries[key]
                logger.debug(f"⌛ Cache EXPIRED: {key}")
                return None
        logger.debug(f"✅ Cache HIT: {key}")
        return json.loads(serialized)

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        try:
            serialized = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False
        with self._lock:
            self._entries[key] = (time.monotonic() + ttl, serialized)
        logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            self._entries.pop(key, None)
        logger.debug(f"✅ Cache DELETE: {key}")
        return True

    def delete_pattern(self, pattern: str) -> int:
        with self._lock:
            keys = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
            for k in keys:
                del self._entries[k]
        logger.debug(f"✅ Cache DELETE pattern: {pattern} ({len(keys)} keys)")
        return len(keys)

    def clear(self):
        with self._lock:
            self._entries.clear()


class RedisCache:
    """Redis cache wrapper with automatic serialization. Redis errors behave as misses."""

    def __init__(self, client: Optional[redis.Redis] = None):
        self.redis_client = client

    def _get_client(self):
        if self.redis_client is None:
            self.redis_client = get_redis_client()
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except (redis.RedisError, ValueError) as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value, default=str))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except (redis.RedisError, TypeError, ValueError) as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.delete(key)
            logger.debug(f"✅ Cache DELETE: {key}")
            return True
        except redis.RedisError as e:
            logger.error(f"❌ Cache delete error for {key}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        client = self._get_client()
        if not client:
            return 0

        try:
            keys = list(client.scan_iter(match=pattern, count=500))
            if keys:
                deleted = client.delete(*keys)
                logger.debug(f"✅ Cache DELETE pattern: {pattern} ({deleted} keys)")
                return deleted
            return 0
        except redis.RedisError as e:
            logger.error(f"❌ Cache delete pattern error for {pattern}: {e}")
            return 0


_cache = None


def get_cache():
    """FastAPI dependency returning the configured cache backend"""
    global _cache
    if _cache is None:
        if config.CACHE_BACKEND == "redis":
            logger.info("🗄️ Using Redis cache backend")
            _cache = RedisCache()
        else:
            logger.info("🗄️ Using in-memory cache backend")
            _cache = MemoryCache()
    return _cache


# Award-specific helpers


def nominations_cache_key(
    category=None,
    status="approved",
    country=None,
    page=1,
    limit=20,
    sort_by="votes",
    sort_order="desc",
    search=None,
) -> str:
    params = {
        "category": category,
        "status": status,
        "country": country,
        "page": page,
        "limit": limit,
        "sortBy": sort_by,
        "sortOrder": sort_order,
        "search": search,
    }
    # Absent filters serialize as null so they never collide with a literal value
    return NOMINATIONS_PREFIX + json.dumps(params, sort_keys=True, separators=(",", ":"))


def cache_award_categories(cache, categories: list) -> bool:
    return cache.set(CATEGORIES_KEY, categories, config.CATEGORIES_CACHE_TTL)


def get_cached_award_categories(cache) -> Optional[list]:
    return cache.get(CATEGORIES_KEY)


def invalidate_award_categories(cache) -> bool:
    logger.info("🗑️ Invalidated award categories cache")
    return cache.delete(CATEGORIES_KEY)


def cache_nominations(cache, key: str, data: dict) -> bool:
    return cache.set(key, data, config.NOMINATIONS_CACHE_TTL)


def get_cached_nominations(cache, key: str) -> Optional[dict]:
    return cache.get(key)


def invalidate_nominations(cache) -> int:
    deleted = cache.delete_pattern(f"{NOMINATIONS_PREFIX}*")
    logger.info(f"🗑️ Invalidated nominations cache ({deleted} keys)")
    return deleted
