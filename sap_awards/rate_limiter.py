"""
Hybrid in-memory + Redis rate limiting utilities

Counters live in process memory and are synced to Redis periodically when
Redis is configured, so several API instances share one budget per IP.
"""

import logging
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import Request

from . import config
from .errors import RateLimitExceeded

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None
_redis_unavailable_until = 0.0

# Format: {key: {'count': int, 'reset_time': int, 'last_redis_sync': int}}
memory_cache: dict[str, dict] = {}
cache_lock = Lock()

MEMORY_CACHE_SYNC_INTERVAL = 10
MEMORY_CACHE_CLEANUP_INTERVAL = 60
REDIS_RETRY_INTERVAL = 30
last_cleanup_time = 0


def redis_configured() -> bool:
    return bool(config.REDIS_URL or config.REDIS_HOST)


def get_redis_client() -> Optional[redis.Redis]:
    """
    Get or create the shared Redis client.

    Returns None when Redis is not configured, or when the last connection
    attempt failed less than REDIS_RETRY_INTERVAL seconds ago.
    """
    global redis_client, _redis_unavailable_until

    if redis_client is not None:
        return redis_client
    if not redis_configured() or time.time() < _redis_unavailable_until:
        return None

    logger.info("🔄 Initializing Redis connection...")
    try:
        if config.REDIS_URL:
            if "@" in config.REDIS_URL:
                url_parts = config.REDIS_URL.split("@")
                protocol = url_parts[0].split(":")[0]
                masked_url = f"{protocol}:****@{url_parts[1]}"
            else:
                masked_url = "****"
            logger.info(f"📡 Using Redis URL connection: {masked_url}")
            client = redis.from_url(
                config.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=15,
                socket_timeout=30,
                retry_on_timeout=True,
                health_check_interval=30,
                max_connections=20,
            )
        else:
            logger.info(
                f"📡 Using Redis at {config.REDIS_HOST}:{config.REDIS_PORT} "
                f"(db={config.REDIS_DB}, SSL {'enabled' if config.REDIS_SSL else 'disabled'})"
            )
            client = redis.Redis(
                host=config.REDIS_HOST,
                port=config.REDIS_PORT,
                password=config.REDIS_PASSWORD,
                db=config.REDIS_DB,
                ssl=config.REDIS_SSL,
                decode_responses=True,
                socket_connect_timeout=15,
                socket_timeout=30,
                retry_on_timeout=True,
                health_check_interval=30,
                max_connections=20,
            )
        client.ping()
        logger.info("✅ Redis connected successfully")
        redis_client = client
    except redis.RedisError as e:
        logger.error(f"❌ Failed to connect to Redis: {e}")
        logger.warning(f"⚠️ Falling back to in-memory state for {REDIS_RETRY_INTERVAL}s")
        _redis_unavailable_until = time.time() + REDIS_RETRY_INTERVAL
        return None

    return redis_client


def cleanup_expired_cache():
    """Remove expired entries from memory cache"""
    global last_cleanup_time
    current_time = int(time.time())

    if current_time - last_cleanup_time < MEMORY_CACHE_CLEANUP_INTERVAL:
        return

    with cache_lock:
        expired_keys = [
            k for k, v in memory_cache.items() if current_time >= v.get("reset_time", 0)
        ]
        for k in expired_keys:
            del memory_cache[k]

        if expired_keys:
            logger.debug(f"🧹 Cleaned up {len(expired_keys)} expired rate limit entries")

    last_cleanup_time = current_time


def reset_rate_limits():
    with cache_lock:
        memory_cache.clear()


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: Optional[redis.Redis] = None
) -> tuple[bool, int, int]:
    """Check if the rate limit for key is exceeded.

    The in-memory counter is authoritative for this process. When a Redis
    client is given, the counter is seeded from Redis on first use and
    written back at most every MEMORY_CACHE_SYNC_INTERVAL seconds.

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    current_time = int(time.time())
    cleanup_expired_cache()

    with cache_lock:
        if key not in memory_cache:
            count, reset_time = 0, current_time + window_seconds
            if client is not None:
                try:
                    redis_count = client.get(key)
                    redis_ttl = client.ttl(key)
                    if redis_count and redis_ttl > 0:
                        count, reset_time = int(redis_count), current_time + redis_ttl
                except redis.RedisError as e:
                    logger.warning(f"⚠️ Failed to load from Redis, using memory only: {e}")
            memory_cache[key] = {
                "count": count,
                "reset_time": reset_time,
                "last_redis_sync": current_time,
            }

        cache_entry = memory_cache[key]

        if current_time >= cache_entry["reset_time"]:
            cache_entry["count"] = 0
            cache_entry["reset_time"] = current_time + window_seconds
            cache_entry["last_redis_sync"] = 0

        is_allowed = cache_entry["count"] < limit
        if is_allowed:
            cache_entry["count"] += 1

        if client is not None and current_time - cache_entry["last_redis_sync"] >= MEMORY_CACHE_SYNC_INTERVAL:
            try:
                client.set(key, cache_entry["count"], ex=window_seconds)
                cache_entry["last_redis_sync"] = current_time
                logger.debug(f"📡 Synced {key} to Redis: {cache_entry['count']}/{limit}")
            except redis.RedisError as e:
                logger.warning(f"⚠️ Failed to sync to Redis: {e}")

        ttl = cache_entry["reset_time"] - current_time
        return is_allowed, cache_entry["count"], max(0, ttl)


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def rate_limit_dependency(
    request: Request,
    limit: int,
    window_seconds: int,
    key_prefix: str = "rate_limit",
    use_ip: bool = True,
):
    if not config.RATE_LIMIT_ENABLED:
        return

    key = f"{key_prefix}:{get_client_ip(request)}" if use_ip else f"{key_prefix}:global"
    is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds, get_redis_client())

    if not is_allowed:
        logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {current_count}/{limit} requests used")
        raise RateLimitExceeded(
            f"Too many requests. Maximum {limit} requests per {window_seconds} seconds, "
            "please try again later.",
            headers={"Retry-After": str(ttl)},
        )

    request.state.rate_limit_remaining = limit - current_count
    request.state.rate_limit_limit = limit
    request.state.rate_limit_reset = int(time.time()) + ttl


def create_rate_limiter(
    limit: int, window_seconds: int, key_prefix: str = "rate_limit", use_ip: bool = True
):
    """
    Create a rate limiter dependency with specific parameters

    Example usage:
        vote_limiter = create_rate_limiter(limit=20, window_seconds=3600, key_prefix="vote")

        @router.post("/nominations/{nomination_id}/vote")
        async def vote(..., _: None = Depends(vote_limiter)):
            ...
    """

    async def rate_limiter(request: Request):
        return await rate_limit_dependency(request, limit, window_seconds, key_prefix, use_ip)

    return rate_limiter
