"""
Redis caching utilities for public read endpoints

The cache is best effort: when redis is unreachable every lookup is a miss
and writes are dropped, so the endpoints keep serving from the database.
"""
import json
import hashlib
import logging
from typing import Optional, Any

import redis

from tender_ledger.core.config import settings

logger = logging.getLogger(__name__)

redis_client = redis.Redis(
    host=settings.REDIS_HOST,
    port=settings.REDIS_PORT,
    db=settings.REDIS_DB,
    decode_responses=True,
    socket_connect_timeout=1,
)

TENDER_LIST_PREFIX = "tenders:list"
# Bumped on every tender write; listing keys embed the value they were read under
TENDER_GENERATION_KEY = "tenders:generation"


def cache_enabled() -> bool:
    return settings.CACHE_ENABLED


def generate_cache_key(prefix: str, **params) -> str:
    """
    Generate a cache key from the query parameters of a request

    Args:
        prefix: Cache key prefix (usually endpoint name)
        **params: Query parameters, lists are kept in order

    Returns:
        Unique cache key string
    """
    key_string = ":".join(f"{k}={v}" for k, v in sorted(params.items()))

    # Hash if too long
    if len(key_string) > 100:
        key_hash = hashlib.md5(key_string.encode()).hexdigest()
        return f"{prefix}:{key_hash}"

    return f"{prefix}:{key_string}" if key_string else prefix


def get_cached(key: str) -> Optional[Any]:
    """
    Get value from cache

    Returns:
        Cached value or None if not found
    """
    if not cache_enabled():
        return None
    try:
        value = redis_client.get(key)
    except redis.RedisError as e:
        logger.warning(f"Cache get error for {key}: {e}")
        return None
    if value:
        return json.loads(value)
    return None


def set_cached(key: str, value: Any, ttl: Optional[int] = None) -> bool:
    """
    Set value in cache with TTL

    Args:
        key: Cache key
        value: Value to cache (must be JSON serializable)
        ttl: Time to live in seconds, defaults to CACHE_TTL_SECONDS
    """
    if not cache_enabled():
        return False
    try:
        redis_client.setex(key, ttl or settings.CACHE_TTL_SECONDS, json.dumps(value, default=str))
        return True
    except redis.RedisError as e:
        logger.warning(f"Cache set error for {key}: {e}")
        return False


def invalidate_cache(pattern: str) -> int:
    """
    Invalidate all cache keys matching pattern

    Returns:
        Number of keys deleted
    """
    if not cache_enabled():
        return 0
    try:
        keys = list(redis_client.scan_iter(match=pattern))
        if keys:
            return redis_client.delete(*keys)
        return 0
    except redis.RedisError as e:
        logger.warning(f"Cache invalidation error for {pattern}: {e}")
        return 0


def get_generation(key: str) -> Optional[int]:
    """
    Current generation counter, 0 if never bumped

    Returns:
        None when the cache is disabled or unreachable, callers skip caching
    """
    if not cache_enabled():
        return None
    try:
        value = redis_client.get(key)
    except redis.RedisError as e:
        logger.warning(f"Cache generation read error for {key}: {e}")
        return None
    return int(value or 0)


def bump_generation(key: str):
    if not cache_enabled():
        return
    try:
        redis_client.incr(key)
    except redis.RedisError as e:
        logger.warning(f"Cache generation bump error for {key}: {e}")


def invalidate_tender_cache():
    """
    Retire every cached tender listing

    Called after the write commits. A listing read before the commit was
    keyed under the old generation, so it can never be served afterwards.
    """
    bump_generation(TENDER_GENERATION_KEY)
    invalidate_cache(f"{TENDER_LIST_PREFIX}*")
