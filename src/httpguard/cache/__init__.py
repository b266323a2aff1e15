"""Cache and queue backends shared by sessions, the rate limiter and uploads."""

import logging

from .base import Cache, CacheError, Queue
from .limiter import RateLimiter
from .memory import MemoryCache, MemoryQueue
from .redis_backend import RedisCache, RedisQueue
from .redis_client import get_redis_client, create_redis_client, close_redis_clients

logger = logging.getLogger('httpguard.cache')


def create_cache(prefix: str = "") -> Cache:
    """
    Build the default cache: Redis when REDIS_URL is set, memory otherwise.
    """
    redis_client = get_redis_client()
    if not redis_client:
        logger.warning("REDIS_URL not set - using in-memory cache (not suitable for production)")
        return MemoryCache()
    return RedisCache(redis_client, prefix=prefix)


def create_queue(name: str) -> Queue:
    redis_client = get_redis_client()
    if not redis_client:
        return MemoryQueue()
    return RedisQueue(redis_client, name)


__all__ = [
    "Cache",
    "CacheError",
    "Queue",
    "RateLimiter",
    "MemoryCache",
    "MemoryQueue",
    "RedisCache",
    "RedisQueue",
    "get_redis_client",
    "create_redis_client",
    "close_redis_clients",
    "create_cache",
    "create_queue",
]
