import logging
from datetime import timedelta
from typing import Any, NoReturn, Optional

import redis.asyncio as aioredis
from redis import RedisError, ConnectionError as RedisConnectionError

from .base import Cache, CacheError, Queue

logger = logging.getLogger(__name__)


def _handle_redis_error(operation: str, key: str, error: Exception) -> NoReturn:
    """Centralized error handling for Redis operations."""
    if isinstance(error, RedisConnectionError):
        logger.error(f"Redis connection failed during {operation} for key {key}: {error}")
        raise CacheError(f"Cache connection error during {operation}") from error
    elif isinstance(error, RedisError):
        logger.error(f"Redis error during {operation} for key {key}: {error}")
        raise CacheError(f"Cache error during {operation}") from error
    else:
        logger.error(f"Unexpected error during {operation} for key {key}: {error}")
        raise CacheError(f"Unexpected error during {operation}") from error


def _milliseconds(ttl: Optional[timedelta]) -> Optional[int]:
    if ttl is None:
        return None
    ms = int(ttl.total_seconds() * 1000)
    return ms if ms > 0 else None


class RedisCache(Cache):
    def __init__(self, redis_client: aioredis.Redis, prefix: str = ""):
        """Initialize the Redis cache with an async Redis client."""
        self.redis_client = redis_client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return self.prefix + key

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self.redis_client.exists(self._key(key)))
        except Exception as e:
            _handle_redis_error("exists", key, e)

    async def get(self, key: str) -> Optional[Any]:
        try:
            return await self.redis_client.get(self._key(key))
        except Exception as e:
            _handle_redis_error("get", key, e)

    async def put(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> None:
        try:
            await self.redis_client.set(self._key(key), value, px=_milliseconds(ttl))
            logger.debug(f"Cache key {key} stored (ttl={ttl})")
        except Exception as e:
            _handle_redis_error("put", key, e)

    async def set(self, key: str, value: Any) -> bool:
        try:
            # XX: only overwrite existing keys, KEEPTTL: preserve the expiry
            result = await self.redis_client.set(self._key(key), value, xx=True, keepttl=True)
            return bool(result)
        except Exception as e:
            _handle_redis_error("set", key, e)

    async def forget(self, key: str) -> None:
        try:
            deleted_count = await self.redis_client.delete(self._key(key))
            if deleted_count == 0:
                logger.debug(f"Cache key {key} was already absent")
        except Exception as e:
            _handle_redis_error("forget", key, e)

    async def ttl(self, key: str) -> timedelta:
        try:
            ms = await self.redis_client.pttl(self._key(key))
        except Exception as e:
            _handle_redis_error("ttl", key, e)
        # -2 missing key, -1 no expiry
        if ms is None or ms < 0:
            return timedelta(0)
        return timedelta(milliseconds=ms)

    async def increment(self, key: str, amount: int = 1, ttl: Optional[timedelta] = None) -> int:
        try:
            async with self.redis_client.pipeline(transaction=True) as pipe:
                ms = _milliseconds(ttl)
                if ms is not None:
                    pipe.set(self._key(key), 0, px=ms, nx=True)
                pipe.incrby(self._key(key), amount)
                results = await pipe.execute()
            return int(results[-1])
        except Exception as e:
            _handle_redis_error("increment", key, e)


class RedisQueue(Queue):
    """Queue backed by a Redis list."""

    def __init__(self, redis_client: aioredis.Redis, name: str):
        self.redis_client = redis_client
        self.name = name

    async def push(self, item: str) -> None:
        try:
            await self.redis_client.rpush(self.name, item)
        except Exception as e:
            _handle_redis_error("queue push", self.name, e)

    async def pull(self) -> Optional[str]:
        try:
            item = await self.redis_client.lpop(self.name)
        except Exception as e:
            _handle_redis_error("queue pull", self.name, e)
        if isinstance(item, bytes):
            return item.decode("utf-8")
        return item

    async def length(self) -> int:
        try:
            return int(await self.redis_client.llen(self.name))
        except Exception as e:
            _handle_redis_error("queue length", self.name, e)
