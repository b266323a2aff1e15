import logging
from datetime import timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .base import Cache

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Fixed window attempt counter stored in a cache.

    The counter key is created with the window as its TTL on the first hit,
    so the window resets when the key expires.
    """

    def __init__(self, key: str, max_attempts: int, ttl: timedelta, cache: "Cache"):
        if max_attempts <= 0:
            raise ValueError("max_attempts must be positive")
        if ttl.total_seconds() <= 0:
            raise ValueError("ttl must be positive")
        self.key = key
        self.max_attempts = max_attempts
        self.ttl = ttl
        self.cache = cache

    async def _attempts(self) -> int:
        caster = await self.cache.cast(self.key)
        return caster.as_int_safe(0)

    async def hit(self) -> None:
        attempts = await self.cache.increment(self.key, 1, self.ttl)
        logger.debug(f"Rate limiter {self.key} hit ({attempts}/{self.max_attempts})")

    async def lock(self) -> None:
        """Exhaust the remaining attempts of the current window."""
        left = await self.retries_left()
        if left > 0:
            await self.cache.increment(self.key, left, self.ttl)

    async def reset(self) -> None:
        await self.cache.forget(self.key)

    async def retries_left(self) -> int:
        return max(0, self.max_attempts - await self._attempts())

    async def must_lock(self) -> bool:
        """True when no attempts are left in the current window."""
        return await self.retries_left() <= 0

    async def available_in(self) -> timedelta:
        return await self.cache.ttl(self.key)
