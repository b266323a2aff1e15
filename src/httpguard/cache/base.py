from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Optional, TYPE_CHECKING

from httpguard.cast import Caster

if TYPE_CHECKING:
    from .limiter import RateLimiter


class CacheError(Exception):
    """Raised when a cache backend operation fails"""
    pass


class Cache(ABC):
    """
    Async key-value store used by sessions and the rate limiter.

    Implementations must make `increment` atomic; the rate limiter relies on it.
    """

    @abstractmethod
    async def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def put(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> None:
        """Store value. A ttl of None stores the value without expiry."""
        ...

    @abstractmethod
    async def set(self, key: str, value: Any) -> bool:
        """
        Overwrite an existing value keeping its current TTL.

        Returns:
            False when the key does not exist (nothing is written)
        """
        ...

    @abstractmethod
    async def forget(self, key: str) -> None:
        ...

    @abstractmethod
    async def ttl(self, key: str) -> timedelta:
        """Remaining lifetime, timedelta(0) for missing or persistent keys."""
        ...

    @abstractmethod
    async def increment(self, key: str, amount: int = 1, ttl: Optional[timedelta] = None) -> int:
        """
        Atomically add amount to an integer counter.

        The ttl is applied only when the counter is created by this call.
        """
        ...

    async def cast(self, key: str) -> Caster:
        return Caster(await self.get(key))

    def rate_limiter(self, key: str, max_attempts: int, ttl: timedelta) -> "RateLimiter":
        from .limiter import RateLimiter
        return RateLimiter(key, max_attempts, ttl, self)


class Queue(ABC):
    """FIFO of string items, used to park work for out-of-band retry."""

    @abstractmethod
    async def push(self, item: str) -> None:
        ...

    @abstractmethod
    async def pull(self) -> Optional[str]:
        ...

    @abstractmethod
    async def length(self) -> int:
        ...
