import threading
import time
from collections import deque
from datetime import timedelta
from typing import Any, Callable, Dict, Optional, Tuple

from .base import Cache, Queue


class MemoryCache(Cache):
    """
    Process-local cache.

    Not shared between workers, so only suitable for development and tests.
    The clock is injectable to make expiry deterministic in tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        # key -> (value, expires_at or None)
        self._items: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._lock = threading.Lock()

    def _alive(self, key: str) -> Optional[Tuple[Any, Optional[float]]]:
        item = self._items.get(key)
        if item is None:
            return None
        expires_at = item[1]
        if expires_at is not None and expires_at <= self._clock():
            del self._items[key]
            return None
        return item

    def _expiry(self, ttl: Optional[timedelta]) -> Optional[float]:
        if ttl is None or ttl.total_seconds() <= 0:
            return None
        return self._clock() + ttl.total_seconds()

    async def exists(self, key: str) -> bool:
        with self._lock:
            return self._alive(key) is not None

    async def get(self, key: str) -> Optional[Any]:
        with self._lock:
            item = self._alive(key)
            return item[0] if item else None

    async def put(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> None:
        with self._lock:
            self._items[key] = (value, self._expiry(ttl))

    async def set(self, key: str, value: Any) -> bool:
        with self._lock:
            item = self._alive(key)
            if item is None:
                return False
            self._items[key] = (value, item[1])
            return True

    async def forget(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    async def ttl(self, key: str) -> timedelta:
        with self._lock:
            item = self._alive(key)
            if item is None or item[1] is None:
                return timedelta(0)
            return timedelta(seconds=max(0.0, item[1] - self._clock()))

    async def increment(self, key: str, amount: int = 1, ttl: Optional[timedelta] = None) -> int:
        with self._lock:
            item = self._alive(key)
            if item is None:
                self._items[key] = (amount, self._expiry(ttl))
                return amount
            value = int(item[0]) + amount
            self._items[key] = (value, item[1])
            return value


class MemoryQueue(Queue):
    def __init__(self):
        self._items: deque[str] = deque()
        self._lock = threading.Lock()

    async def push(self, item: str) -> None:
        with self._lock:
            self._items.append(item)

    async def pull(self) -> Optional[str]:
        with self._lock:
            return self._items.popleft() if self._items else None

    async def length(self) -> int:
        with self._lock:
            return len(self._items)
