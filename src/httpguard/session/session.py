import asyncio
import json
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from starlette.requests import Request
from starlette.responses import Response

from httpguard.cache import Cache
from httpguard.cast import Caster, CastError
from .options import SessionOptions

logger = logging.getLogger('httpguard.session')

SESSION_KEY_PREFIX = "ses-"
CREATED_AT_KEY = "created_at"


class SessionError(Exception):
    """Raised when a session cannot be resolved or decoded"""
    pass


class Session:
    """
    Server side key-value state of one client, backed by a cache entry.

    A session belongs to exactly one request. Changes are kept in memory and
    written once by `save()`; TTL changes scheduled with `add_ttl`/`set_ttl`
    are applied at that point. Carrier updates (the id cookie or header) and
    any queued response headers/cookies are written by `attach_to_response`.
    """

    def __init__(self, request: Request, cache: Cache, options: SessionOptions, session_id: str = ""):
        self._id = (session_id or "").strip()
        self._options = options
        self._data: Dict[str, Any] = {}

        # > 0 extends the remaining TTL, < 0 overrides it, 0 keeps it
        self._ttl = timedelta(0)
        self._fresh = False
        self._modified = False

        self._request = request
        self._cache = cache
        self._mutex = threading.RLock()
        self._io_lock = asyncio.Lock()

        self._carrier_pending = False
        self._carrier_delete = False
        self._carrier_ttl: Optional[timedelta] = None
        self._response_headers: Dict[str, str] = {}
        self._response_cookies: List[Dict[str, Any]] = []

    @property
    def id(self) -> str:
        with self._mutex:
            return self._id

    @property
    def request(self) -> Request:
        return self._request

    @property
    def options(self) -> SessionOptions:
        return self._options

    @property
    def is_fresh(self) -> bool:
        with self._mutex:
            return self._fresh

    @property
    def is_modified(self) -> bool:
        with self._mutex:
            return self._modified

    def set(self, key: str, value: Any) -> None:
        key = key.strip()
        if not key:
            return
        with self._mutex:
            self._data[key] = value
            self._modified = True

    def get(self, key: str, default: Any = None) -> Any:
        with self._mutex:
            return self._data.get(key, default)

    def delete(self, key: str) -> None:
        with self._mutex:
            self._data.pop(key, None)
            self._modified = True

    def exists(self, key: str) -> bool:
        with self._mutex:
            return key in self._data

    def cast(self, key: str) -> Caster:
        with self._mutex:
            return Caster(self._data.get(key))

    def all(self) -> Dict[str, Any]:
        with self._mutex:
            return dict(self._data)

    def created_at(self) -> Optional[datetime]:
        with self._mutex:
            raw = self._data.get(CREATED_AT_KEY)
        if not isinstance(raw, str):
            return None
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            return None

    def add_ttl(self, ttl: timedelta) -> None:
        """Extend the remaining lifetime by ttl when the session is saved."""
        if ttl <= timedelta(0):
            return
        with self._mutex:
            self._ttl = ttl
            self._modified = True
            self._sync()

    def set_ttl(self, ttl: timedelta) -> None:
        """Replace the remaining lifetime with ttl when the session is saved."""
        if ttl <= timedelta(0):
            return
        with self._mutex:
            self._ttl = -ttl
            self._modified = True
            self._sync()

    def set_response_header(self, name: str, value: str) -> None:
        with self._mutex:
            self._response_headers[name] = value

    def set_response_cookie(self, key: str, value: str, **params: Any) -> None:
        with self._mutex:
            self._response_cookies.append({"key": key, "value": value, **params})

    async def destroy(self) -> None:
        async with self._io_lock:
            with self._mutex:
                session_id = self._id
            if not session_id:
                return

            await self._cache.forget(self._key(session_id))

            with self._mutex:
                self._id = ""
                self._data = {}
                self._ttl = timedelta(0)
                self._fresh = False
                self._modified = False
                self._carrier_pending = False
                self._carrier_delete = not self._options.header
            logger.debug(f"Session {session_id} destroyed")

    async def save(self) -> None:
        async with self._io_lock:
            with self._mutex:
                # Skip un-initialized, destroyed or unchanged session
                if not self._id or (not self._fresh and not self._modified):
                    return
                key = self._key(self._id)
                encoded = json.dumps(self._data)
                fresh = self._fresh
                delta = self._ttl

            written_ttl: Optional[timedelta] = None
            if fresh:
                written_ttl = self._options.ttl
                await self._cache.put(key, encoded, written_ttl)
            elif delta > timedelta(0):
                remaining = await self._cache.ttl(key)
                written_ttl = delta if remaining <= timedelta(0) else remaining + delta
                await self._cache.put(key, encoded, written_ttl)
            elif delta < timedelta(0):
                written_ttl = -delta
                await self._cache.put(key, encoded, written_ttl)
            elif not await self._cache.set(key, encoded):
                logger.warning(f"Session {key} expired before it could be saved")

            with self._mutex:
                self._fresh = False
                self._modified = False
                self._ttl = timedelta(0)
                if written_ttl is not None:
                    self._carrier_ttl = written_ttl

    async def load(self) -> bool:
        """
        Read the session entry from the cache.

        Returns:
            bool: False when the id is empty or the entry does not exist
        """
        async with self._io_lock:
            with self._mutex:
                session_id = self._id
            if not session_id:
                return False

            key = self._key(session_id)
            if not await self._cache.exists(key):
                return False

            caster = await self._cache.cast(key)
            try:
                data = json.loads(caster.as_str())
            except (CastError, ValueError) as e:
                raise SessionError(f"Corrupted session data for {session_id}") from e
            if not isinstance(data, dict):
                raise SessionError(f"Corrupted session data for {session_id}")

            with self._mutex:
                self._data = data
            return True

    async def fresh(self) -> None:
        """Drop any stored state and start over with a new identifier."""
        async with self._io_lock:
            with self._mutex:
                old_id = self._id
            if old_id:
                await self._cache.forget(self._key(old_id))

            with self._mutex:
                self._id = self._options.generator()
                self._data = {
                    CREATED_AT_KEY: datetime.now(timezone.utc).isoformat(timespec="seconds"),
                }
                self._ttl = timedelta(0)
                self._fresh = True
                self._modified = True
                self._carrier_delete = False
                self._sync()
            logger.debug(f"Fresh session {self._id} created")

    def attach_to_response(self, response: Response) -> None:
        """Write pending carrier updates and queued headers/cookies to the response."""
        with self._mutex:
            options = self._options
            cookie = options.cookie

            if self._carrier_delete:
                response.delete_cookie(
                    options.name,
                    path=cookie.path,
                    domain=cookie.domain,
                    secure=cookie.secure,
                    httponly=cookie.httponly,
                    samesite=cookie.samesite,
                )
            elif self._carrier_pending and self._id:
                if options.header:
                    response.headers[options.name] = self._id
                else:
                    params: Dict[str, Any] = {
                        "path": cookie.path,
                        "domain": cookie.domain,
                        "secure": cookie.secure,
                        "httponly": cookie.httponly,
                        "samesite": cookie.samesite,
                    }
                    if not cookie.session_only:
                        if cookie.max_age is not None:
                            lifetime = cookie.max_age
                        else:
                            lifetime = int((self._carrier_ttl or options.ttl).total_seconds())
                        params["max_age"] = lifetime
                        params["expires"] = lifetime
                    response.set_cookie(options.name, self._id, **params)

            for name, value in self._response_headers.items():
                response.headers[name] = value
            for params in self._response_cookies:
                response.set_cookie(**params)

            self._carrier_pending = False
            self._carrier_delete = False
            self._response_headers = {}
            self._response_cookies = []

    def _sync(self) -> None:
        # Ignore empty or destroyed
        if not self._id:
            return
        self._carrier_pending = True

    @staticmethod
    def _key(session_id: str) -> str:
        return SESSION_KEY_PREFIX + session_id

    def __repr__(self) -> str:
        return f"Session(id={self.id!r}, fresh={self.is_fresh}, modified={self.is_modified})"


def session_id_from_request(request: Request, options: SessionOptions) -> str:
    if options.header:
        return (request.headers.get(options.name) or "").strip()
    return (request.cookies.get(options.name) or "").strip()


async def new_session(request: Request, cache: Cache, options: Optional[SessionOptions] = None) -> Session:
    """
    Resume the session identified by the request carrier, or start a fresh one.
    """
    options = options or SessionOptions()
    session = Session(request, cache, options, session_id_from_request(request, options))
    if not await session.load():
        await session.fresh()
    return session
