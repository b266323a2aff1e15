"""
Tests for Session persistence and TTL handling.
"""

import json
from datetime import datetime, timedelta

import pytest
from starlette.requests import Request
from starlette.responses import Response

from httpguard.cache import MemoryCache
from httpguard.session import (
    CREATED_AT_KEY,
    SESSION_KEY_PREFIX,
    CookieParameters,
    Session,
    SessionError,
    SessionOptions,
    new_session,
)


def make_request(headers: dict | None = None) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw, "query_string": b""})


class CountingCache(MemoryCache):
    """Memory cache recording how often the session writes"""

    def __init__(self, clock):
        super().__init__(clock=clock)
        self.puts = []
        self.sets = 0

    async def put(self, key, value, ttl=None):
        self.puts.append(ttl)
        await super().put(key, value, ttl)

    async def set(self, key, value):
        self.sets += 1
        return await super().set(key, value)


@pytest.fixture
def counting_cache(clock):
    return CountingCache(clock)


@pytest.fixture
def options():
    return SessionOptions(ttl=timedelta(hours=1), generator=iter(f"id-{n}" for n in range(100)).__next__)


class TestFreshSession:
    @pytest.mark.asyncio
    async def test_new_session_without_carrier_is_fresh(self, counting_cache, options):
        session = await new_session(make_request(), counting_cache, options)

        assert session.id == "id-0"
        assert session.is_fresh
        assert session.is_modified
        assert isinstance(session.created_at(), datetime)
        # Nothing is written before save
        assert counting_cache.puts == []

    @pytest.mark.asyncio
    async def test_fresh_session_is_written_once_with_configured_ttl(self, counting_cache, options):
        session = await new_session(make_request(), counting_cache, options)
        session.set("user", "alice")

        await session.save()
        await session.save()

        assert counting_cache.puts == [timedelta(hours=1)]
        assert counting_cache.sets == 0
        assert not session.is_fresh
        assert not session.is_modified

        stored = json.loads(await counting_cache.get(SESSION_KEY_PREFIX + "id-0"))
        assert stored["user"] == "alice"
        assert CREATED_AT_KEY in stored

    @pytest.mark.asyncio
    async def test_unknown_id_starts_fresh(self, cache):
        options = SessionOptions.with_cookie("sid")
        session = await new_session(make_request({"cookie": "sid=does-not-exist"}), cache, options)
        assert session.is_fresh
        assert session.id != "does-not-exist"


class TestLoadedSession:
    async def _stored(self, cache, options, **data) -> Session:
        session = await new_session(make_request(), cache, options)
        for key, value in data.items():
            session.set(key, value)
        await session.save()
        return session

    @pytest.mark.asyncio
    async def test_resumes_from_cookie(self, cache, options):
        first = await self._stored(cache, options, user="alice")

        request = make_request({"cookie": f"session={first.id}"})
        second = await new_session(request, cache, options)

        assert second.id == first.id
        assert not second.is_fresh
        assert not second.is_modified
        assert second.get("user") == "alice"
        assert second.cast("user").as_str() == "alice"
        assert second.created_at() == first.created_at()

    @pytest.mark.asyncio
    async def test_resumes_from_header(self, cache):
        options = SessionOptions.with_header("X-Session", ttl=timedelta(minutes=5))
        first = await self._stored(cache, options, n=1)

        second = await new_session(make_request({"X-Session": first.id}), cache, options)
        assert second.id == first.id
        assert second.cast("n").as_int() == 1

    @pytest.mark.asyncio
    async def test_unchanged_session_is_not_written(self, counting_cache, options):
        first = await self._stored(counting_cache, options)
        counting_cache.puts.clear()

        second = await new_session(make_request({"cookie": f"session={first.id}"}), counting_cache, options)
        await second.save()

        assert counting_cache.puts == []
        assert counting_cache.sets == 0

    @pytest.mark.asyncio
    async def test_modified_session_keeps_remaining_ttl(self, counting_cache, clock, options):
        first = await self._stored(counting_cache, options)
        clock.advance(600)

        second = await new_session(make_request({"cookie": f"session={first.id}"}), counting_cache, options)
        second.set("k", "v")
        await second.save()

        assert counting_cache.sets == 1
        assert await counting_cache.ttl(SESSION_KEY_PREFIX + first.id) == timedelta(minutes=50)

    @pytest.mark.asyncio
    async def test_add_ttl_extends_remaining(self, counting_cache, clock, options):
        first = await self._stored(counting_cache, options)
        clock.advance(600)

        second = await new_session(make_request({"cookie": f"session={first.id}"}), counting_cache, options)
        second.add_ttl(timedelta(minutes=30))
        assert second.is_modified
        await second.save()

        assert await counting_cache.ttl(SESSION_KEY_PREFIX + first.id) == timedelta(minutes=80)

    @pytest.mark.asyncio
    async def test_set_ttl_replaces_remaining(self, counting_cache, options):
        first = await self._stored(counting_cache, options)

        second = await new_session(make_request({"cookie": f"session={first.id}"}), counting_cache, options)
        second.set_ttl(timedelta(minutes=2))
        await second.save()

        assert await counting_cache.ttl(SESSION_KEY_PREFIX + first.id) == timedelta(minutes=2)

    @pytest.mark.asyncio
    async def test_non_positive_ttl_changes_are_ignored(self, cache, options):
        first = await self._stored(cache, options)
        second = await new_session(make_request({"cookie": f"session={first.id}"}), cache, options)

        second.add_ttl(timedelta(0))
        second.set_ttl(timedelta(seconds=-5))
        assert not second.is_modified

    @pytest.mark.asyncio
    async def test_destroy_removes_entry_and_expires_cookie(self, cache, options):
        first = await self._stored(cache, options, user="alice")
        second = await new_session(make_request({"cookie": f"session={first.id}"}), cache, options)

        await second.destroy()
        await second.save()

        assert second.id == ""
        assert second.all() == {}
        assert not await cache.exists(SESSION_KEY_PREFIX + first.id)

        response = Response()
        second.attach_to_response(response)
        cookie = response.headers["set-cookie"]
        assert cookie.startswith("session=")
        assert "Max-Age=0" in cookie

    @pytest.mark.asyncio
    async def test_corrupted_entry_raises(self, cache, options):
        await cache.put(SESSION_KEY_PREFIX + "broken", "{not json")
        with pytest.raises(SessionError):
            await new_session(make_request({"cookie": "session=broken"}), cache, options)


class TestSessionData:
    @pytest.mark.asyncio
    async def test_set_trims_and_ignores_empty_keys(self, cache, options):
        session = await new_session(make_request(), cache, options)
        session.set("  name  ", "x")
        session.set("   ", "ignored")

        assert session.get("name") == "x"
        assert "   " not in session.all()
        assert "" not in session.all()

    @pytest.mark.asyncio
    async def test_delete_and_exists(self, cache, options):
        session = await new_session(make_request(), cache, options)
        session.set("k", 1)
        assert session.exists("k")
        session.delete("k")
        assert not session.exists("k")
        assert session.cast("k").is_nil()


class TestCarrier:
    @pytest.mark.asyncio
    async def test_fresh_cookie_uses_written_ttl(self, cache, options):
        session = await new_session(make_request(), cache, options)
        await session.save()

        response = Response()
        session.attach_to_response(response)

        cookie = response.headers["set-cookie"]
        assert cookie.startswith(f"session={session.id}")
        assert "Max-Age=3600" in cookie
        assert "HttpOnly" in cookie
        assert "SameSite=lax" in cookie

    @pytest.mark.asyncio
    async def test_session_only_cookie_has_no_expiry(self, cache):
        options = SessionOptions.with_cookie("sid", CookieParameters(session_only=True))
        session = await new_session(make_request(), cache, options)
        await session.save()

        response = Response()
        session.attach_to_response(response)

        cookie = response.headers["set-cookie"]
        assert "Max-Age" not in cookie
        assert "expires" not in cookie.lower()

    @pytest.mark.asyncio
    async def test_header_mode_writes_response_header(self, cache):
        options = SessionOptions.with_header("X-Session")
        session = await new_session(make_request(), cache, options)
        await session.save()

        response = Response()
        session.attach_to_response(response)

        assert response.headers["X-Session"] == session.id
        assert "set-cookie" not in response.headers

    @pytest.mark.asyncio
    async def test_unchanged_loaded_session_writes_no_carrier(self, cache, options):
        first = await new_session(make_request(), cache, options)
        await first.save()

        second = await new_session(make_request({"cookie": f"session={first.id}"}), cache, options)
        await second.save()
        response = Response()
        second.attach_to_response(response)

        assert "set-cookie" not in response.headers

    @pytest.mark.asyncio
    async def test_queued_headers_and_cookies_are_written(self, cache, options):
        session = await new_session(make_request(), cache, options)
        session.set_response_header("X-Extra", "1")
        session.set_response_cookie("extra", "2", httponly=False)
        await session.save()

        response = Response()
        session.attach_to_response(response)

        assert response.headers["X-Extra"] == "1"
        cookies = response.headers.getlist("set-cookie")
        assert any(c.startswith("extra=2") for c in cookies)


class TestSessionOptions:
    def test_defaults(self):
        options = SessionOptions()
        assert options.ttl == timedelta(hours=24)
        assert options.name == "session"
        assert not options.header

    def test_rejects_empty_name_and_ttl(self):
        with pytest.raises(ValueError):
            SessionOptions(name="  ")
        with pytest.raises(ValueError):
            SessionOptions(ttl=timedelta(0))
