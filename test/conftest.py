import logging

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from httpguard.cache import MemoryCache, MemoryQueue


class FakeClock:
    """Monotonic clock that only moves when told to"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """Configure logging for tests."""
    logging.basicConfig(level=logging.INFO)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return MemoryCache(clock=clock)


@pytest.fixture
def queue():
    return MemoryQueue()


def make_client(app: FastAPI, base_url: str = "http://localhost:5000") -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url=base_url)


@pytest_asyncio.fixture
async def client_factory():
    """Open AsyncClients for ad hoc apps and close them after the test"""
    clients = []

    def factory(app: FastAPI, base_url: str = "http://localhost:5000") -> AsyncClient:
        client = make_client(app, base_url)
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()
