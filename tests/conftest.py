"""Shared test fixtures for the bifrost test suite."""

from __future__ import annotations

import asyncio
from collections import deque
from datetime import UTC, datetime, timedelta

import pytest

from bifrost.cache import CacheStore, RefreshTracker
from bifrost.connector import Connector
from bifrost.models.cache import ResponseEnvelope

BASE_URL = "https://wiki.example.org/w/api.php"


def envelope(body: object, status: int = 200) -> ResponseEnvelope:
    return ResponseEnvelope(status=status, headers={"content-type": "application/json"}, body=body)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeUpstream:
    """In-memory FetchClientProtocol implementation.

    Results are served in queue order; an exception instance is raised
    instead of returned. When ``gate`` is set, every fetch blocks on it,
    which lets a test hold a refresh open while it issues more reads.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.results: deque[ResponseEnvelope | Exception] = deque()
        self.gate: asyncio.Event | None = None

    def queue(self, *results: ResponseEnvelope | Exception) -> None:
        self.results.extend(results)

    async def fetch_remote(self, url: str) -> ResponseEnvelope:
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        else:
            # Yield like a real network round-trip would
            await asyncio.sleep(0)
        result = self.results.popleft()
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture()
def store(clock: FakeClock) -> CacheStore:
    return CacheStore(clock=clock)


@pytest.fixture()
def tracker(clock: FakeClock) -> RefreshTracker:
    return RefreshTracker(clock=clock)


@pytest.fixture()
def connector(store: CacheStore, tracker: RefreshTracker, upstream: FakeUpstream) -> Connector:
    return Connector(store, tracker, upstream, base_url=BASE_URL)
