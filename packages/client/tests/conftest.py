"""Test fixtures — in-memory cache/router plus fake WebSocket plumbing.

Learn: Nothing here opens a real socket or HTTP connection.
- FakeSocket is an async-iterable queue of frames; pushing None closes it
  cleanly, pushing an exception simulates a transport error.
- FakeConnector stands in for websockets' connect(): it hands out a new
  FakeSocket per attempt (or raises, to simulate a refused connection).
- GatedSleep replaces asyncio.sleep in the reconnect loop so tests can see
  exactly when a reconnect is scheduled and release it by hand.
- REST calls go through httpx.MockTransport.
"""

import asyncio
import json

import pytest
import pytest_asyncio

from projectpulse.cache.query_cache import QueryCache
from projectpulse.realtime.notifications import CollectingNotifier
from projectpulse.realtime.router import EventRouter


class FakeSocket:
    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()
        self.close_calls = 0

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        while True:
            item = await self.queue.get()
            if item is None:
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    def push(self, frame):
        self.queue.put_nowait(frame)

    def push_event(self, event_type: str, payload: dict | None = None):
        self.push(json.dumps({"type": event_type, "payload": payload or {}}))

    def server_close(self):
        self.queue.put_nowait(None)

    def fail(self, exc: BaseException):
        self.queue.put_nowait(exc)

    async def close(self):
        self.close_calls += 1
        self.queue.put_nowait(None)


class FakeConnector:
    def __init__(self, failures: int = 0):
        self.urls: list[str] = []
        self.sockets: list[FakeSocket] = []
        self.failures = failures

    async def __call__(self, url: str) -> FakeSocket:
        self.urls.append(url)
        if self.failures:
            self.failures -= 1
            raise OSError("connection refused")
        socket = FakeSocket()
        self.sockets.append(socket)
        return socket

    @property
    def calls(self) -> int:
        return len(self.urls)

    @property
    def current(self) -> FakeSocket:
        return self.sockets[-1]


class GatedSleep:
    def __init__(self):
        self.calls: list[float] = []
        self._gate = asyncio.Event()

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        await self._gate.wait()
        self._gate.clear()

    def release(self) -> None:
        self._gate.set()


async def settle(rounds: int = 20) -> None:
    """Let pending callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture()
def cache():
    return QueryCache()


@pytest.fixture()
def notifier():
    return CollectingNotifier()


@pytest.fixture()
def router(cache, notifier):
    return EventRouter(cache, notifier)


@pytest_asyncio.fixture()
async def connector():
    return FakeConnector()


@pytest_asyncio.fixture()
async def gated_sleep():
    return GatedSleep()


@pytest.fixture()
def wait_idle():
    return settle


@pytest.fixture()
def socket_factory():
    return FakeSocket


@pytest.fixture()
def connector_factory():
    return FakeConnector
