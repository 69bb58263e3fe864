"""Shared pytest fixtures for all tests."""

import asyncio
import tempfile
from pathlib import Path
from types import SimpleNamespace

import pytest
from aiohttp import WSMsgType

from appnode.database import init_database


@pytest.fixture
def test_db(monkeypatch):
    """
    Create a temporary test database for each test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        monkeypatch.setattr("appnode.database.DATABASE_PATH", str(db_path))
        monkeypatch.setattr("appnode.config.DATABASE_PATH", str(db_path))
        init_database()
        yield db_path


class FakeFollowerSocket:
    """Stands in for a server-side websocket held open to one replica."""

    def __init__(self, broken: bool = False, delay: float = 0.0):
        self.broken = broken
        self.delay = delay
        self.closed = False
        self.sent = []

    async def send_str(self, data: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.broken:
            raise ConnectionResetError("Cannot write to closing transport")
        self.sent.append(data)

    async def close(self) -> None:
        self.closed = True


class FakePrimaryStream:
    """Stands in for a client websocket to the primary that yields text frames, then ends."""

    def __init__(self, frames):
        self.frames = list(frames)
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for frame in self.frames:
            yield SimpleNamespace(type=WSMsgType.TEXT, data=frame)

    def exception(self):
        return None

    async def close(self) -> None:
        self.closed = True


async def wait_until(predicate, timeout: float = 3.0, interval: float = 0.01):
    """Poll an async or sync predicate until it is truthy."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        result = predicate()
        if asyncio.iscoroutine(result):
            result = await result
        if result:
            return result
        if loop.time() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(interval)
