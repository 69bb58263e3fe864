"""Tests for the replica-side leader locator loop."""

import asyncio
import time
from types import SimpleNamespace
from unittest.mock import MagicMock

import aiohttp
import pytest
from aiohttp import WSMsgType

from appnode.replication.leader_locator import LeaderLocator
from appnode.replication.role import NodeRole, RoleState

from conftest import FakePrimaryStream


class BrokenStream(FakePrimaryStream):
    """Yields its frames, then fails the read."""

    async def _iterate(self):
        for frame in self.frames:
            yield SimpleNamespace(type=WSMsgType.TEXT, data=frame)
        raise aiohttp.ClientPayloadError("Connection reset by peer")


def _locator(role=None, retry_interval=0.05):
    ingestion = MagicMock()
    locator = LeaderLocator(
        role or RoleState(),
        ingestion,
        url="ws://primary.invalid:8081/ws",
        retry_interval=retry_interval
    )
    return locator, ingestion


class TestReconnect:
    """Dial failures are retried at a fixed interval until one succeeds."""

    @pytest.mark.asyncio
    async def test_converges_after_failures(self):
        failures = 3
        locator, ingestion = _locator()
        stream = FakePrimaryStream(["1:abc:hi:u1", "2:u1:alice"])
        received_at = []
        ingestion.handle_frame.side_effect = lambda frame: received_at.append(time.monotonic())
        calls = 0

        async def dial(session):
            nonlocal calls
            calls += 1
            if calls <= failures:
                raise aiohttp.ClientConnectionError("Connection refused")
            if calls == failures + 1:
                return stream
            locator.running = False
            raise aiohttp.ClientConnectionError("Connection refused")

        locator._dial = dial
        started = time.monotonic()

        await asyncio.wait_for(locator.run(), timeout=5)

        assert [c.args[0] for c in ingestion.handle_frame.call_args_list] == ["1:abc:hi:u1", "2:u1:alice"]
        assert received_at[0] - started < failures * locator.retry_interval + 1.0
        assert stream.closed
        assert calls == failures + 2
        assert locator.attempts == failures + 2
        assert locator.role.role is NodeRole.REPLICA
        assert not locator.role.has_outbound
        assert not locator.connected

    @pytest.mark.asyncio
    async def test_timeout_and_os_errors_are_retried(self):
        locator, _ = _locator()
        errors = [asyncio.TimeoutError(), OSError("Network unreachable")]

        async def dial(session):
            if errors:
                raise errors.pop(0)
            locator.running = False
            raise aiohttp.ClientConnectionError("Connection refused")

        locator._dial = dial

        await asyncio.wait_for(locator.run(), timeout=5)

        assert locator.attempts == 3

    @pytest.mark.asyncio
    async def test_receive_error_resumes_dialing(self):
        locator, ingestion = _locator()

        streams = [BrokenStream(["2:u1:alice"]), FakePrimaryStream(["1:abc:hi:u1"])]

        async def dial(session):
            if streams:
                return streams.pop(0)
            locator.running = False
            raise aiohttp.ClientConnectionError("Connection refused")

        locator._dial = dial

        await asyncio.wait_for(locator.run(), timeout=5)

        assert [c.args[0] for c in ingestion.handle_frame.call_args_list] == ["2:u1:alice", "1:abc:hi:u1"]
        assert locator.attempts == 3


class TestPromotion:
    """The locator stops dialing once the node is primary."""

    @pytest.mark.asyncio
    async def test_primary_does_not_dial(self):
        role = RoleState()
        role.try_promote()
        locator, _ = _locator(role)

        await asyncio.wait_for(locator.run(), timeout=1)

        assert locator.attempts == 0

    @pytest.mark.asyncio
    async def test_promotion_during_backoff_stops_loop(self):
        role = RoleState()
        locator, _ = _locator(role, retry_interval=0.05)

        async def dial(session):
            role.try_promote()
            raise aiohttp.ClientConnectionError("Connection refused")

        locator._dial = dial

        await asyncio.wait_for(locator.run(), timeout=1)

        assert locator.attempts == 1
        assert role.is_primary

    @pytest.mark.asyncio
    async def test_connection_discarded_if_promoted_while_dialing(self):
        role = RoleState()
        locator, ingestion = _locator(role)
        stream = FakePrimaryStream(["1:abc:hi:u1"])

        async def dial(session):
            role.try_promote()
            return stream

        locator._dial = dial

        await asyncio.wait_for(locator.run(), timeout=1)

        assert stream.closed
        ingestion.handle_frame.assert_not_called()
        assert role.is_primary
        assert not role.has_outbound


class TestLifecycle:
    """Test start/stop of the background task."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        locator, _ = _locator(retry_interval=10)

        async def dial(session):
            raise aiohttp.ClientConnectionError("Connection refused")

        locator._dial = dial

        await locator.start()
        await asyncio.sleep(0.05)
        task = locator._task
        await locator.start()

        assert locator._task is task
        assert locator.attempts == 1

        await locator.stop()

        assert task.done()
        assert not locator.running
