"""Registry of replica connections held open by the primary."""

import asyncio
from typing import Any, List

from common.constants import FOLLOWER_SEND_TIMEOUT_SECONDS
from common.logging_config import get_logger

logger = get_logger(__name__)


class FollowerConnection:
    """An open websocket to one replica, identified by its remote address."""

    def __init__(self, address: str, websocket: Any):
        self.address = address
        self.websocket = websocket

    @property
    def closed(self) -> bool:
        return bool(getattr(self.websocket, "closed", False))

    async def send(self, payload: str) -> None:
        if self.closed:
            raise ConnectionResetError(f"Connection to {self.address} is closed")
        await self.websocket.send_str(payload)

    def __repr__(self) -> str:
        return f"FollowerConnection({self.address!r})"


class FollowerRegistry:
    """
    Set of live follower connections.

    Mutations and snapshots happen under one asyncio lock; sends happen on a
    snapshot outside the lock so a slow follower never stalls registration or
    delivery to the others.
    """

    def __init__(self, send_timeout: float = FOLLOWER_SEND_TIMEOUT_SECONDS):
        self.send_timeout = send_timeout
        self._followers: List[FollowerConnection] = []
        self.lock = asyncio.Lock()

    async def register(self, conn: FollowerConnection) -> None:
        async with self.lock:
            if conn not in self._followers:
                self._followers.append(conn)
            total = len(self._followers)
        logger.info(f"Follower connected: {conn.address} ({total} total)")

    async def unregister(self, conn: FollowerConnection) -> bool:
        async with self.lock:
            if conn not in self._followers:
                return False
            self._followers.remove(conn)
            total = len(self._followers)
        logger.info(f"Follower removed: {conn.address} ({total} remaining)")
        return True

    async def count(self) -> int:
        async with self.lock:
            return len(self._followers)

    async def addresses(self) -> List[str]:
        async with self.lock:
            return [conn.address for conn in self._followers]

    async def close_all(self) -> None:
        """Close every follower connection and empty the registry."""
        async with self.lock:
            snapshot = list(self._followers)
            self._followers.clear()

        await asyncio.gather(*(self._close_one(conn) for conn in snapshot))

    async def send_or_drop(self, payload: str) -> int:
        """
        Send payload to every registered follower, dropping those that fail.

        Returns:
            Number of followers the payload was delivered to
        """
        async with self.lock:
            snapshot = list(self._followers)

        if not snapshot:
            logger.debug("No followers registered, nothing to send")
            return 0

        results = await asyncio.gather(
            *(self._send_one(conn, payload) for conn in snapshot),
            return_exceptions=True
        )

        failed = [conn for conn, ok in zip(snapshot, results) if ok is not True]
        if failed:
            async with self.lock:
                for conn in failed:
                    if conn in self._followers:
                        self._followers.remove(conn)
            logger.warning(
                f"Dropped {len(failed)} unreachable follower(s): {[c.address for c in failed]}"
            )
            # Closing lets the replica see the drop and redial.
            await asyncio.gather(*(self._close_one(conn) for conn in failed))

        delivered = len(snapshot) - len(failed)
        logger.debug(f"Broadcast delivered to {delivered}/{len(snapshot)} follower(s)")
        return delivered

    async def _close_one(self, conn: FollowerConnection) -> None:
        try:
            await asyncio.wait_for(conn.websocket.close(), timeout=self.send_timeout)
        except asyncio.TimeoutError:
            logger.debug(f"Closing follower {conn.address} timed out")
        except Exception as e:
            logger.debug(f"Error closing follower {conn.address}: {e}")

    async def _send_one(self, conn: FollowerConnection, payload: str) -> bool:
        try:
            await asyncio.wait_for(conn.send(payload), timeout=self.send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Send to follower {conn.address} timed out")
            return False
        except Exception as e:
            logger.warning(f"Error sending to follower {conn.address}: {e}")
            return False
