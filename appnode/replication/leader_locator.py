"""Replica-side loop that finds the primary and consumes its notifications."""

import asyncio
from typing import Optional

import aiohttp
from aiohttp import WSMsgType

from common.constants import RECONNECT_INTERVAL_SECONDS
from common.logging_config import get_logger
from appnode.config import PRIMARY_URL
from appnode.replication.ingestion import IngestionHandler
from appnode.replication.role import RoleState

logger = get_logger(__name__)


class LeaderLocator:
    """
    Keeps dialing the well-known primary address until a connection succeeds.

    Dial failures are retried after a fixed interval, forever. A successful
    connection is read until it closes or errors, then dialing resumes. The
    loop ends once this node has been promoted to primary.
    """

    def __init__(
        self,
        role: RoleState,
        ingestion: IngestionHandler,
        url: str = PRIMARY_URL,
        retry_interval: float = RECONNECT_INTERVAL_SECONDS,
        connect_timeout: float = 10.0
    ):
        self.role = role
        self.ingestion = ingestion
        self.url = url
        self.retry_interval = retry_interval
        self.connect_timeout = connect_timeout
        self.running = False
        self.attempts = 0
        self._ws = None
        self._task: Optional[asyncio.Task] = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def start(self):
        """Start the locator background task"""
        if self._task is not None and not self._task.done():
            return
        self.running = True
        self._task = asyncio.create_task(self.run())
        logger.info(f"Leader locator started - primary={self.url}")

    async def stop(self):
        """Stop the locator and close any open connection to the primary"""
        self.running = False
        if self._ws is not None:
            await self._ws.close()
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("Leader locator stopped")

    async def run(self):
        self.running = True
        async with aiohttp.ClientSession() as session:
            while self.running and not self.role.is_primary:
                ws = await self._connect(session)
                if ws is None:
                    await asyncio.sleep(self.retry_interval)
                    continue
                await self._receive(ws)

        if self.role.is_primary:
            logger.info("Node is primary, no longer dialing out")

    async def _connect(self, session: aiohttp.ClientSession):
        self.attempts += 1
        logger.info(f"Attempting to connect to primary at {self.url} (attempt {self.attempts})")
        try:
            ws = await self._dial(session)
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
            logger.warning(f"Error connecting to primary at {self.url}: {e!r}")
            self.role.mark_replica()
            return None

        if not self.role.attach_outbound():
            logger.info("Promoted to primary while dialing, discarding connection")
            await ws.close()
            return None

        logger.info(f"Connected to primary at {self.url}")
        return ws

    async def _dial(self, session: aiohttp.ClientSession):
        return await asyncio.wait_for(session.ws_connect(self.url), timeout=self.connect_timeout)

    async def _receive(self, ws):
        self._ws = ws
        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    self.ingestion.handle_frame(msg.data)
                elif msg.type == WSMsgType.ERROR:
                    logger.warning(f"Error receiving from primary: {ws.exception()}")
                    break
                else:
                    logger.debug(f"Ignoring {msg.type.name} frame from primary")
            logger.info("Connection to primary closed. Reconnecting...")
        except Exception as e:
            logger.warning(f"Error receiving from primary: {e!r}. Reconnecting...")
        finally:
            self._ws = None
            self.role.detach_outbound()
            await ws.close()
