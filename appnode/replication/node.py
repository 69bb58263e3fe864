"""Wires role detection and write propagation into the record write path."""

import asyncio
from typing import Any, Dict, Optional

from common.constants import REPLICATION_PORT, RECONNECT_INTERVAL_SECONDS
from common.logging_config import get_logger
from appnode.config import LISTENER_HOST, PRIMARY_URL
from appnode.hooks import RecordCreateEvent, WriteHookRegistry
from appnode.replication.broadcast import Broadcaster
from appnode.replication.codec import EntityKind, WriteNotification
from appnode.replication.follower_registry import FollowerRegistry
from appnode.replication.ingestion import IngestionHandler
from appnode.replication.leader_locator import LeaderLocator
from appnode.replication.listener import ReplicationListener
from appnode.replication.role import RoleState

logger = get_logger(__name__)

REPLICATED_COLLECTIONS = tuple(kind.collection for kind in EntityKind)

SETTLE_FACTOR = 1.5


class ReplicationNode:
    """
    One node's replication components.

    Every node starts out dialing the primary. The first replicated write that
    arrives while no outbound connection exists promotes the node: the
    listener is started and the write waits out a settle interval so replicas
    in their redial backoff can connect. From then on every replicated write
    is broadcast to the connected followers.
    """

    def __init__(
        self,
        ingestion: Optional[IngestionHandler] = None,
        primary_url: str = PRIMARY_URL,
        listen_host: str = LISTENER_HOST,
        listen_port: int = REPLICATION_PORT,
        retry_interval: float = RECONNECT_INTERVAL_SECONDS,
        settle_interval: Optional[float] = None
    ):
        if settle_interval is None:
            # Outlast a replica that began its redial backoff just before promotion.
            settle_interval = retry_interval * SETTLE_FACTOR
        self.settle_interval = settle_interval
        self._ready = asyncio.Event()
        self.role = RoleState()
        self.registry = FollowerRegistry()
        self.listener = ReplicationListener(self.registry, host=listen_host, port=listen_port)
        self.broadcaster = Broadcaster(self.role, self.registry)
        self.ingestion = ingestion or IngestionHandler()
        self.locator = LeaderLocator(
            self.role,
            self.ingestion,
            url=primary_url,
            retry_interval=retry_interval
        )

    def install(self, hooks: WriteHookRegistry) -> None:
        hooks.before_create(REPLICATED_COLLECTIONS, self.check_promotion)
        hooks.after_create(REPLICATED_COLLECTIONS, self.propagate)

    async def start(self) -> None:
        await self.locator.start()

    async def stop(self) -> None:
        await self.locator.stop()
        await self.listener.stop()

    async def check_promotion(self, event: RecordCreateEvent) -> None:
        """
        A write reached us with no primary connection, so we must be the primary.

        The winning write starts the listener and then holds for one settle
        interval, so replicas sleeping out a redial backoff connect before the
        first broadcast. Writes racing the promotion wait for the same point.
        """
        if not self.role.try_promote():
            if self.role.is_primary:
                await self._ready.wait()
            return

        logger.info(
            f"No active connection to a primary and received a {event.collection} write "
            f"-- promoting this node to primary"
        )
        try:
            if await self.listener.start():
                logger.info(f"Waiting {self.settle_interval}s for replicas to connect")
                await asyncio.sleep(self.settle_interval)
            else:
                logger.warning("Continuing as primary without a local replication listener")
        finally:
            self._ready.set()

    async def propagate(self, event: RecordCreateEvent) -> None:
        if not self.role.is_primary:
            return
        notification = WriteNotification.from_record(event.collection, event.record)
        await self.broadcaster.publish(notification)

    async def status(self) -> Dict[str, Any]:
        result = self.role.snapshot()
        result.update({
            "primary_url": self.locator.url,
            "dial_attempts": self.locator.attempts,
            "listener_running": self.listener.running,
            "listener_port": self.listener.port,
            "followers": await self.registry.addresses(),
        })
        return result
