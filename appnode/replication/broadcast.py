"""Fan-out of write notifications from the primary to its followers."""

from common.logging_config import get_logger
from appnode.replication.codec import WriteNotification, encode
from appnode.replication.follower_registry import FollowerRegistry
from appnode.replication.role import RoleState

logger = get_logger(__name__)


class Broadcaster:
    def __init__(self, role: RoleState, registry: FollowerRegistry):
        self.role = role
        self.registry = registry

    async def publish(self, notification: WriteNotification) -> int:
        """
        Send a notification to every follower when this node is primary.

        Followers that fail are dropped; they catch up only with writes made
        after they reconnect.

        Returns:
            Number of followers the frame was delivered to
        """
        if not self.role.is_primary:
            logger.debug(f"Not primary, skipping broadcast of {notification.kind.name} {notification.record_id}")
            return 0

        frame = encode(notification)
        logger.info(f"Broadcasting {notification.kind.name} notification [id={notification.record_id}]")
        return await self.registry.send_or_drop(frame)
