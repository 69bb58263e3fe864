"""Node role tracking: undetermined, replica or primary."""

import threading
from enum import Enum
from typing import Any, Dict

from common.logging_config import get_logger

logger = get_logger(__name__)


class NodeRole(str, Enum):
    UNDETERMINED = "undetermined"
    REPLICA = "replica"
    PRIMARY = "primary"


class RoleState:
    """
    Single state cell for the node's role and its outbound connection flag.

    Both values live behind one lock so promotion and a late successful dial
    cannot interleave: promotion requires no outbound connection, and an
    outbound connection is refused once the node is primary. The primary role
    is latched for the lifetime of the process.

    Request handlers may run on worker threads, so this uses a threading lock;
    no critical section awaits.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._role = NodeRole.UNDETERMINED
        self._outbound = False

    @property
    def role(self) -> NodeRole:
        with self._lock:
            return self._role

    @property
    def is_primary(self) -> bool:
        return self.role is NodeRole.PRIMARY

    @property
    def has_outbound(self) -> bool:
        with self._lock:
            return self._outbound

    def mark_replica(self) -> None:
        with self._lock:
            if self._role is NodeRole.UNDETERMINED:
                self._role = NodeRole.REPLICA
                logger.info("Role changed: undetermined -> replica")

    def try_promote(self) -> bool:
        """
        Promote this node to primary.

        Returns:
            True for the single caller that performed the promotion; False if
            the node is already primary or is connected to a primary
        """
        with self._lock:
            if self._role is NodeRole.PRIMARY or self._outbound:
                return False
            previous = self._role
            self._role = NodeRole.PRIMARY

        logger.info(f"Role changed: {previous.value} -> primary")
        return True

    def attach_outbound(self) -> bool:
        """Record an open connection to the primary. Refused once promoted."""
        with self._lock:
            if self._role is NodeRole.PRIMARY:
                return False
            self._outbound = True
            if self._role is NodeRole.UNDETERMINED:
                self._role = NodeRole.REPLICA
            return True

    def detach_outbound(self) -> None:
        with self._lock:
            self._outbound = False

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {"role": self._role.value, "outbound_connected": self._outbound}
