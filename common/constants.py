"""Project-wide constants (replication endpoint, wire tags, timeouts)."""

import os

REPLICATION_PORT: int = int(os.getenv("REPLICATION_PORT", "8081"))
REPLICATION_PATH: str = os.getenv("REPLICATION_PATH", "/ws")

# Docker alias for the host machine; every node dials the same address.
PRIMARY_HOST: str = os.getenv("PRIMARY_HOST", "host.docker.internal")

RECONNECT_INTERVAL_SECONDS: float = float(os.getenv("RECONNECT_INTERVAL", "3"))
FOLLOWER_SEND_TIMEOUT_SECONDS: float = float(os.getenv("FOLLOWER_SEND_TIMEOUT", "5"))

WIRE_FIELD_SEPARATOR: str = ":"
MESSAGE_TAG: str = "1"
USER_TAG: str = "2"
