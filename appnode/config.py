"""Configuration settings for the chat application node."""

import os
from common.constants import PRIMARY_HOST, REPLICATION_PORT, REPLICATION_PATH


DATABASE_PATH = os.environ.get("APP_DATABASE_PATH", "/app/pb_data/records.db")

HTTP_HOST = os.environ.get("APP_HTTP_HOST", "0.0.0.0")

HTTP_PORT = int(os.environ.get("APP_HTTP_PORT", "8090"))

PUBLIC_DIR = os.environ.get("APP_PUBLIC_DIR", "./pb_public")

LISTENER_HOST = os.environ.get("REPLICATION_LISTEN_HOST", "0.0.0.0")

PRIMARY_URL = os.environ.get(
    "PRIMARY_URL",
    f"ws://{PRIMARY_HOST}:{REPLICATION_PORT}{REPLICATION_PATH}"
)
