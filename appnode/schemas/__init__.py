"""Pydantic schemas for API requests and responses."""

from appnode.schemas.replication import ReplicationStatusResponse
from appnode.schemas.common import ErrorResponse

__all__ = [
    "ReplicationStatusResponse",
    "ErrorResponse"
]
