"""Service layer for business logic."""

from appnode.services.record_service import RecordService

__all__ = [
    "RecordService",
]
