"""Repository layer for data access."""

from appnode.repositories.record_repository import (
    Collection,
    Record,
    RecordRepository,
)

__all__ = [
    "Collection",
    "Record",
    "RecordRepository",
]
