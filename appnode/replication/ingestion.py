"""Replica-side application of write notifications received from the primary."""

from common.logging_config import get_logger
from appnode.exceptions import (
    CollectionNotFoundError,
    RecordValidationError,
    WireDecodeError,
)
from appnode.replication.codec import WriteNotification, decode
from appnode.repositories.record_repository import RecordRepository

logger = get_logger(__name__)


class IngestionHandler:
    """
    Turns notifications into upserts keyed by record id.

    Failures are logged and the notification is dropped; nothing here raises
    into the receive loop.
    """

    def __init__(self, repository=RecordRepository):
        self.repository = repository

    def handle_frame(self, frame: str) -> bool:
        try:
            notification = decode(frame)
        except WireDecodeError as e:
            logger.warning(f"Dropping malformed frame ({len(frame or '')} chars): {e}")
            return False
        logger.info(
            f"Received {notification.kind.collection} notification "
            f"[id={notification.record_id}] ({len(frame)} chars)"
        )
        return self.apply(notification)

    def apply(self, notification: WriteNotification) -> bool:
        collection_name = notification.kind.collection
        try:
            collection = self.repository.find_collection(collection_name)
            self.repository.upsert(collection, notification.record_id, notification.values)
        except CollectionNotFoundError as e:
            logger.error(f"Dropping notification [id={notification.record_id}]: {e}")
            return False
        except RecordValidationError as e:
            logger.warning(
                f"Upsert rejected for {collection_name} [id={notification.record_id}]: "
                f"{e} {e.errors}"
            )
            return False
        except Exception as e:
            logger.error(
                f"Failed to apply {collection_name} notification [id={notification.record_id}]: {e}",
                exc_info=True
            )
            return False

        logger.debug(f"Applied {collection_name} notification [id={notification.record_id}]")
        return True
