"""Record service: create and read collection records through the write hooks."""

from typing import Dict, List

from common.logging_config import get_logger
from appnode.hooks import RecordCreateEvent, WriteHookRegistry
from appnode.repositories.record_repository import Record, RecordRepository

logger = get_logger(__name__)


class RecordService:
    def __init__(self, hooks: WriteHookRegistry, repository=RecordRepository):
        self.hooks = hooks
        self.repository = repository

    async def create_record(self, collection_name: str, data: Dict[str, object]) -> Record:
        logger.info(f"Create request for {collection_name}")
        collection = self.repository.find_collection(collection_name)
        record = self.repository.new_record(collection, data)

        event = RecordCreateEvent(collection=collection.name, record=record)
        await self.hooks.run_before_create(event)

        record = self.repository.insert(collection, record)
        event.record = record

        await self.hooks.run_after_create(event)
        return record

    def get_record(self, collection_name: str, record_id: str) -> Record:
        collection = self.repository.find_collection(collection_name)
        return self.repository.get(collection, record_id)

    def list_records(self, collection_name: str) -> List[Record]:
        collection = self.repository.find_collection(collection_name)
        return self.repository.list(collection)
