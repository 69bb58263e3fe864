"""Collection record API routes."""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, status

from common.logging_config import get_logger
from appnode.schemas.common import ErrorResponse
from appnode.services.record_service import RecordService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/collections", tags=["Records"])

ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
}

_record_service: RecordService = None


def set_record_service(service: RecordService):
    """Set the global record service instance"""
    global _record_service
    _record_service = service


def get_record_service() -> RecordService:
    """Dependency to get record service"""
    return _record_service


@router.post(
    "/{collection}/records",
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES
)
async def create_record(
    collection: str,
    data: Dict[str, Any] = Body(...),
    service: RecordService = Depends(get_record_service)
):
    """
    Create a record in a collection.

    Runs the before-create hooks (which may promote this node to primary),
    stores the record, then runs the after-create hooks (which broadcast it
    to replicas).

    Raises:
        - 404: Unknown collection
        - 400: Validation failed
    """
    record = await service.create_record(collection, data)
    return record.to_dict()


@router.get("/{collection}/records", responses=ERROR_RESPONSES)
async def list_records(
    collection: str,
    service: RecordService = Depends(get_record_service)
):
    """List all records of a collection, oldest first."""
    records = service.list_records(collection)
    return {
        "items": [record.to_dict() for record in records],
        "totalItems": len(records)
    }


@router.get("/{collection}/records/{record_id}", responses=ERROR_RESPONSES)
async def get_record(
    collection: str,
    record_id: str,
    service: RecordService = Depends(get_record_service)
):
    """Fetch one record by id."""
    return service.get_record(collection, record_id).to_dict()
