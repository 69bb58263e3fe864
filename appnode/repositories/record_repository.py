"""Record repository for collection-backed database operations."""

import re
import secrets
import sqlite3
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from common.logging_config import get_logger
from appnode.database import get_db_connection
from appnode.exceptions import (
    CollectionNotFoundError,
    RecordNotFoundError,
    RecordValidationError,
)

logger = get_logger(__name__)

RECORD_ID_LENGTH = 15
RECORD_ID_ALPHABET = string.ascii_lowercase + string.digits
RECORD_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


@dataclass(frozen=True)
class Collection:
    name: str
    fields: Tuple[str, ...]
    required: Tuple[str, ...] = ()
    unique: Tuple[str, ...] = ()


COLLECTIONS: Dict[str, Collection] = {
    "messages": Collection(
        name="messages",
        fields=("content", "user"),
        required=("content", "user"),
    ),
    "users": Collection(
        name="users",
        fields=("username",),
        required=("username",),
        unique=("username",),
    ),
}


@dataclass
class Record:
    collection: str
    id: str
    data: Dict[str, str] = field(default_factory=dict)
    created: Optional[str] = None
    updated: Optional[str] = None

    def get_string(self, name: str) -> str:
        value = self.data.get(name)
        return "" if value is None else str(value)

    def to_dict(self) -> Dict[str, str]:
        result = {"id": self.id, "collectionName": self.collection}
        result.update(self.data)
        result["created"] = self.created
        result["updated"] = self.updated
        return result


def generate_record_id() -> str:
    """Generate a random 15 character lowercase alphanumeric record id."""
    return "".join(secrets.choice(RECORD_ID_ALPHABET) for _ in range(RECORD_ID_LENGTH))


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RecordRepository:
    @staticmethod
    def find_collection(name: str) -> Collection:
        collection = COLLECTIONS.get(name)
        if collection is None:
            logger.debug(f"Collection not found: {name}")
            raise CollectionNotFoundError(f"Collection '{name}' not found")
        return collection

    @staticmethod
    def validate(collection: Collection, record_id: str, fields: Dict[str, object]) -> Dict[str, str]:
        """
        Check record data against the collection definition.

        Returns:
            Normalized field values in collection field order

        Raises:
            RecordValidationError: If the id or any field is invalid
        """
        errors: Dict[str, str] = {}

        if not isinstance(record_id, str) or not RECORD_ID_PATTERN.match(record_id):
            errors["id"] = "must be 1-64 characters of letters, digits, '_' or '-'"

        unknown = sorted(set(fields) - set(collection.fields) - {"id"})
        for name in unknown:
            errors[name] = "unknown field"

        values: Dict[str, str] = {}
        for name in collection.fields:
            value = fields.get(name)
            if value is not None and not isinstance(value, str):
                errors[name] = "must be a string"
                continue
            if name in collection.required and not value:
                errors[name] = "cannot be blank"
                continue
            values[name] = value or ""

        if errors:
            raise RecordValidationError(
                f"Failed to validate {collection.name} record '{record_id}'", errors
            )
        return values

    @staticmethod
    def new_record(collection: Collection, data: Dict[str, object]) -> Record:
        """Build a validated, not yet persisted record. Generates an id when none is given."""
        record_id = data.get("id") or generate_record_id()
        values = RecordRepository.validate(collection, record_id, data)
        return Record(collection=collection.name, id=record_id, data=values)

    @staticmethod
    def insert(collection: Collection, record: Record) -> Record:
        logger.debug(f"Creating {collection.name} record [id={record.id}]")
        now = _now()
        columns = ("id",) + collection.fields + ("created", "updated")
        params = (record.id,) + tuple(record.data[name] for name in collection.fields) + (now, now)

        with get_db_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    f"INSERT INTO {collection.name} ({', '.join(columns)}) "
                    f"VALUES ({', '.join('?' for _ in columns)})",
                    params
                )
                conn.commit()
            except sqlite3.IntegrityError as e:
                logger.warning(f"Failed to create {collection.name} record [id={record.id}]: {e}")
                raise RecordValidationError(
                    f"Failed to create {collection.name} record '{record.id}': {e}"
                )

        record.created = now
        record.updated = now
        logger.info(f"Created {collection.name} record [id={record.id}]")
        return record

    @staticmethod
    def upsert(collection: Collection, record_id: str, fields: Dict[str, object]) -> Record:
        """
        Create the record with the given id, or overwrite its fields if it exists.

        Re-applying identical values leaves the stored row untouched.

        Raises:
            RecordValidationError: If validation or a uniqueness constraint fails
        """
        values = RecordRepository.validate(collection, record_id, fields)

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT * FROM {collection.name} WHERE id = ?", (record_id,))
            row = cursor.fetchone()

            if row is not None and all(row[name] == values[name] for name in collection.fields):
                logger.debug(f"Upsert is a no-op for {collection.name} record [id={record_id}]")
                return RecordRepository._row_to_record(collection, row)

            now = _now()
            try:
                if row is None:
                    columns = ("id",) + collection.fields + ("created", "updated")
                    cursor.execute(
                        f"INSERT INTO {collection.name} ({', '.join(columns)}) "
                        f"VALUES ({', '.join('?' for _ in columns)})",
                        (record_id,) + tuple(values[name] for name in collection.fields) + (now, now)
                    )
                    created = now
                else:
                    assignments = ", ".join(f"{name} = ?" for name in collection.fields)
                    cursor.execute(
                        f"UPDATE {collection.name} SET {assignments}, updated = ? WHERE id = ?",
                        tuple(values[name] for name in collection.fields) + (now, record_id)
                    )
                    created = row["created"]
                conn.commit()
            except sqlite3.IntegrityError as e:
                logger.warning(f"Upsert rejected for {collection.name} record [id={record_id}]: {e}")
                raise RecordValidationError(
                    f"Failed to upsert {collection.name} record '{record_id}': {e}"
                )

        logger.info(
            f"{'Inserted' if row is None else 'Updated'} {collection.name} record [id={record_id}]"
        )
        return Record(
            collection=collection.name,
            id=record_id,
            data=values,
            created=created,
            updated=now,
        )

    @staticmethod
    def get(collection: Collection, record_id: str) -> Record:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT * FROM {collection.name} WHERE id = ?", (record_id,))
            row = cursor.fetchone()

        if row is None:
            raise RecordNotFoundError(f"Record '{record_id}' not found in {collection.name}")
        return RecordRepository._row_to_record(collection, row)

    @staticmethod
    def list(collection: Collection) -> List[Record]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT * FROM {collection.name} ORDER BY created, id")
            rows = cursor.fetchall()

        return [RecordRepository._row_to_record(collection, row) for row in rows]

    @staticmethod
    def _row_to_record(collection: Collection, row: sqlite3.Row) -> Record:
        return Record(
            collection=collection.name,
            id=row["id"],
            data={name: row[name] for name in collection.fields},
            created=row["created"],
            updated=row["updated"],
        )
