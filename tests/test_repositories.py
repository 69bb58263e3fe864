"""Integration tests for the record repository."""

import pytest

from appnode.database import get_db_connection
from appnode.exceptions import (
    CollectionNotFoundError,
    RecordNotFoundError,
    RecordValidationError,
)
from appnode.repositories.record_repository import (
    RECORD_ID_LENGTH,
    RecordRepository,
    generate_record_id,
)


def _row(table, record_id):
    with get_db_connection() as conn:
        cursor = conn.cursor()
        cursor.execute(f"SELECT * FROM {table} WHERE id = ?", (record_id,))
        row = cursor.fetchone()
    return dict(row) if row is not None else None


class TestFindCollection:
    """Test collection lookup."""

    def test_known_collections(self):
        assert RecordRepository.find_collection("messages").fields == ("content", "user")
        assert RecordRepository.find_collection("users").fields == ("username",)

    def test_unknown_collection(self):
        with pytest.raises(CollectionNotFoundError):
            RecordRepository.find_collection("files")


class TestUpsert:
    """Test create-or-update by id."""

    def test_upsert_creates_record(self, test_db):
        messages = RecordRepository.find_collection("messages")

        record = RecordRepository.upsert(messages, "abc", {"content": "hi", "user": "u1"})

        assert record.id == "abc"
        row = _row("messages", "abc")
        assert row["content"] == "hi"
        assert row["user"] == "u1"

    def test_upsert_overwrites_existing(self, test_db):
        messages = RecordRepository.find_collection("messages")
        RecordRepository.upsert(messages, "abc", {"content": "hi", "user": "u1"})

        RecordRepository.upsert(messages, "abc", {"content": "edited", "user": "u1"})

        row = _row("messages", "abc")
        assert row["content"] == "edited"
        with get_db_connection() as conn:
            count = conn.execute("SELECT COUNT(*) FROM messages").fetchone()[0]
        assert count == 1

    def test_upsert_is_idempotent(self, test_db):
        users = RecordRepository.find_collection("users")

        RecordRepository.upsert(users, "u1", {"username": "alice"})
        first = _row("users", "u1")
        RecordRepository.upsert(users, "u1", {"username": "alice"})
        second = _row("users", "u1")

        assert first == second

    def test_upsert_accepts_id_in_fields(self, test_db):
        users = RecordRepository.find_collection("users")

        RecordRepository.upsert(users, "u1", {"id": "u1", "username": "alice"})

        assert _row("users", "u1")["username"] == "alice"

    def test_upsert_missing_required_field(self, test_db):
        messages = RecordRepository.find_collection("messages")

        with pytest.raises(RecordValidationError) as exc_info:
            RecordRepository.upsert(messages, "abc", {"content": "hi"})

        assert "user" in exc_info.value.errors
        assert _row("messages", "abc") is None

    def test_upsert_unknown_field(self, test_db):
        users = RecordRepository.find_collection("users")

        with pytest.raises(RecordValidationError) as exc_info:
            RecordRepository.upsert(users, "u1", {"username": "alice", "role": "admin"})

        assert exc_info.value.errors == {"role": "unknown field"}

    def test_upsert_invalid_id(self, test_db):
        users = RecordRepository.find_collection("users")

        with pytest.raises(RecordValidationError):
            RecordRepository.upsert(users, "bad id!", {"username": "alice"})

    def test_upsert_unique_username_conflict(self, test_db):
        users = RecordRepository.find_collection("users")
        RecordRepository.upsert(users, "u1", {"username": "alice"})

        with pytest.raises(RecordValidationError):
            RecordRepository.upsert(users, "u2", {"username": "alice"})

        assert _row("users", "u2") is None


class TestCreateAndRead:
    """Test local record creation and reads."""

    def test_generate_record_id(self):
        record_id = generate_record_id()

        assert len(record_id) == RECORD_ID_LENGTH
        assert record_id.isalnum()
        assert record_id == record_id.lower()

    def test_new_record_generates_id(self):
        users = RecordRepository.find_collection("users")

        record = RecordRepository.new_record(users, {"username": "alice"})

        assert len(record.id) == RECORD_ID_LENGTH
        assert record.data == {"username": "alice"}
        assert record.created is None

    def test_insert_and_get(self, test_db):
        messages = RecordRepository.find_collection("messages")
        record = RecordRepository.new_record(messages, {"id": "abc", "content": "hi", "user": "u1"})

        RecordRepository.insert(messages, record)
        fetched = RecordRepository.get(messages, "abc")

        assert fetched.data == {"content": "hi", "user": "u1"}
        assert fetched.created == record.created

    def test_insert_duplicate_id(self, test_db):
        users = RecordRepository.find_collection("users")
        RecordRepository.insert(users, RecordRepository.new_record(users, {"id": "u1", "username": "alice"}))

        with pytest.raises(RecordValidationError):
            RecordRepository.insert(users, RecordRepository.new_record(users, {"id": "u1", "username": "bob"}))

    def test_get_missing_record(self, test_db):
        users = RecordRepository.find_collection("users")

        with pytest.raises(RecordNotFoundError):
            RecordRepository.get(users, "nope")

    def test_list(self, test_db):
        users = RecordRepository.find_collection("users")
        RecordRepository.upsert(users, "u1", {"username": "alice"})
        RecordRepository.upsert(users, "u2", {"username": "bob"})

        records = RecordRepository.list(users)

        assert [r.id for r in records] == ["u1", "u2"]
        assert records[0].to_dict()["collectionName"] == "users"
