"""
Tests for MessageStore query shaping and error mapping
"""
from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ServerSelectionTimeoutError, WriteError

from database import MessageStore, ProjectStore, parse_sort, serialize
from errors import NotFoundError, StorageUnavailableError, ValidationError

RECORD = {
    "name": "Ada",
    "email": "ada@example.com",
    "subject": "Hi",
    "message": "Hello",
    "status": "new",
    "ip_address": "127.0.0.1",
    "user_agent": "pytest",
}


class FakeCursor:
    def __init__(self, docs):
        self.docs = docs
        self.calls = []

    def sort(self, spec):
        self.calls.append(("sort", spec))
        return self

    def skip(self, n):
        self.calls.append(("skip", n))
        return self

    def limit(self, n):
        self.calls.append(("limit", n))
        return self

    def __iter__(self):
        return iter(self.docs)


@pytest.fixture
def collection():
    return MagicMock()


@pytest.fixture
def message_store(collection):
    db = MagicMock()
    db.__getitem__.return_value = collection
    return MessageStore(db)


def test_insert_sets_timestamps_and_returns_id(message_store, collection):
    oid = ObjectId()
    collection.insert_one.return_value.inserted_id = oid

    _id, created_at = message_store.insert(dict(RECORD))

    assert _id == str(oid)
    doc = collection.insert_one.call_args[0][0]
    assert doc["status"] == "new"
    assert doc["created_at"] == created_at
    assert doc["updated_at"] == created_at


def test_insert_schema_violation(message_store, collection):
    with pytest.raises(ValidationError) as exc_info:
        message_store.insert(dict(RECORD, status="spam"))
    assert exc_info.value.code == "SchemaViolation"
    collection.insert_one.assert_not_called()


def test_insert_document_validation_failure(message_store, collection):
    collection.insert_one.side_effect = WriteError("Document failed validation", code=121)
    with pytest.raises(ValidationError):
        message_store.insert(dict(RECORD))


def test_insert_database_down(message_store, collection):
    collection.insert_one.side_effect = ServerSelectionTimeoutError("no servers")
    with pytest.raises(StorageUnavailableError):
        message_store.insert(dict(RECORD))


def test_find_applies_filter_sort_and_paging(message_store, collection):
    oid = ObjectId()
    cursor = FakeCursor([{"_id": oid, "name": "Ada", "status": "read"}])
    collection.find.return_value = cursor
    collection.count_documents.return_value = 21

    items, total = message_store.find(status="read", page=3, limit=10, sort="name")

    assert items == [{"id": str(oid), "name": "Ada", "status": "read"}]
    assert total == 21
    collection.find.assert_called_once_with({"status": "read"}, None)
    assert cursor.calls == [("sort", [("name", ASCENDING)]), ("skip", 20), ("limit", 10)]


def test_find_all_status_means_no_filter(message_store, collection):
    collection.find.return_value = FakeCursor([])
    collection.count_documents.return_value = 0
    message_store.find(status="all")
    collection.find.assert_called_once_with({}, None)


@pytest.mark.parametrize("message_id", ["not-an-id", "", "123"])
def test_invalid_ids_are_not_found(message_store, collection, message_id):
    with pytest.raises(NotFoundError):
        message_store.get(message_id)
    with pytest.raises(NotFoundError):
        message_store.delete(message_id)
    collection.find_one.assert_not_called()


def test_get_missing_message(message_store, collection):
    collection.find_one.return_value = None
    with pytest.raises(NotFoundError):
        message_store.get(str(ObjectId()))


def test_update_status(message_store, collection):
    oid = ObjectId()
    collection.find_one_and_update.return_value = {"_id": oid, "status": "read"}

    doc = message_store.update_status(str(oid), "read")

    assert doc == {"id": str(oid), "status": "read"}
    query, update = collection.find_one_and_update.call_args[0]
    assert query == {"_id": oid}
    assert update["$set"]["status"] == "read"
    assert "updated_at" in update["$set"]


def test_update_status_rejects_unknown_value(message_store, collection):
    with pytest.raises(ValidationError):
        message_store.update_status(str(ObjectId()), "spam")
    collection.find_one_and_update.assert_not_called()


def test_delete_missing_message(message_store, collection):
    collection.delete_one.return_value.deleted_count = 0
    with pytest.raises(NotFoundError):
        message_store.delete(str(ObjectId()))


def test_read_errors_become_storage_unavailable(message_store, collection):
    collection.find_one.side_effect = ServerSelectionTimeoutError("no servers")
    with pytest.raises(StorageUnavailableError):
        message_store.get(str(ObjectId()))


def test_stats_shape(message_store, collection):
    collection.aggregate.return_value = [{"_id": "new", "count": 4}, {"_id": "read", "count": 2}]
    collection.count_documents.side_effect = [6, 3]

    stats = message_store.stats()

    assert stats == {
        "total": 6,
        "by_status": {"new": 4, "read": 2, "replied": 0, "archived": 0},
        "last_7_days": 3,
    }


def test_project_store_lists_featured_first(collection):
    db = MagicMock()
    db.__getitem__.return_value = collection
    cursor = FakeCursor([])
    collection.find.return_value = cursor

    ProjectStore(db).list_projects()

    assert cursor.calls == [("sort", [("featured", DESCENDING), ("created_at", DESCENDING)])]


@pytest.mark.parametrize("sort,expected", [
    (None, ("created_at", DESCENDING)),
    ("-created_at", ("created_at", DESCENDING)),
    ("created_at", ("created_at", ASCENDING)),
    ("", ("created_at", DESCENDING)),
])
def test_parse_sort(sort, expected):
    assert parse_sort(sort) == expected


def test_serialize_replaces_object_id():
    oid = ObjectId()
    assert serialize({"_id": oid, "a": 1}) == {"a": 1, "id": str(oid)}


def test_seed_projects_replaces_collection(collection):
    from seed import SAMPLE_PROJECTS, seed_projects

    db = MagicMock()
    db.__getitem__.return_value = collection
    collection.delete_many.return_value.deleted_count = 2
    collection.insert_one.return_value.inserted_id = ObjectId()

    ids = seed_projects(db)

    collection.delete_many.assert_called_once_with({})
    assert len(ids) == len(SAMPLE_PROJECTS)
    first = collection.insert_one.call_args_list[0][0][0]
    assert first["category"] == "fullstack"
    assert first["featured"] is True
    assert "created_at" in first
