"""
Pytest configuration and fixtures
"""
import itertools
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from config import Settings
from errors import NotFoundError, StorageUnavailableError, ValidationError
from schemas import MESSAGE_STATUSES, Contactmessage


class InMemoryMessageStore:
    """MessageStore stand-in keeping documents in a dict"""

    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.fail_writes = False
        self.fail_reads = False
        self.insert_calls = 0
        self._clock = itertools.count()

    def ping(self) -> bool:
        return not self.fail_reads

    def insert(self, record):
        self.insert_calls += 1
        if self.fail_writes:
            raise StorageUnavailableError("connection refused")
        doc = Contactmessage(**record).model_dump()
        _id = str(ObjectId())
        now = datetime(2024, 1, 1, tzinfo=timezone.utc).replace(microsecond=next(self._clock))
        doc.update(id=_id, created_at=now, updated_at=now)
        self.docs[_id] = doc
        return _id, now

    def _check_reads(self):
        if self.fail_reads:
            raise StorageUnavailableError("connection refused")

    def find(self, status=None, page=1, limit=10, sort=None):
        self._check_reads()
        items = [d for d in self.docs.values() if not status or status == "all" or d["status"] == status]
        items.sort(key=lambda d: d["created_at"], reverse=(sort or "-created_at").startswith("-"))
        start = (page - 1) * limit
        return [dict(d) for d in items[start:start + limit]], len(items)

    def get(self, message_id):
        self._check_reads()
        if message_id not in self.docs:
            raise NotFoundError("Message not found")
        return dict(self.docs[message_id])

    def update_status(self, message_id, status):
        self._check_reads()
        if status not in MESSAGE_STATUSES:
            raise ValidationError("InvalidStatus", "Invalid status")
        if message_id not in self.docs:
            raise NotFoundError("Message not found")
        self.docs[message_id]["status"] = status
        return dict(self.docs[message_id])

    def delete(self, message_id):
        self._check_reads()
        if self.docs.pop(message_id, None) is None:
            raise NotFoundError("Message not found")

    def stats(self):
        self._check_reads()
        by_status = {s: 0 for s in MESSAGE_STATUSES}
        for doc in self.docs.values():
            by_status[doc["status"]] += 1
        return {"total": len(self.docs), "by_status": by_status, "last_7_days": len(self.docs)}

    def recent(self, limit=5):
        items, _ = self.find(limit=limit)
        return items


class RecordingDispatcher:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Any] = []

    def send(self, notification) -> bool:
        if self.fail:
            raise ConnectionError("SMTP server unreachable")
        self.sent.append(notification)
        return True


class StaticProjectSource:
    def __init__(self, projects: Optional[list] = None, error: Optional[Exception] = None):
        self.projects = projects or []
        self.error = error

    def list_projects(self):
        if self.error is not None:
            raise self.error
        return self.projects


@pytest.fixture
def store() -> InMemoryMessageStore:
    return InMemoryMessageStore()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def project_source() -> StaticProjectSource:
    return StaticProjectSource()


@pytest.fixture
def app_settings() -> Settings:
    return Settings(enable_admin_routes=False)


@pytest.fixture
def client(store, dispatcher, project_source, app_settings):
    """Test client with every app.state dependency overridden"""
    import main

    main.app.dependency_overrides[main.get_message_store] = lambda: store
    main.app.dependency_overrides[main.get_dispatcher] = lambda: dispatcher
    main.app.dependency_overrides[main.get_projects_source] = lambda: project_source
    main.app.dependency_overrides[main.get_app_settings] = lambda: app_settings
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.clear()
