"""
Contact intake: validation, persistence and notification of submissions
"""
import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from errors import StorageUnavailableError, ValidationError
from logging_config import get_logger
from notifications import NotificationDispatcher, build_contact_notification
from schemas import MESSAGE_STATUSES

logger = get_logger(__name__)

EMAIL_RE = re.compile(r"\w+(?:[.-]\w+)*@\w+(?:[.-]\w+)*(?:\.\w{2,3})+", re.ASCII)

MAX_LENGTHS = (
    ("name", 100, "Name"),
    ("subject", 200, "Subject"),
    ("message", 2000, "Message"),
)

REQUIRED_FIELDS = ("name", "email", "subject", "message")

Scheduler = Callable[..., Any]


@dataclass
class ClientMetadata:
    ip_address: str = "Unknown"
    user_agent: str = "Unknown"


@dataclass
class SubmitResult:
    stored: bool
    id: Optional[str] = None
    timestamp: Optional[datetime] = None


def validate_submission(raw: Dict[str, Any]) -> None:
    """Raise ValidationError for the first failing rule"""
    for field in REQUIRED_FIELDS:
        value = raw.get(field)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("MissingField", "All fields are required")

    if not EMAIL_RE.fullmatch(raw["email"].strip()):
        raise ValidationError("InvalidEmail", "Please enter a valid email address")

    for field, limit, label in MAX_LENGTHS:
        if len(raw[field]) > limit:
            raise ValidationError("FieldTooLong", f"{label} cannot exceed {limit} characters")


def pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    return {
        "current": page,
        "pages": math.ceil(total / limit) if limit else 0,
        "total": total,
        "has_next": page * limit < total,
        "has_prev": page > 1,
    }


class ContactIntakeService:

    def __init__(self, store, dispatcher: NotificationDispatcher):
        self.store = store
        self.dispatcher = dispatcher

    def submit(
        self,
        raw: Dict[str, Any],
        client: ClientMetadata,
        schedule: Optional[Scheduler] = None,
    ) -> SubmitResult:
        validate_submission(raw)

        record = {
            "name": raw["name"].strip(),
            "email": raw["email"].strip().lower(),
            "subject": raw["subject"].strip(),
            "message": raw["message"].strip(),
            "status": "new",
            "ip_address": client.ip_address or "Unknown",
            "user_agent": client.user_agent or "Unknown",
        }

        try:
            _id, created_at = self.store.insert(record)
            result = SubmitResult(stored=True, id=_id, timestamp=created_at)
            logger.info(
                "New contact message %s from %s <%s> (ip %s)",
                _id, record["name"], record["email"], record["ip_address"],
            )
        except StorageUnavailableError as e:
            # Acknowledge anyway; this log line is the only copy of the submission
            logger.warning("Contact form received (DB error: %s): %s", e, record)
            result = SubmitResult(stored=False)

        if schedule is not None:
            schedule(self.notify, record)
        else:
            self.notify(record)
        return result

    def notify(self, record: Dict[str, Any]) -> None:
        try:
            self.dispatcher.send(build_contact_notification(record))
        except Exception:
            logger.exception("Notification dispatch failed for message from %s", record.get("email"))

    def list_messages(
        self,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        page = max(page, 1)
        limit = max(limit, 1)
        items, total = self.store.find(status=status, page=page, limit=limit, sort=sort)
        return {"data": items, "pagination": pagination(page, limit, total)}

    def get_message(self, message_id: str) -> Dict[str, Any]:
        return self.store.get(message_id)

    def update_status(self, message_id: str, status: Optional[str]) -> Dict[str, Any]:
        if status not in MESSAGE_STATUSES:
            raise ValidationError("InvalidStatus", "Invalid status")
        return self.store.update_status(message_id, status)

    def delete_message(self, message_id: str) -> None:
        self.store.delete(message_id)

    def stats(self) -> Dict[str, Any]:
        return self.store.stats()

    def dashboard(self) -> Dict[str, Any]:
        return {"stats": self.store.stats(), "recent_messages": self.store.recent(5)}
