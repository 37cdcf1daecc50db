"""
MongoDB access

The MongoClient is created by connect() at application startup and closed by
close() at shutdown; everything else receives the Database handle explicitly.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import pydantic
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError, WriteError

from config import Settings
from errors import NotFoundError, StorageUnavailableError, ValidationError
from logging_config import get_logger
from schemas import MESSAGE_STATUSES, Contactmessage

logger = get_logger(__name__)

# Mongo's DocumentValidationFailure
DOCUMENT_VALIDATION_FAILURE = 121


def connect(settings: Settings) -> Tuple[MongoClient, Database]:
    """Create the client; pymongo connects lazily so this never blocks on the server"""
    client = MongoClient(
        settings.database_url,
        serverSelectionTimeoutMS=settings.database_timeout_ms,
        tz_aware=True,
    )
    logger.info("MongoDB client created for database '%s'", settings.database_name)
    return client, client[settings.database_name]


def close(client: Optional[MongoClient]) -> None:
    if client is not None:
        client.close()
        logger.info("MongoDB client closed")


def ping(db: Database) -> bool:
    try:
        db.client.admin.command("ping")
        return True
    except PyMongoError as e:
        logger.warning("MongoDB ping failed: %s", e)
        return False


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Turn a Mongo document into a JSON-friendly dict with a string 'id'"""
    out = {k: v for k, v in doc.items() if k != "_id"}
    if "_id" in doc:
        out["id"] = str(doc["_id"])
    return out


def parse_sort(sort: Optional[str], default: str = "-created_at") -> Tuple[str, int]:
    """'-field' sorts descending, 'field' ascending"""
    sort = (sort or default).strip() or default
    if sort.startswith("-"):
        return sort[1:], DESCENDING
    return sort.lstrip("+"), ASCENDING


# -----------------------------
# Generic document helpers
# -----------------------------

def create_document(db: Database, collection_name: str, data: Dict[str, Any]) -> str:
    """Insert a document with created/updated timestamps and return its id"""
    now = utcnow()
    doc = dict(data)
    doc.setdefault("created_at", now)
    doc.setdefault("updated_at", now)
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    skip: int = 0,
    sort: Optional[List[Tuple[str, int]]] = None,
    projection: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {}, projection)
    if sort:
        cursor = cursor.sort(sort)
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)
    return [serialize(doc) for doc in cursor]


# -----------------------------
# Message Store
# -----------------------------

class MessageStore:
    """Persistence of contact submissions in the 'contactmessage' collection"""

    collection_name = "contactmessage"

    def __init__(self, db: Database):
        self.db = db

    @property
    def collection(self):
        return self.db[self.collection_name]

    def ping(self) -> bool:
        return ping(self.db)

    def insert(self, record: Dict[str, Any]) -> Tuple[str, datetime]:
        try:
            doc = Contactmessage(**record).model_dump()
            doc["created_at"] = doc["updated_at"] = utcnow()
        except pydantic.ValidationError as e:
            raise ValidationError("SchemaViolation", _schema_message(e)) from e
        try:
            _id = create_document(self.db, self.collection_name, doc)
        except WriteError as e:
            if e.code == DOCUMENT_VALIDATION_FAILURE:
                raise ValidationError("SchemaViolation", "Message failed document validation") from e
            raise StorageUnavailableError(str(e)) from e
        except PyMongoError as e:
            raise StorageUnavailableError(str(e)) from e
        return _id, doc["created_at"]

    def find(
        self,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        sort: Optional[str] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        filter_dict = {}
        if status and status != "all":
            filter_dict["status"] = status
        page = max(page, 1)
        limit = max(limit, 1)
        try:
            items = get_documents(
                self.db,
                self.collection_name,
                filter_dict,
                limit=limit,
                skip=(page - 1) * limit,
                sort=[parse_sort(sort)],
            )
            total = self.collection.count_documents(filter_dict)
        except PyMongoError as e:
            raise StorageUnavailableError(str(e)) from e
        return items, total

    def get(self, message_id: str) -> Dict[str, Any]:
        oid = _require_id(message_id)
        try:
            doc = self.collection.find_one({"_id": oid})
        except PyMongoError as e:
            raise StorageUnavailableError(str(e)) from e
        if doc is None:
            raise NotFoundError("Message not found")
        return serialize(doc)

    def update_status(self, message_id: str, status: str) -> Dict[str, Any]:
        if status not in MESSAGE_STATUSES:
            raise ValidationError("InvalidStatus", "Invalid status")
        oid = _require_id(message_id)
        try:
            doc = self.collection.find_one_and_update(
                {"_id": oid},
                {"$set": {"status": status, "updated_at": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise StorageUnavailableError(str(e)) from e
        if doc is None:
            raise NotFoundError("Message not found")
        return serialize(doc)

    def delete(self, message_id: str) -> None:
        oid = _require_id(message_id)
        try:
            result = self.collection.delete_one({"_id": oid})
        except PyMongoError as e:
            raise StorageUnavailableError(str(e)) from e
        if result.deleted_count == 0:
            raise NotFoundError("Message not found")

    def stats(self) -> Dict[str, Any]:
        by_status = {status: 0 for status in MESSAGE_STATUSES}
        week_ago = utcnow() - timedelta(days=7)
        try:
            for row in self.collection.aggregate([
                {"$group": {"_id": "$status", "count": {"$sum": 1}}}
            ]):
                if row["_id"] in by_status:
                    by_status[row["_id"]] = row["count"]
            total = self.collection.count_documents({})
            last_7_days = self.collection.count_documents({"created_at": {"$gte": week_ago}})
        except PyMongoError as e:
            raise StorageUnavailableError(str(e)) from e
        return {"total": total, "by_status": by_status, "last_7_days": last_7_days}

    def recent(self, limit: int = 5) -> List[Dict[str, Any]]:
        try:
            return get_documents(
                self.db,
                self.collection_name,
                limit=limit,
                sort=[("created_at", DESCENDING)],
                projection={"name": 1, "email": 1, "subject": 1, "status": 1, "created_at": 1},
            )
        except PyMongoError as e:
            raise StorageUnavailableError(str(e)) from e


class ProjectStore:
    """Stored portfolio projects in the 'project' collection"""

    collection_name = "project"

    def __init__(self, db: Database):
        self.db = db

    def list_projects(self) -> List[Dict[str, Any]]:
        try:
            return get_documents(
                self.db,
                self.collection_name,
                sort=[("featured", DESCENDING), ("created_at", DESCENDING)],
            )
        except PyMongoError as e:
            raise StorageUnavailableError(str(e)) from e


def _require_id(message_id: str) -> ObjectId:
    oid = to_object_id(message_id)
    if oid is None:
        raise NotFoundError("Message not found")
    return oid


def _schema_message(error: pydantic.ValidationError) -> str:
    parts = []
    for err in error.errors():
        field = ".".join(str(loc) for loc in err["loc"])
        parts.append(f"{field}: {err['msg']}")
    return ", ".join(parts)
