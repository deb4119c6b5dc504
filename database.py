"""
MongoDB access.

``Database`` is an explicit handle owned by the application: it is opened in
the app lifespan, handed to every service, and closed at shutdown.

Collections:
- users, videos, comments, tweets, playlists, subscriptions, likes
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient

from config import settings
from errors import InvalidArgument

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def object_id(value: Any, label: str = "ID") -> ObjectId:
    """Parse ``value`` into an ObjectId or raise InvalidArgument."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise InvalidArgument(f"Invalid {label}")


class Database:
    def __init__(self, client: Optional[MongoClient] = None, name: Optional[str] = None):
        self._client = client
        self._owns_client = client is None
        self.name = name or settings.database_name
        self.db = None

    def connect(self) -> "Database":
        if self._client is None:
            self._client = MongoClient(
                settings.mongodb_uri,
                maxPoolSize=20,
                serverSelectionTimeoutMS=settings.mongo_timeout_ms,
                connectTimeoutMS=settings.mongo_timeout_ms,
                socketTimeoutMS=settings.mongo_timeout_ms,
                tz_aware=True,
            )
        self.db = self._client[self.name]
        logger.info(f"Connected to database '{self.name}'")
        return self

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None
        self.db = None
        logger.info("Database connection closed")

    def __getitem__(self, collection_name: str):
        if self.db is None:
            self.connect()
        return self.db[collection_name]

    def ping(self) -> bool:
        try:
            self._client.admin.command("ping")
            return True
        except Exception as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    def ensure_indexes(self) -> None:
        self["users"].create_index("username", unique=True)
        self["users"].create_index("email", unique=True)

        self["videos"].create_index([("owner", ASCENDING), ("created_at", DESCENDING)])
        self["comments"].create_index([("video", ASCENDING), ("created_at", DESCENDING)])
        self["tweets"].create_index("owner")
        self["playlists"].create_index("owner")

        # One row per (subscriber, channel) pair
        self["subscriptions"].create_index(
            [("subscriber", ASCENDING), ("channel", ASCENDING)], unique=True
        )
        self["subscriptions"].create_index("channel")

        # A like targets exactly one of video/comment/tweet, the others index as null
        self["likes"].create_index(
            [("liked_by", ASCENDING), ("video", ASCENDING), ("comment", ASCENDING), ("tweet", ASCENDING)],
            unique=True,
        )
        self["likes"].create_index("video")
        logger.info("Database indexes ensured")


def create_document(database: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    """Insert ``data`` stamped with timestamps and return the stored document."""
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    now = utcnow()
    doc["created_at"] = now
    doc["updated_at"] = now
    result = database[collection_name].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


def to_str_id(doc):
    """Make a stored document JSON friendly (``_id`` -> ``id``, ObjectIds and datetimes to strings)."""
    if isinstance(doc, list):
        return [to_str_id(d) for d in doc]
    if isinstance(doc, ObjectId):
        return str(doc)
    if isinstance(doc, datetime):
        return doc.isoformat()
    if not isinstance(doc, dict):
        return doc
    d = {}
    for k, v in doc.items():
        if k == "_id":
            d["id"] = to_str_id(v)
        else:
            d[k] = to_str_id(v)
    return d
