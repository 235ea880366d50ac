from __future__ import annotations

import logging
import uuid
from typing import Any

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from dayplanner.core.errors import StorageError
from dayplanner.core.settings import Settings

logger = logging.getLogger(__name__)


class MongoDBRepo:
    def __init__(self, mongodb_uri: str, database_name: str = "dayplanner_db"):
        if not mongodb_uri:
            raise ValueError("MONGODB_URI environment variable is required")

        self.client = MongoClient(
            mongodb_uri,
            serverSelectionTimeoutMS=5000,  # 5 second timeout
            connectTimeoutMS=10000,
            socketTimeoutMS=20000,
            retryWrites=True,
            retryReads=True,
        )
        self.db = self.client[database_name]
        self.itineraries_collection = self.db.itineraries

        try:
            self.client.admin.command("ping")
            logger.info(f"[Repository] MongoDB connection successful ({database_name})")
            self.itineraries_collection.create_index("id", unique=True)
        except PyMongoError as e:
            # Keep going; individual operations raise StorageError
            logger.warning(f"[Repository] MongoDB connection failed: {str(e)[:200]}")

    def create_itinerary(self, record: dict[str, Any]) -> str:
        itn_id = f"itn_{uuid.uuid4().hex[:12]}"
        doc = {**record, "id": itn_id}
        try:
            self.itineraries_collection.insert_one(doc)
        except PyMongoError as e:
            raise StorageError(f"Failed to save itinerary: {e}") from e
        return itn_id

    def get_itinerary(self, itinerary_id: str) -> dict | None:
        try:
            itinerary_doc = self.itineraries_collection.find_one({"id": itinerary_id})
        except PyMongoError as e:
            raise StorageError(f"Failed to load itinerary: {e}") from e
        if itinerary_doc:
            itinerary_doc.pop("_id", None)  # Remove MongoDB ObjectId
        return itinerary_doc

    def delete_itinerary(self, itinerary_id: str) -> bool:
        """Delete an itinerary from MongoDB."""
        try:
            result = self.itineraries_collection.delete_one({"id": itinerary_id})
        except PyMongoError as e:
            raise StorageError(f"Failed to delete itinerary: {e}") from e
        return result.deleted_count > 0


class InMemoryRepo:
    """Process-local storage used when no MongoDB URI is configured."""

    def __init__(self):
        self._items: dict[str, dict[str, Any]] = {}

    def create_itinerary(self, record: dict[str, Any]) -> str:
        itn_id = f"itn_{uuid.uuid4().hex[:12]}"
        self._items[itn_id] = {**record, "id": itn_id}
        return itn_id

    def get_itinerary(self, itinerary_id: str) -> dict | None:
        item = self._items.get(itinerary_id)
        return dict(item) if item else None

    def delete_itinerary(self, itinerary_id: str) -> bool:
        return self._items.pop(itinerary_id, None) is not None


def build_repo(settings: Settings) -> MongoDBRepo | InMemoryRepo:
    if settings.mongodb_uri:
        return MongoDBRepo(settings.mongodb_uri, settings.database_name)
    logger.warning("[Repository] MONGODB_URI not set, itineraries are kept in memory")
    return InMemoryRepo()
