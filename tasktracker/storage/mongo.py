"""
MongoDB document store.

Uses motor for async access. Our string "id" is stored as the
document's "_id", so lookups by ID hit the primary index.
"""

from __future__ import annotations

import logging
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError

from tasktracker.storage.base import (
    Collections,
    DocumentStore,
    DuplicateKeyError,
    SortSpec,
    UNIQUE_FIELDS,
)

logger = logging.getLogger(__name__)


def _to_mongo(document: dict[str, Any]) -> dict[str, Any]:
    doc = dict(document)
    doc["_id"] = doc.pop("id")
    return doc


def _from_mongo(document: dict[str, Any] | None) -> dict[str, Any] | None:
    if document is None:
        return None
    doc = dict(document)
    doc["id"] = doc.pop("_id")
    return doc


def _translate_filters(filters: dict[str, Any] | None) -> dict[str, Any]:
    if not filters:
        return {}
    translated: dict[str, Any] = {}
    for key, value in filters.items():
        if key == "$or":
            translated[key] = [_translate_filters(sub) for sub in value]
        elif key == "id":
            translated["_id"] = value
        else:
            translated[key] = value
    return translated


def _duplicate_field(collection: str, error: MongoDuplicateKeyError) -> str:
    key_value = (error.details or {}).get("keyValue") or {}
    for field in key_value:
        return "id" if field == "_id" else field
    fields = UNIQUE_FIELDS.get(collection, ())
    return fields[0] if fields else "id"


class MongoDocumentStore(DocumentStore):
    """
    MongoDB implementation of DocumentStore.

    Args:
        db_uri: MongoDB connection URI string.
        db_name: Name of the database to use.
    """

    def __init__(self, db_uri: str, db_name: str):
        self.client = AsyncIOMotorClient(db_uri, tz_aware=True)
        self.db = self.client[db_name]

    async def init_indexes(self) -> None:
        for collection, fields in UNIQUE_FIELDS.items():
            for field in fields:
                await self.db[collection].create_index(field, unique=True)
        await self.db[Collections.TASKS].create_index([("user_id", 1), ("created_at", -1)])
        logger.info("MongoDB indexes ensured")

    async def insert(self, collection: str, document: dict[str, Any]) -> dict[str, Any]:
        try:
            await self.db[collection].insert_one(_to_mongo(document))
        except MongoDuplicateKeyError as e:
            raise DuplicateKeyError(collection, _duplicate_field(collection, e)) from e
        return dict(document)

    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        return _from_mongo(await self.db[collection].find_one({"_id": id}))

    async def find_one(self, collection: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        return _from_mongo(await self.db[collection].find_one(_translate_filters(filters)))

    async def find(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        cursor = self.db[collection].find(_translate_filters(filters))
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [_from_mongo(doc) async for doc in cursor]

    async def count(self, collection: str, filters: dict[str, Any] | None = None) -> int:
        return await self.db[collection].count_documents(_translate_filters(filters))

    async def update(
        self, collection: str, id: str, updates: dict[str, Any]
    ) -> dict[str, Any] | None:
        updates = {k: v for k, v in updates.items() if k != "id"}
        try:
            doc = await self.db[collection].find_one_and_update(
                {"_id": id},
                {"$set": updates},
                return_document=ReturnDocument.AFTER,
            )
        except MongoDuplicateKeyError as e:
            raise DuplicateKeyError(collection, _duplicate_field(collection, e)) from e
        return _from_mongo(doc)

    async def delete(self, collection: str, id: str) -> bool:
        result = await self.db[collection].delete_one({"_id": id})
        return result.deleted_count > 0

    async def delete_many(self, collection: str, filters: dict[str, Any]) -> int:
        result = await self.db[collection].delete_many(_translate_filters(filters))
        return result.deleted_count

    async def close(self) -> None:
        self.client.close()
