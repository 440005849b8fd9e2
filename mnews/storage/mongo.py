"""
MongoDB storage backend.

Uses PyMongo's native asyncio client. Duplicate keys are re-raised as
Conflict, other driver errors as UpstreamFailure, so the API answers
them with a structured body.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable

from pymongo import ASCENDING as MONGO_ASCENDING
from pymongo import AsyncMongoClient
from pymongo.errors import DuplicateKeyError, PyMongoError

from mnews.core.errors import Conflict, UpstreamFailure
from mnews.core.utils import generate_id
from mnews.storage.base import (
    UNIQUE_KEYS,
    DocumentStorage,
    Filters,
    Sort,
    UpdateResult,
)

logger = logging.getLogger(__name__)


def _upstream(func: Callable) -> Callable:
    """Convert driver errors into Conflict or UpstreamFailure."""

    @wraps(func)
    async def wrapper(self, collection: str, *args, **kwargs):
        try:
            return await func(self, collection, *args, **kwargs)
        except DuplicateKeyError as e:
            raise Conflict(f"Duplicate key in {collection}") from e
        except PyMongoError as e:
            logger.exception("MongoDB %s on %s failed", func.__name__, collection)
            raise UpstreamFailure(f"Database error: {e}") from e

    return wrapper


class MongoDocumentStorage(DocumentStorage):
    """Documents kept in a MongoDB database."""

    def __init__(self, client: AsyncMongoClient, database: str):
        self.client = client
        self.db = client[database]

    @classmethod
    def from_uri(cls, uri: str, database: str) -> MongoDocumentStorage:
        return cls(AsyncMongoClient(uri, tz_aware=True), database)

    async def ensure_indexes(self) -> None:
        """Create the unique indexes (idempotent)."""
        try:
            for collection, field in UNIQUE_KEYS.items():
                await self.db[collection].create_index([(field, MONGO_ASCENDING)], unique=True)
        except PyMongoError as e:
            raise UpstreamFailure(f"Could not create indexes: {e}") from e

    @_upstream
    async def insert_one(self, collection: str, document: dict[str, Any]) -> str:
        doc = {**document}
        doc.setdefault("_id", generate_id())
        result = await self.db[collection].insert_one(doc)
        return str(result.inserted_id)

    @_upstream
    async def find_one(self, collection: str, filters: Filters) -> dict[str, Any] | None:
        return await self.db[collection].find_one(filters)

    @_upstream
    async def find(
        self,
        collection: str,
        filters: Filters | None = None,
        *,
        skip: int = 0,
        limit: int = 0,
        sort: Sort | None = None,
    ) -> list[dict[str, Any]]:
        cursor = self.db[collection].find(filters or {})
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=None)

    @_upstream
    async def count(self, collection: str, filters: Filters | None = None) -> int:
        return await self.db[collection].count_documents(filters or {})

    @_upstream
    async def update_one(
        self,
        collection: str,
        filters: Filters,
        *,
        set_fields: dict[str, Any] | None = None,
        inc: dict[str, int] | None = None,
        upsert: bool = False,
        insert_id: str | None = None,
    ) -> UpdateResult:
        update: dict[str, Any] = {}
        if set_fields:
            update["$set"] = set_fields
        if inc:
            update["$inc"] = inc
        if upsert:
            update["$setOnInsert"] = {"_id": insert_id or generate_id()}

        result = await self.db[collection].update_one(filters, update, upsert=upsert)
        return UpdateResult(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
            upserted_id=str(result.upserted_id) if result.upserted_id is not None else None,
        )

    @_upstream
    async def delete_one(self, collection: str, filters: Filters) -> bool:
        result = await self.db[collection].delete_one(filters)
        return result.deleted_count > 0

    @_upstream
    async def count_by(
        self,
        collection: str,
        field: str,
        filters: Filters | None = None,
    ) -> dict[str, int]:
        pipeline = [
            {"$match": filters or {}},
            {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
        ]
        cursor = await self.db[collection].aggregate(pipeline)
        return {row["_id"]: row["count"] async for row in cursor if row["_id"] is not None}

    async def close(self) -> None:
        await self.client.close()
