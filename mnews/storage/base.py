"""
Storage abstraction layer.

All persistence goes through DocumentStorage. Handlers receive it by
injection and never know which backend is behind it:

- InMemoryDocumentStorage: development and tests
- MongoDocumentStorage: MongoDB (Atlas or self-hosted)

Filters use the MongoDB query shape so both backends accept the same
predicate. The supported subset:

    {"status": "published"}                       equality
    {"tags": "tech"}                              membership when the field is a list
    {"author.email": "a@x.com"}                   dotted paths into embedded documents
    {"title": {"$regex": "war", "$options": "i"}} regex (case-insensitive with "i")
    {"_id": {"$in": [...]}}  {"role": {"$ne": "admin"}}
    {"$and": [{...}, {...}]}
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


ASCENDING = 1
DESCENDING = -1

Filters = dict[str, Any]
Sort = list[tuple[str, int]]

# Returned by resolve_path when a field is absent
MISSING = object()


def resolve_path(document: dict[str, Any], path: str) -> Any:
    """Follow a dotted path into embedded documents."""
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return MISSING
        value = value[part]
    return value


# =============================================================================
# Results
# =============================================================================


@dataclass
class UpdateResult:
    """Outcome of update_one, mirroring the driver's result."""

    matched_count: int = 0
    modified_count: int = 0
    upserted_id: str | None = None


# =============================================================================
# Storage Interface
# =============================================================================


class DocumentStorage(ABC):
    """
    Storage for JSON-like documents grouped in named collections.

    Every document has a string ``_id``. Each single-document operation is
    atomic; nothing spans documents.
    """

    @abstractmethod
    async def insert_one(self, collection: str, document: dict[str, Any]) -> str:
        """Insert a document, return its ``_id``."""
        pass

    @abstractmethod
    async def find_one(self, collection: str, filters: Filters) -> dict[str, Any] | None:
        """First document matching the filters, or None."""
        pass

    @abstractmethod
    async def find(
        self,
        collection: str,
        filters: Filters | None = None,
        *,
        skip: int = 0,
        limit: int = 0,
        sort: Sort | None = None,
    ) -> list[dict[str, Any]]:
        """Documents matching the filters. ``limit=0`` means no limit."""
        pass

    @abstractmethod
    async def count(self, collection: str, filters: Filters | None = None) -> int:
        """Number of documents matching the filters."""
        pass

    @abstractmethod
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
        """
        ``$set`` and/or ``$inc`` on the first matching document.

        With ``upsert`` and no match, a document is inserted, using
        ``insert_id`` as its ``_id`` when given.
        """
        pass

    @abstractmethod
    async def delete_one(self, collection: str, filters: Filters) -> bool:
        """Delete the first matching document. True if one was deleted."""
        pass

    @abstractmethod
    async def count_by(
        self,
        collection: str,
        field: str,
        filters: Filters | None = None,
    ) -> dict[str, int]:
        """Group matching documents by ``field`` and count each group."""
        pass

    async def close(self) -> None:
        """Release connections. Nothing to do by default."""
        pass


# =============================================================================
# Collection Names
# =============================================================================


class Collections:
    """Standard collection names."""

    USERS = "users"
    ARTICLES = "articles"
    PUBLISHERS = "publishers"
    TAGS = "tags"
    REVIEWS = "reviews"
    PAYMENTS = "payments"

    ALL = (USERS, ARTICLES, PUBLISHERS, TAGS, REVIEWS, PAYMENTS)


# Unique keys the handlers rely on (collection -> field)
UNIQUE_KEYS: dict[str, str] = {
    Collections.USERS: "email",
    Collections.PAYMENTS: "email",
    Collections.PUBLISHERS: "name",
    Collections.TAGS: "name",
}
