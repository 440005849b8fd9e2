"""
In-memory storage for development and tests.

Understands the same filter subset as the MongoDB backend (see
mnews.storage.base), so handlers behave identically on both.
"""

from __future__ import annotations

import copy
import re
from typing import Any

from mnews.core.errors import Conflict, UpstreamFailure
from mnews.core.utils import generate_id
from mnews.storage.base import (
    DESCENDING,
    MISSING,
    UNIQUE_KEYS,
    DocumentStorage,
    Filters,
    Sort,
    UpdateResult,
    resolve_path,
)


# =============================================================================
# Filter evaluation
# =============================================================================


def _equals(actual: Any, expected: Any) -> bool:
    if isinstance(actual, list) and not isinstance(expected, list):
        return expected in actual
    return actual == expected


def _regex_matches(actual: Any, pattern: str, options: str) -> bool:
    flags = re.IGNORECASE if "i" in options else 0
    candidates = actual if isinstance(actual, list) else [actual]
    return any(
        isinstance(value, str) and re.search(pattern, value, flags) is not None
        for value in candidates
    )


def _match_operators(actual: Any, spec: dict[str, Any]) -> bool:
    for op, operand in spec.items():
        if op == "$regex":
            if not _regex_matches(actual, operand, spec.get("$options", "")):
                return False
        elif op == "$options":
            continue
        elif op == "$in":
            if isinstance(actual, list):
                if not any(v in operand for v in actual):
                    return False
            elif actual not in operand:
                return False
        elif op == "$ne":
            if _equals(actual, operand):
                return False
        elif op == "$exists":
            present = actual is not None
            if present != bool(operand):
                return False
        else:
            raise ValueError(f"Unsupported filter operator: {op}")
    return True


def matches(document: dict[str, Any], filters: Filters | None) -> bool:
    """Does the document satisfy the filters?"""
    if not filters:
        return True

    for key, expected in filters.items():
        if key == "$and":
            if not all(matches(document, sub) for sub in expected):
                return False
            continue

        actual = resolve_path(document, key)
        if actual is MISSING:
            actual = None

        if isinstance(expected, dict) and any(k.startswith("$") for k in expected):
            if not _match_operators(actual, expected):
                return False
        elif not _equals(actual, expected):
            return False

    return True


def _sort_key(value: Any) -> tuple:
    # Missing / null values sort before everything else, as in MongoDB
    if value is MISSING or value is None:
        return (0,)
    return (1, value)


def _set_path(document: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    target = document
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


# =============================================================================
# In-Memory Document Storage
# =============================================================================


class InMemoryDocumentStorage(DocumentStorage):
    """In-memory document storage for development."""

    def __init__(self):
        # collection -> {_id -> document}, in insertion order
        self._data: dict[str, dict[str, dict[str, Any]]] = {}

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._data.setdefault(name, {})

    def _matching(self, collection: str, filters: Filters | None) -> list[dict[str, Any]]:
        return [doc for doc in self._collection(collection).values() if matches(doc, filters)]

    def _check_unique(self, collection: str, document: dict[str, Any]) -> None:
        field = UNIQUE_KEYS.get(collection)
        if field is None:
            return
        value = resolve_path(document, field)
        if value is MISSING or value is None:
            return
        for other in self._collection(collection).values():
            if other["_id"] != document["_id"] and resolve_path(other, field) == value:
                raise Conflict(f"Duplicate {field} in {collection}: {value}")

    async def insert_one(self, collection: str, document: dict[str, Any]) -> str:
        docs = self._collection(collection)
        doc = copy.deepcopy(document)
        doc_id = str(doc.get("_id") or generate_id())
        if doc_id in docs:
            raise UpstreamFailure(f"Duplicate _id {doc_id} in {collection}")
        doc["_id"] = doc_id
        self._check_unique(collection, doc)
        docs[doc_id] = doc
        return doc_id

    async def find_one(self, collection: str, filters: Filters) -> dict[str, Any] | None:
        for doc in self._collection(collection).values():
            if matches(doc, filters):
                return copy.deepcopy(doc)
        return None

    async def find(
        self,
        collection: str,
        filters: Filters | None = None,
        *,
        skip: int = 0,
        limit: int = 0,
        sort: Sort | None = None,
    ) -> list[dict[str, Any]]:
        results = self._matching(collection, filters)

        # Stable sorts applied last key first give a multi-key ordering
        for field, direction in reversed(sort or []):
            results.sort(
                key=lambda doc: _sort_key(resolve_path(doc, field)),
                reverse=direction == DESCENDING,
            )

        results = results[skip:]
        if limit:
            results = results[:limit]
        return [copy.deepcopy(doc) for doc in results]

    async def count(self, collection: str, filters: Filters | None = None) -> int:
        return len(self._matching(collection, filters))

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
        docs = self._collection(collection)
        for doc_id, current_doc in docs.items():
            if not matches(current_doc, filters):
                continue

            doc = copy.deepcopy(current_doc)
            for path, value in (set_fields or {}).items():
                _set_path(doc, path, copy.deepcopy(value))
            for path, amount in (inc or {}).items():
                current = resolve_path(doc, path)
                base = 0 if current is MISSING or current is None else current
                _set_path(doc, path, base + amount)
            self._check_unique(collection, doc)
            docs[doc_id] = doc
            return UpdateResult(matched_count=1, modified_count=int(doc != current_doc))

        if not upsert:
            return UpdateResult()

        # Seed the new document from the equality parts of the filter
        new_doc: dict[str, Any] = {"_id": insert_id} if insert_id else {}
        for key, value in filters.items():
            if key.startswith("$") or (isinstance(value, dict) and any(k.startswith("$") for k in value)):
                continue
            _set_path(new_doc, key, value)
        for path, value in (set_fields or {}).items():
            _set_path(new_doc, path, value)
        for path, amount in (inc or {}).items():
            _set_path(new_doc, path, amount)

        upserted_id = await self.insert_one(collection, new_doc)
        return UpdateResult(upserted_id=upserted_id)

    async def delete_one(self, collection: str, filters: Filters) -> bool:
        docs = self._collection(collection)
        for doc_id, doc in docs.items():
            if matches(doc, filters):
                del docs[doc_id]
                return True
        return False

    async def count_by(
        self,
        collection: str,
        field: str,
        filters: Filters | None = None,
    ) -> dict[str, int]:
        counts: dict[str, int] = {}
        for doc in self._matching(collection, filters):
            value = resolve_path(doc, field)
            if value is MISSING or value is None:
                continue
            counts[value] = counts.get(value, 0) + 1
        return counts


# =============================================================================
# Factory
# =============================================================================


def create_memory_storage() -> InMemoryDocumentStorage:
    """Create an empty in-memory store."""
    return InMemoryDocumentStorage()
