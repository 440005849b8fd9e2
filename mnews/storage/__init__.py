"""
Storage abstractions.

- DocumentStorage → MongoDB in production, in-memory for development
"""

from __future__ import annotations

import logging

from mnews.config import Settings
from mnews.storage.base import (
    ASCENDING,
    DESCENDING,
    Collections,
    DocumentStorage,
    UpdateResult,
)
from mnews.storage.memory import InMemoryDocumentStorage, create_memory_storage

logger = logging.getLogger(__name__)


async def create_storage(settings: Settings) -> DocumentStorage:
    """Build the backend named by ``storage_backend``."""
    backend = settings.storage_backend.lower()

    if backend == "memory":
        logger.info("Using in-memory document storage")
        return create_memory_storage()

    if backend == "mongo":
        from mnews.storage.mongo import MongoDocumentStorage

        storage = MongoDocumentStorage.from_uri(
            settings.resolved_mongodb_uri,
            settings.mongodb_database,
        )
        await storage.ensure_indexes()
        logger.info("Using MongoDB database %s", settings.mongodb_database)
        return storage

    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")


__all__ = [
    "ASCENDING",
    "DESCENDING",
    "Collections",
    "DocumentStorage",
    "UpdateResult",
    "InMemoryDocumentStorage",
    "create_memory_storage",
    "create_storage",
]
