"""
FastAPI dependencies.

Process-wide collaborators are created once in the app lifespan and kept
on ``app.state``; handlers receive them through these functions.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request

from mnews.config import Settings
from mnews.integrations.payments import PaymentProvider
from mnews.storage.base import DocumentStorage, UpdateResult


def get_storage(request: Request) -> DocumentStorage:
    return request.app.state.storage


def get_payment_provider(request: Request) -> PaymentProvider:
    return request.app.state.payments


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


# =============================================================================
# Result shapes (what the web client reads back from writes)
# =============================================================================


def inserted(doc_id: str | None, **extra: Any) -> dict[str, Any]:
    return {"insertedId": doc_id, **extra}


def updated(result: UpdateResult) -> dict[str, Any]:
    return {
        "matchedCount": result.matched_count,
        "modifiedCount": result.modified_count,
        "upsertedId": result.upserted_id,
    }


def deleted(done: bool) -> dict[str, int]:
    return {"deletedCount": int(done)}
