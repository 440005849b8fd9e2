"""
Allow-listed updates.

Update bodies are never merged wholesale into a stored document. Each
resource names the fields a caller may change; everything else in the
body is dropped.
"""

from __future__ import annotations

from typing import Any, Iterable

from mnews.core.errors import InvalidArgument
from mnews.core.utils import utc_now


ARTICLE_AUTHOR_FIELDS = frozenset({"title", "body", "image", "tags", "publisher"})
ARTICLE_ADMIN_FIELDS = ARTICLE_AUTHOR_FIELDS | {"status", "isPremium"}

USER_PROFILE_FIELDS = frozenset({"name", "photo"})

PUBLISHER_FIELDS = frozenset({"name", "logo"})


def pick_fields(body: dict[str, Any], allowed: Iterable[str]) -> dict[str, Any]:
    """
    The part of ``body`` that may be written, stamped with ``updatedAt``.

    Raises:
        InvalidArgument: Nothing in the body is writable
    """
    allowed = set(allowed)
    changes = {key: value for key, value in body.items() if key in allowed}
    if not changes:
        fields = ", ".join(sorted(allowed))
        raise InvalidArgument(f"Nothing to update; allowed fields: {fields}")

    changes["updatedAt"] = utc_now()
    return changes


def article_fields_for(is_admin: bool) -> frozenset[str]:
    """Admins may also publish and set premium."""
    return ARTICLE_ADMIN_FIELDS if is_admin else ARTICLE_AUTHOR_FIELDS
