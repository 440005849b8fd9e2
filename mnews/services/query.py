"""
Listing query construction.

Turns the raw query-string parameters of a listing request into a
sanitized ListingQuery: a MongoDB-style predicate plus skip / limit /
sort. Running it costs two round trips, one count and one fetch, so the
client can render page controls.

Recognized parameters:

    search     case-insensitive substring of the title
    publisher  case-insensitive substring of the publisher name
    tag        member of the (lowercased) tag list, matched case-insensitively
    page       zero-based page index (default 0)
    size       page size (default 10, at most 100)

Filters combine with AND. Pagination values that are not non-negative
integers (or a size of zero) are rejected with InvalidArgument.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Any, Mapping

from mnews.core.errors import InvalidArgument
from mnews.core.models import ArticleStatus
from mnews.storage.base import DESCENDING, DocumentStorage, Filters, Sort


DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Newest first; _id breaks ties so pages never overlap
DEFAULT_SORT: Sort = [("createdAt", DESCENDING), ("_id", DESCENDING)]


# =============================================================================
# Types
# =============================================================================


@dataclass
class Page:
    """A zero-based page of a fixed size."""

    index: int = 0
    size: int = DEFAULT_PAGE_SIZE

    @property
    def skip(self) -> int:
        return self.index * self.size


@dataclass
class ListingQuery:
    """Everything needed to fetch one page of a filtered listing."""

    predicate: Filters = field(default_factory=dict)
    page: Page = field(default_factory=Page)
    sort: Sort = field(default_factory=lambda: list(DEFAULT_SORT))

    @property
    def skip(self) -> int:
        return self.page.skip

    @property
    def limit(self) -> int:
        return self.page.size


# =============================================================================
# Parameter parsing
# =============================================================================


def parse_int(raw: Any, name: str, default: int, minimum: int = 0, maximum: int | None = None) -> int:
    """Parse a query-string integer, rejecting anything that is not one."""
    if raw is None or raw == "":
        return default

    try:
        value = int(str(raw).strip())
    except ValueError:
        raise InvalidArgument(f"'{name}' must be an integer, got {raw!r}")

    if value < minimum:
        raise InvalidArgument(f"'{name}' must be at least {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise InvalidArgument(f"'{name}' must be at most {maximum}, got {value}")
    return value


def parse_page(params: Mapping[str, Any], default_size: int = DEFAULT_PAGE_SIZE) -> Page:
    """Read ``page`` and ``size`` from the query string."""
    return Page(
        index=parse_int(params.get("page"), "page", default=0),
        size=parse_int(params.get("size"), "size", default=default_size, minimum=1, maximum=MAX_PAGE_SIZE),
    )


def contains(text: str) -> dict[str, str]:
    """Case-insensitive substring predicate, with user input taken literally."""
    return {"$regex": re.escape(text), "$options": "i"}


def _text_param(params: Mapping[str, Any], name: str) -> str | None:
    value = params.get(name)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def filter_clauses(params: Mapping[str, Any]) -> list[Filters]:
    """The search / publisher / tag clauses present in the request."""
    clauses: list[Filters] = []

    search = _text_param(params, "search")
    if search:
        clauses.append({"title": contains(search)})

    publisher = _text_param(params, "publisher")
    if publisher:
        clauses.append({"publisher.name": contains(publisher)})

    tag = _text_param(params, "tag")
    if tag:
        clauses.append({"tags": tag.lower()})

    return clauses


def combine(clauses: list[Filters]) -> Filters:
    """AND the clauses together."""
    if not clauses:
        return {}
    if len(clauses) == 1:
        return dict(clauses[0])
    return {"$and": clauses}


# =============================================================================
# Builders
# =============================================================================


def build_listing(
    params: Mapping[str, Any],
    base: Filters | None = None,
    *,
    published_only: bool = True,
    premium_only: bool = False,
    default_size: int = DEFAULT_PAGE_SIZE,
    sort: Sort | None = None,
) -> ListingQuery:
    """
    Build the query for an article listing.

    Args:
        params: Raw query-string parameters
        base: Extra predicate the handler imposes (e.g. the caller's own articles)
        published_only: AND ``status == published`` (every public listing)
        premium_only: AND ``isPremium == true``

    Raises:
        InvalidArgument: Bad pagination parameters
    """
    clauses: list[Filters] = []
    if base:
        clauses.append(base)
    if published_only:
        clauses.append({"status": ArticleStatus.PUBLISHED.value})
    if premium_only:
        clauses.append({"isPremium": True})
    clauses.extend(filter_clauses(params))

    return ListingQuery(
        predicate=combine(clauses),
        page=parse_page(params, default_size),
        sort=list(sort or DEFAULT_SORT),
    )


def build_status_filter(params: Mapping[str, Any]) -> Filters:
    """Optional ``status`` parameter for admin listings."""
    status = _text_param(params, "status")
    if status is None:
        return {}
    try:
        return {"status": ArticleStatus(status).value}
    except ValueError:
        allowed = ", ".join(s.value for s in ArticleStatus)
        raise InvalidArgument(f"'status' must be one of: {allowed}")


def build_page_query(params: Mapping[str, Any], base: Filters | None = None, sort: Sort | None = None) -> ListingQuery:
    """Plain paginated listing without article filters (users, payments)."""
    return ListingQuery(
        predicate=dict(base or {}),
        page=parse_page(params),
        sort=list(sort or DEFAULT_SORT),
    )


# =============================================================================
# Execution
# =============================================================================


async def run_listing(storage: DocumentStorage, collection: str, query: ListingQuery) -> dict[str, Any]:
    """Count and fetch one page."""
    total = await storage.count(collection, query.predicate)
    items = await storage.find(
        collection,
        query.predicate,
        skip=query.skip,
        limit=query.limit,
        sort=query.sort,
    )
    return {
        "items": items,
        "total": total,
        "page": query.page.index,
        "size": query.page.size,
    }
