"""
Services - query construction and update rules shared by the routes.
"""

from mnews.services.query import (
    ListingQuery,
    Page,
    build_listing,
    build_page_query,
    run_listing,
)
from mnews.services.updates import pick_fields

__all__ = [
    "ListingQuery",
    "Page",
    "build_listing",
    "build_page_query",
    "run_listing",
    "pick_fields",
]
