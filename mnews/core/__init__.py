"""
Core module - data models, errors and shared utilities.
"""

from mnews.core.errors import (
    Conflict,
    Forbidden,
    InvalidArgument,
    NewsError,
    NotFound,
    Unauthenticated,
    UpstreamFailure,
)
from mnews.core.models import (
    Article,
    ArticleStatus,
    AuthorRef,
    Payment,
    Publisher,
    PublisherRef,
    Review,
    Role,
    Tag,
    User,
)
from mnews.core.utils import generate_id, utc_now

__all__ = [
    # Errors
    "NewsError",
    "Unauthenticated",
    "Forbidden",
    "NotFound",
    "Conflict",
    "InvalidArgument",
    "UpstreamFailure",
    # Models
    "Article",
    "ArticleStatus",
    "AuthorRef",
    "Payment",
    "Publisher",
    "PublisherRef",
    "Review",
    "Role",
    "Tag",
    "User",
    # Utils
    "generate_id",
    "utc_now",
]
