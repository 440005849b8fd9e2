"""
Core data models for the mNews API.

These models describe the documents kept in the six collections. Stored
and returned documents use camelCase keys (``isPremium``, ``createdAt``)
since that is what the web client reads; the Python side uses snake_case
attributes and converts through aliases.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from mnews.core.utils import as_utc, generate_id, utc_now


# =============================================================================
# Enums
# =============================================================================


class Role(str, Enum):
    """Platform-wide role of a user."""

    USER = "user"
    ADMIN = "admin"


class ArticleStatus(str, Enum):
    """Publication state of an article."""

    DRAFT = "draft"          # Visible to its author and admins only
    PUBLISHED = "published"  # Visible to everyone


# =============================================================================
# Base
# =============================================================================


class Document(BaseModel):
    """Base for everything stored in a collection."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    id: str = Field(default_factory=generate_id, alias="_id")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_document(self) -> dict[str, Any]:
        """Dump with the stored (camelCase) keys."""
        return self.model_dump(by_alias=True, mode="python")


# =============================================================================
# Embedded references
# =============================================================================


class AuthorRef(BaseModel):
    """Author embedded in an article."""

    name: str = ""
    email: str


class PublisherRef(BaseModel):
    """Publisher embedded in an article."""

    name: str


# =============================================================================
# Users
# =============================================================================


class User(Document):
    """
    A registered reader or writer.

    Created on first sign-in. Premium is granted by recording a payment
    and lasts ``premium_duration`` minutes from ``premium_taken``.
    """

    id: str = Field(default_factory=lambda: generate_id("user"), alias="_id")
    email: str
    name: str = ""
    photo: str = ""
    role: Role = Role.USER
    is_premium: bool = False
    premium_taken: datetime | None = None
    premium_duration: int | None = None  # minutes


def premium_expires_at(user: dict[str, Any]) -> datetime | None:
    """When the user's premium subscription ends, if they have one."""
    taken = user.get("premiumTaken")
    duration = user.get("premiumDuration")
    if taken is None or duration is None:
        return None
    return as_utc(taken) + timedelta(minutes=duration)


def has_active_premium(user: dict[str, Any], now: datetime | None = None) -> bool:
    """Is the premium flag set and not past its subscription window?"""
    if not user.get("isPremium"):
        return False
    expires = premium_expires_at(user)
    if expires is None:
        # Premium granted without a window never lapses
        return True
    return (now or utc_now()) < expires


# =============================================================================
# Articles
# =============================================================================


class Article(Document):
    """A news article."""

    id: str = Field(default_factory=lambda: generate_id("art"), alias="_id")
    title: str
    body: str = ""
    image: str = ""
    author: AuthorRef
    publisher: PublisherRef | None = None
    tags: list[str] = Field(default_factory=list)
    status: ArticleStatus = ArticleStatus.DRAFT
    is_premium: bool = False
    views: int = 0


# =============================================================================
# Publishers & Tags
# =============================================================================


class Publisher(Document):
    """A publisher that articles can be attributed to."""

    id: str = Field(default_factory=lambda: generate_id("pub"), alias="_id")
    name: str
    logo: str = ""


class Tag(Document):
    """A tag articles can be labelled with."""

    id: str = Field(default_factory=lambda: generate_id("tag"), alias="_id")
    name: str


# =============================================================================
# Reviews
# =============================================================================


class Review(Document):
    """A reader's review of the site."""

    id: str = Field(default_factory=lambda: generate_id("rev"), alias="_id")
    email: str
    name: str = ""
    photo: str = ""
    rating: int = Field(ge=1, le=5)
    comment: str = ""


# =============================================================================
# Payments
# =============================================================================


class Payment(Document):
    """The single active payment of a user. Repurchase replaces it."""

    id: str = Field(default_factory=lambda: generate_id("pay"), alias="_id")
    email: str
    amount: float
    start_time: datetime = Field(default_factory=utc_now)
    duration: int  # minutes
    payment_intent_id: str | None = None
