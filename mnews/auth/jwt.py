# =============================================================================
# JWT Cookie Authentication
# =============================================================================
#
# This module provides:
#   - Token creation (24 hour lifetime by default)
#   - Token validation into an Identity
#   - Setting and clearing the http-only `token` cookie
#
# The credential travels only in the cookie, never in a header.
#
# =============================================================================

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging

from fastapi import Response
from pydantic import BaseModel
import jwt

from mnews.config import Settings, get_settings
from mnews.core.errors import Unauthenticated
from mnews.core.utils import utc_now

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================


class Identity(BaseModel):
    """The authenticated subject of a request. Never persisted."""

    email: str
    issued_at: datetime
    expires_at: datetime


# =============================================================================
# Errors
# =============================================================================


class TokenExpiredError(Unauthenticated):
    """Token has expired."""
    pass


class TokenInvalidError(Unauthenticated):
    """Token is invalid or malformed."""
    pass


# =============================================================================
# Token Creation
# =============================================================================


def create_token(
    email: str,
    extra_claims: dict | None = None,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> str:
    """Sign a token for ``email`` that expires after the configured lifetime."""
    settings = settings or get_settings()
    issued = now or utc_now()
    expire = issued + timedelta(hours=settings.jwt_expire_hours)

    payload = {
        **(extra_claims or {}),
        "email": email,
        "iat": issued,
        "exp": expire,
    }

    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


# =============================================================================
# Token Validation
# =============================================================================


def decode_token(token: str | None, settings: Settings | None = None) -> Identity:
    """
    Decode and validate a token.

    Args:
        token: The JWT string from the cookie (None when absent)

    Returns:
        Identity of the token's subject

    Raises:
        Unauthenticated: No token given
        TokenExpiredError: Token has expired
        TokenInvalidError: Bad signature, malformed, or missing the email claim
    """
    if not token:
        raise Unauthenticated("Missing credential")

    settings = settings or get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenInvalidError(f"Invalid token: {e}")

    email = payload.get("email")
    if not email or not isinstance(email, str):
        raise TokenInvalidError("Invalid token: no email claim")

    return Identity(
        email=email,
        issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )


# =============================================================================
# Cookie Handling
# =============================================================================


def set_token_cookie(response: Response, token: str, settings: Settings | None = None) -> None:
    """
    Attach the token as an http-only cookie.

    Cross-site in production (the client is served from another origin),
    strict same-site during local development.
    """
    settings = settings or get_settings()
    production = settings.is_production

    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        max_age=settings.jwt_expire_hours * 3600,
        httponly=True,
        secure=production,
        samesite="none" if production else "strict",
    )


def clear_token_cookie(response: Response, settings: Settings | None = None) -> None:
    """Expire the token cookie immediately."""
    settings = settings or get_settings()
    production = settings.is_production

    response.set_cookie(
        key=settings.cookie_name,
        value="",
        max_age=0,
        httponly=True,
        secure=production,
        samesite="none" if production else "strict",
    )
