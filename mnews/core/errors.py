"""
Error taxonomy for the mNews API.

Every error raised by the auth layer, the query builder, the storage
backends and the payment provider is a NewsError. The API maps each one
to its HTTP status with a `{"error": code, "message": text}` body.
"""

from __future__ import annotations


class NewsError(Exception):
    """Base exception for all mNews errors."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "message": self.message}


class Unauthenticated(NewsError):
    """Missing, invalid or expired credential."""

    status_code = 401
    code = "unauthenticated"


class Forbidden(NewsError):
    """Valid credential, insufficient authorization."""

    status_code = 403
    code = "forbidden"


class NotFound(NewsError):
    """No matching document."""

    status_code = 404
    code = "not_found"


class Conflict(NewsError):
    """A unique key is already taken."""

    status_code = 409
    code = "conflict"


class InvalidArgument(NewsError):
    """Request parameters that cannot be turned into a query or update."""

    status_code = 400
    code = "invalid_argument"


class UpstreamFailure(NewsError):
    """The document store or the payment provider failed."""

    status_code = 500
    code = "upstream_failure"
