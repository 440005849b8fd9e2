"""
Auth context - the "who is asking" for each request.

This is the lightweight object passed to route handlers. It pairs the
verified Identity with the caller's User record so that role and
premium decisions never depend on anything the client sent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any

from mnews.auth.jwt import Identity
from mnews.core.models import Role, has_active_premium
from mnews.storage.base import Collections, DocumentStorage

logger = logging.getLogger(__name__)


@dataclass
class AuthContext:
    """
    Authorization context for a request.

    Usage in routes:
        async def my_route(ctx: AuthContext = Depends(require_auth())):
            print(f"{ctx.email} is asking")
            if ctx.is_admin:
                # do something
    """

    # Who (from the verified token)
    identity: Identity | None = None

    # Their stored record, if they have signed in before
    user: dict[str, Any] | None = None

    # Resolved from the user record
    role: Role = Role.USER
    premium: bool = False

    # Extra context (e.g. the resource an ownership check loaded)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def email(self) -> str | None:
        """The verified email, the only one ever trusted for checks."""
        return self.identity.email if self.identity else None

    @property
    def is_authenticated(self) -> bool:
        """Is there a verified identity?"""
        return self.identity is not None

    @property
    def is_anonymous(self) -> bool:
        """Is this an anonymous request?"""
        return self.identity is None

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.role == Role.ADMIN

    @property
    def is_premium(self) -> bool:
        """Active subscriber. Admins see premium content too."""
        return self.is_authenticated and (self.premium or self.is_admin)

    def owns(self, owner_email: str | None) -> bool:
        """Does the verified identity match the resource owner's email?"""
        if self.email is None or not owner_email:
            return False
        return self.email.lower() == owner_email.lower()

    def can_manage(self, owner_email: str | None) -> bool:
        """Owner or admin."""
        return self.owns(owner_email) or self.is_admin

    @property
    def resource(self) -> dict[str, Any] | None:
        """Document loaded while checking ownership, if any."""
        return self.metadata.get("resource")

    @classmethod
    def anonymous(cls) -> AuthContext:
        """Create an anonymous context (no identity)."""
        return cls()


# =============================================================================
# Context Resolution
# =============================================================================


async def get_auth_context(
    identity: Identity | None,
    storage: DocumentStorage | None = None,
) -> AuthContext:
    """
    Resolve the full auth context for a request.

    Looks up the caller's User record by the verified email to find their
    role and premium state. A lapsed subscription is reported as not
    premium and the stored flag is cleared.
    """
    if identity is None:
        return AuthContext.anonymous()

    if storage is None:
        return AuthContext(identity=identity)

    user = await storage.find_one(Collections.USERS, {"email": identity.email})
    if user is None:
        return AuthContext(identity=identity)

    try:
        role = Role(user.get("role", Role.USER.value))
    except ValueError:
        role = Role.USER

    premium = has_active_premium(user)
    if user.get("isPremium") and not premium:
        logger.info("Premium subscription of %s has lapsed", identity.email)
        await storage.update_one(
            Collections.USERS,
            {"email": identity.email},
            set_fields={"isPremium": False},
        )
        user["isPremium"] = False

    return AuthContext(identity=identity, user=user, role=role, premium=premium)
