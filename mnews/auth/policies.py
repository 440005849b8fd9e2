"""
Policies - the clean interface for route authorization.

Just use: `ctx: AuthContext = Depends(require_admin())`

Design:
- `require()` returns a FastAPI Depends that resolves to AuthContext
- It reads the token cookie, resolves the caller's user record, checks the tier
- No identity where one is needed raises Unauthenticated (401)
- Identity without enough access raises Forbidden (403)
- All of this happens before the route handler touches the store
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable
import logging

from fastapi import Request

from mnews.auth.context import AuthContext, get_auth_context
from mnews.auth.jwt import Identity, decode_token
from mnews.auth.tiers import Tier, requires_identity
from mnews.core.errors import Forbidden, NotFound, Unauthenticated
from mnews.integrations.sentry import set_user
from mnews.storage.base import DocumentStorage, resolve_path

logger = logging.getLogger(__name__)

# Finds the email of whoever owns the resource a request targets
OwnerResolver = Callable[[Request, DocumentStorage, AuthContext], Awaitable[str | None]]


# =============================================================================
# Credential extraction
# =============================================================================


def read_identity(request: Request, required: bool) -> Identity | None:
    """
    Verify the token cookie.

    With ``required=False`` a missing or bad token means anonymous rather
    than an error, so public routes keep working with a stale cookie.
    """
    settings = request.app.state.settings
    token = request.cookies.get(settings.cookie_name)

    try:
        return decode_token(token, settings)
    except Unauthenticated:
        if required:
            raise
        return None


# =============================================================================
# Policy - the core authorization type
# =============================================================================


class Policy:
    """
    A tier requirement that can be checked against a context.

        Policy(Tier.ADMIN).check(ctx)
        Policy(Tier.OWNER_OR_ADMIN).check(ctx, owner_email="a@x.com")
    """

    def __init__(self, tier: Tier = Tier.PUBLIC):
        self.tier = tier

    @property
    def require_auth(self) -> bool:
        return requires_identity(self.tier)

    def check(self, ctx: AuthContext, owner_email: str | None = None) -> tuple[bool, str | None]:
        """
        Check if context satisfies this policy.

        Returns: (allowed, error_message)
        """
        if self.tier == Tier.PUBLIC:
            return True, None

        if ctx.is_anonymous:
            return False, "Authentication required"

        if self.tier == Tier.AUTHENTICATED:
            return True, None

        if self.tier == Tier.PREMIUM:
            if ctx.is_premium:
                return True, None
            return False, "Requires an active premium subscription"

        if self.tier == Tier.OWNER_OR_ADMIN:
            if ctx.can_manage(owner_email):
                return True, None
            return False, "Only the owner or an admin can do this"

        if self.tier == Tier.ADMIN:
            if ctx.is_admin:
                return True, None
            return False, "Requires admin role"

        return False, f"Unknown tier: {self.tier}"

    def enforce(self, ctx: AuthContext, owner_email: str | None = None) -> None:
        """Raise the matching error if the context does not pass."""
        allowed, error = self.check(ctx, owner_email)
        if allowed:
            return
        if ctx.is_anonymous:
            raise Unauthenticated(error or "Authentication required")
        logger.info("Denied %s access to %s: %s", self.tier.value, ctx.email, error)
        raise Forbidden(error or "Forbidden")


# =============================================================================
# Owner resolvers
# =============================================================================


def owner_from_path(param: str = "email") -> OwnerResolver:
    """The owner's email is a path parameter (``/api/users/{email}``)."""

    async def resolve(request: Request, storage: DocumentStorage, ctx: AuthContext) -> str | None:
        return request.path_params.get(param)

    return resolve


def owner_from_document(
    collection: str,
    owner_field: str,
    id_param: str = "id",
) -> OwnerResolver:
    """
    The owner's email lives in the targeted document.

    The loaded document is kept on ``ctx.metadata["resource"]`` so the
    handler does not fetch it twice.
    """

    async def resolve(request: Request, storage: DocumentStorage, ctx: AuthContext) -> str | None:
        doc_id = request.path_params.get(id_param)
        document = await storage.find_one(collection, {"_id": doc_id})
        if document is None:
            raise NotFound(f"No document {doc_id} in {collection}")
        ctx.metadata["resource"] = document
        owner = resolve_path(document, owner_field)
        return owner if isinstance(owner, str) else None

    return resolve


# =============================================================================
# Main Interface - the require() function
# =============================================================================


def require(tier: Tier = Tier.AUTHENTICATED, owner: OwnerResolver | None = None) -> Callable:
    """
    Require a tier to access a route.

    Usage:
        @router.delete("/articles/{id}")
        async def delete_article(
            id: str,
            ctx: AuthContext = Depends(require(
                Tier.OWNER_OR_ADMIN,
                owner=owner_from_document("articles", "author.email"),
            )),
        ):
            ...

    Returns:
        FastAPI Depends that resolves to AuthContext
    """
    if tier == Tier.OWNER_OR_ADMIN and owner is None:
        raise ValueError("owner-or-admin routes need an owner resolver")

    return _create_dependency(Policy(tier), owner)


def require_public() -> Callable:
    """Anyone; resolves the context when a valid cookie is present."""
    return require(Tier.PUBLIC)


def require_auth() -> Callable:
    """Just require a valid identity."""
    return require(Tier.AUTHENTICATED)


def require_premium() -> Callable:
    """Require an active premium subscription."""
    return require(Tier.PREMIUM)


def require_admin() -> Callable:
    """Require the admin role."""
    return require(Tier.ADMIN)


def require_owner_or_admin(owner: OwnerResolver) -> Callable:
    """Require that the caller owns the resource, or is an admin."""
    return require(Tier.OWNER_OR_ADMIN, owner=owner)


# =============================================================================
# Internal: Create the FastAPI Dependency
# =============================================================================


def _create_dependency(policy: Policy, owner: OwnerResolver | None) -> Callable:
    """Create a FastAPI Depends from a policy."""

    async def dependency(request: Request) -> AuthContext:
        # Cheapest check first: no token, no database round trip
        identity = read_identity(request, required=policy.require_auth)

        storage: DocumentStorage = request.app.state.storage
        ctx = await get_auth_context(identity, storage)
        if ctx.user is not None:
            set_user(ctx.user["_id"], ctx.role.value)

        owner_email: Any = None
        if owner is not None:
            # Authentication must hold before we reveal whether a resource exists
            if ctx.is_anonymous:
                raise Unauthenticated("Authentication required")
            owner_email = await owner(request, storage, ctx)

        policy.enforce(ctx, owner_email)
        return ctx

    return dependency
