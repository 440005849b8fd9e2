# =============================================================================
# User Routes
# =============================================================================
#
# Endpoints:
#   POST   /api/users                - Record a user on first sign-in (idempotent)
#   GET    /api/users                - All users, paginated (admin)
#   GET    /api/users/stats          - Subscription counters (admin)
#   GET    /api/users/{email}        - Profile with premium state (self or admin)
#   PUT    /api/users/{email}        - Edit name / photo (self or admin)
#   PUT    /api/users/{email}/role   - Change role (admin)
#   DELETE /api/users/{email}        - Remove user and payment (admin)
#
# =============================================================================

import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, EmailStr, Field

from mnews.api.deps import deleted, get_storage, inserted, updated
from mnews.auth import (
    AuthContext,
    owner_from_path,
    require_admin,
    require_owner_or_admin,
)
from mnews.core.errors import Conflict, NotFound
from mnews.core.models import Role, User, has_active_premium, premium_expires_at
from mnews.services.query import build_page_query, run_listing
from mnews.services.updates import USER_PROFILE_FIELDS, pick_fields
from mnews.storage import Collections, DocumentStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["users"])

user_owner = owner_from_path("email")

USER_EXISTS = "User already exists!"


class CreateUserRequest(BaseModel):
    email: EmailStr
    name: str = Field(default="", max_length=120)
    photo: str = ""


class UpdateUserRequest(BaseModel):
    name: str | None = Field(default=None, max_length=120)
    photo: str | None = None


class UpdateRoleRequest(BaseModel):
    role: Role


def with_premium_state(user: dict) -> dict:
    """The stored user as the client should see it right now."""
    expires = premium_expires_at(user)
    return {
        **user,
        "isPremium": has_active_premium(user),
        "premiumExpiresAt": expires,
    }


# =============================================================================
# Sign-in record
# =============================================================================


@router.post("/users")
async def create_user(
    data: CreateUserRequest,
    storage: DocumentStorage = Depends(get_storage),
):
    """
    Record a user the first time they sign in.

    Calling again with the same email never creates a second document.
    New users always start as plain, non-premium readers.
    """
    email = data.email.lower()
    exists = {"message": USER_EXISTS, "insertedId": None}

    if await storage.find_one(Collections.USERS, {"email": email}):
        return exists

    user = User(email=email, name=data.name, photo=data.photo)
    try:
        user_id = await storage.insert_one(Collections.USERS, user.to_document())
    except Conflict:
        # Lost a race with a concurrent first sign-in
        return exists

    logger.info("New user %s", user_id)
    return inserted(user_id)


# =============================================================================
# Admin views
# =============================================================================


@router.get("/users")
async def list_users(
    request: Request,
    ctx: AuthContext = Depends(require_admin()),
    storage: DocumentStorage = Depends(get_storage),
):
    """All users, newest first."""
    listing = await run_listing(storage, Collections.USERS, build_page_query(request.query_params))
    listing["items"] = [with_premium_state(user) for user in listing["items"]]
    return listing


@router.get("/users/stats")
async def user_stats(
    ctx: AuthContext = Depends(require_admin()),
    storage: DocumentStorage = Depends(get_storage),
):
    """
    Subscription counters for the dashboard.

    Premium counts only subscriptions still inside their window, whether
    or not the lapsed flag has been cleared yet.
    """
    total = await storage.count(Collections.USERS)
    flagged = await storage.find(Collections.USERS, {"isPremium": True})
    premium = sum(1 for user in flagged if has_active_premium(user))
    admins = await storage.count(Collections.USERS, {"role": Role.ADMIN.value})
    return {
        "total": total,
        "premium": premium,
        "normal": total - premium,
        "admins": admins,
    }


# =============================================================================
# One user
# =============================================================================


@router.get("/users/{email}")
async def get_user(
    email: str,
    ctx: AuthContext = Depends(require_owner_or_admin(user_owner)),
    storage: DocumentStorage = Depends(get_storage),
):
    """A user's profile, with role and current premium state."""
    if ctx.owns(email) and ctx.user is not None:
        # Already loaded (and lapsed premium cleared) while resolving the caller
        return with_premium_state(ctx.user)

    user = await storage.find_one(Collections.USERS, {"email": email.lower()})
    if user is None:
        raise NotFound("User not found")
    return with_premium_state(user)


@router.put("/users/{email}")
async def update_user(
    email: str,
    data: UpdateUserRequest,
    ctx: AuthContext = Depends(require_owner_or_admin(user_owner)),
    storage: DocumentStorage = Depends(get_storage),
):
    """Edit the display name or photo. Role and premium are not editable here."""
    changes = pick_fields(data.model_dump(exclude_none=True), USER_PROFILE_FIELDS)
    result = await storage.update_one(Collections.USERS, {"email": email.lower()}, set_fields=changes)
    if result.matched_count == 0:
        raise NotFound("User not found")
    return updated(result)


@router.put("/users/{email}/role")
async def update_user_role(
    email: str,
    data: UpdateRoleRequest,
    ctx: AuthContext = Depends(require_admin()),
    storage: DocumentStorage = Depends(get_storage),
):
    """Make a user an admin, or take it away."""
    result = await storage.update_one(
        Collections.USERS,
        {"email": email.lower()},
        set_fields=pick_fields({"role": data.role.value}, {"role"}),
    )
    if result.matched_count == 0:
        raise NotFound("User not found")
    logger.info("%s set role of %s to %s", ctx.email, email, data.role.value)
    return updated(result)


@router.delete("/users/{email}")
async def delete_user(
    email: str,
    ctx: AuthContext = Depends(require_admin()),
    storage: DocumentStorage = Depends(get_storage),
):
    """Remove a user along with their payment record."""
    email = email.lower()
    done = await storage.delete_one(Collections.USERS, {"email": email})
    if done:
        await storage.delete_one(Collections.PAYMENTS, {"email": email})
    return deleted(done)
