# =============================================================================
# Review Routes
# =============================================================================
#
# Endpoints:
#   GET    /api/reviews       - Reviews, newest first (optional limit)
#   POST   /api/reviews       - Post a review as the caller
#   DELETE /api/reviews/{id}  - Delete (reviewer or admin)
#
# =============================================================================

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from mnews.api.deps import deleted, get_storage, inserted
from mnews.auth import AuthContext, owner_from_document, require_auth, require_owner_or_admin
from mnews.core.models import Review
from mnews.services.query import DEFAULT_SORT, parse_int
from mnews.storage import Collections, DocumentStorage

router = APIRouter(prefix="/api", tags=["reviews"])


class CreateReviewRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str = Field(default="", max_length=2000)


@router.get("/reviews")
async def list_reviews(request: Request, storage: DocumentStorage = Depends(get_storage)):
    """Reviews, newest first."""
    limit = parse_int(request.query_params.get("limit"), "limit", default=0, maximum=100)
    return await storage.find(Collections.REVIEWS, limit=limit, sort=DEFAULT_SORT)


@router.post("/reviews")
async def create_review(
    data: CreateReviewRequest,
    ctx: AuthContext = Depends(require_auth()),
    storage: DocumentStorage = Depends(get_storage),
):
    """Post a review. Name and photo come from the caller's profile."""
    profile = ctx.user or {}
    review = Review(
        email=ctx.email,
        name=profile.get("name", ""),
        photo=profile.get("photo", ""),
        rating=data.rating,
        comment=data.comment,
    )
    return inserted(await storage.insert_one(Collections.REVIEWS, review.to_document()))


@router.delete("/reviews/{id}")
async def delete_review(
    id: str,
    ctx: AuthContext = Depends(require_owner_or_admin(owner_from_document(Collections.REVIEWS, "email"))),
    storage: DocumentStorage = Depends(get_storage),
):
    """Delete a review."""
    return deleted(await storage.delete_one(Collections.REVIEWS, {"_id": id}))
