# =============================================================================
# Publisher & Tag Routes
# =============================================================================
#
# Endpoints:
#   GET    /api/publishers        - All publishers
#   GET    /api/publishers/stats  - Published article count per publisher
#   POST   /api/publishers        - Add a publisher (admin)
#   PUT    /api/publishers/{id}   - Rename / change logo (admin)
#   DELETE /api/publishers/{id}   - Remove (admin)
#
#   GET    /api/tags              - All tags
#   POST   /api/tags              - Add a tag (admin, idempotent)
#   DELETE /api/tags/{id}         - Remove (admin)
#
# =============================================================================

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from mnews.api.deps import deleted, get_storage, inserted, updated
from mnews.auth import AuthContext, require_admin
from mnews.core.errors import Conflict, NotFound
from mnews.core.models import ArticleStatus, Publisher, Tag
from mnews.services.updates import PUBLISHER_FIELDS, pick_fields
from mnews.storage import ASCENDING, Collections, DocumentStorage

router = APIRouter(prefix="/api", tags=["publishers"])


class CreatePublisherRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    logo: str = ""


class UpdatePublisherRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    logo: str | None = None


class CreateTagRequest(BaseModel):
    name: str = Field(min_length=1, max_length=50)


# =============================================================================
# Publishers
# =============================================================================


@router.get("/publishers")
async def list_publishers(storage: DocumentStorage = Depends(get_storage)):
    """All publishers by name."""
    return await storage.find(Collections.PUBLISHERS, sort=[("name", ASCENDING)])


@router.get("/publishers/stats")
async def publisher_stats(storage: DocumentStorage = Depends(get_storage)):
    """
    How many published articles each publisher has.

    Publishers without articles are listed with zero; most prolific first.
    """
    publishers = await storage.find(Collections.PUBLISHERS, sort=[("name", ASCENDING)])
    counts = await storage.count_by(
        Collections.ARTICLES,
        "publisher.name",
        {"status": ArticleStatus.PUBLISHED.value},
    )

    stats = [
        {
            "name": publisher["name"],
            "logo": publisher.get("logo", ""),
            "articleCount": counts.get(publisher["name"], 0),
        }
        for publisher in publishers
    ]
    stats.sort(key=lambda x: x["articleCount"], reverse=True)
    return stats


@router.post("/publishers")
async def create_publisher(
    data: CreatePublisherRequest,
    ctx: AuthContext = Depends(require_admin()),
    storage: DocumentStorage = Depends(get_storage),
):
    """Add a publisher. Names are unique."""
    name = data.name.strip()
    if await storage.find_one(Collections.PUBLISHERS, {"name": name}):
        raise Conflict(f"Publisher '{name}' already exists")

    publisher = Publisher(name=name, logo=data.logo)
    return inserted(await storage.insert_one(Collections.PUBLISHERS, publisher.to_document()))


@router.put("/publishers/{id}")
async def update_publisher(
    id: str,
    data: UpdatePublisherRequest,
    ctx: AuthContext = Depends(require_admin()),
    storage: DocumentStorage = Depends(get_storage),
):
    """Rename a publisher or change its logo."""
    changes = pick_fields(data.model_dump(exclude_none=True), PUBLISHER_FIELDS)
    if "name" in changes:
        changes["name"] = changes["name"].strip()

    result = await storage.update_one(Collections.PUBLISHERS, {"_id": id}, set_fields=changes)
    if result.matched_count == 0:
        raise NotFound("Publisher not found")
    return updated(result)


@router.delete("/publishers/{id}")
async def delete_publisher(
    id: str,
    ctx: AuthContext = Depends(require_admin()),
    storage: DocumentStorage = Depends(get_storage),
):
    """Remove a publisher. Articles keep their embedded name."""
    return deleted(await storage.delete_one(Collections.PUBLISHERS, {"_id": id}))


# =============================================================================
# Tags
# =============================================================================


@router.get("/tags", tags=["tags"])
async def list_tags(storage: DocumentStorage = Depends(get_storage)):
    """All tags by name."""
    return await storage.find(Collections.TAGS, sort=[("name", ASCENDING)])


@router.post("/tags", tags=["tags"])
async def create_tag(
    data: CreateTagRequest,
    ctx: AuthContext = Depends(require_admin()),
    storage: DocumentStorage = Depends(get_storage),
):
    """Add a tag; adding an existing name is a no-op."""
    name = data.name.strip().lower()
    if await storage.find_one(Collections.TAGS, {"name": name}):
        return inserted(None, message="Tag already exists!")

    tag = Tag(name=name)
    return inserted(await storage.insert_one(Collections.TAGS, tag.to_document()))


@router.delete("/tags/{id}", tags=["tags"])
async def delete_tag(
    id: str,
    ctx: AuthContext = Depends(require_admin()),
    storage: DocumentStorage = Depends(get_storage),
):
    """Remove a tag."""
    return deleted(await storage.delete_one(Collections.TAGS, {"_id": id}))
