# =============================================================================
# Article Routes
# =============================================================================
#
# Endpoints:
#   GET    /api/articles           - Published articles (search, publisher, tag, page, size)
#   GET    /api/articles/premium   - Published premium articles (premium)
#   GET    /api/articles/trending  - Most viewed published articles
#   GET    /api/articles/mine      - Caller's own articles, any status
#   GET    /api/articles/{id}      - One article; counts a view
#   POST   /api/articles           - Submit an article (authenticated)
#   PUT    /api/articles/{id}      - Edit (author or admin)
#   DELETE /api/articles/{id}      - Delete (author or admin)
#   GET    /api/admin/articles     - Every article, optional status filter (admin)
#
# =============================================================================

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from mnews.api.deps import deleted, get_storage, inserted, updated
from mnews.auth import (
    AuthContext,
    owner_from_document,
    require_admin,
    require_auth,
    require_owner_or_admin,
    require_premium,
    require_public,
)
from mnews.core.errors import Forbidden, NotFound, Unauthenticated
from mnews.core.models import Article, ArticleStatus, AuthorRef, PublisherRef
from mnews.services.query import (
    build_listing,
    build_status_filter,
    parse_int,
    run_listing,
)
from mnews.services.updates import article_fields_for, pick_fields
from mnews.storage import DESCENDING, Collections, DocumentStorage

router = APIRouter(prefix="/api", tags=["articles"])

article_owner = owner_from_document(Collections.ARTICLES, "author.email")


def normalize_tags(tags: list[str]) -> list[str]:
    """Lowercased, trimmed, deduplicated; the same form the tags collection keeps."""
    return sorted({tag.strip().lower() for tag in tags if tag.strip()})


# =============================================================================
# Request Models
# =============================================================================


class CreateArticleRequest(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    body: str = ""
    image: str = ""
    publisher: PublisherRef | None = None
    tags: list[str] = Field(default_factory=list)


class UpdateArticleRequest(BaseModel):
    """Every field optional; role decides which ones are applied."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str | None = Field(default=None, min_length=1, max_length=300)
    body: str | None = None
    image: str | None = None
    publisher: PublisherRef | None = None
    tags: list[str] | None = None
    status: ArticleStatus | None = None
    is_premium: bool | None = None


# =============================================================================
# Listings
# =============================================================================


@router.get("/articles")
async def list_articles(
    request: Request,
    storage: DocumentStorage = Depends(get_storage),
):
    """Published articles, filtered and paginated."""
    query = build_listing(request.query_params)
    return await run_listing(storage, Collections.ARTICLES, query)


@router.get("/articles/premium")
async def list_premium_articles(
    request: Request,
    ctx: AuthContext = Depends(require_premium()),
    storage: DocumentStorage = Depends(get_storage),
):
    """Published premium articles, for subscribers."""
    query = build_listing(request.query_params, premium_only=True)
    return await run_listing(storage, Collections.ARTICLES, query)


@router.get("/articles/trending")
async def list_trending_articles(
    request: Request,
    storage: DocumentStorage = Depends(get_storage),
):
    """Most viewed published articles."""
    limit = parse_int(request.query_params.get("limit"), "limit", default=6, minimum=1, maximum=50)
    return await storage.find(
        Collections.ARTICLES,
        {"status": ArticleStatus.PUBLISHED.value},
        limit=limit,
        sort=[("views", DESCENDING), ("_id", DESCENDING)],
    )


@router.get("/articles/mine")
async def list_my_articles(
    request: Request,
    ctx: AuthContext = Depends(require_auth()),
    storage: DocumentStorage = Depends(get_storage),
):
    """The caller's own articles, drafts included."""
    query = build_listing(
        request.query_params,
        base={"author.email": ctx.email},
        published_only=False,
    )
    return await run_listing(storage, Collections.ARTICLES, query)


@router.get("/admin/articles")
async def list_all_articles(
    request: Request,
    ctx: AuthContext = Depends(require_admin()),
    storage: DocumentStorage = Depends(get_storage),
):
    """Every article, for moderation."""
    query = build_listing(
        request.query_params,
        base=build_status_filter(request.query_params),
        published_only=False,
    )
    return await run_listing(storage, Collections.ARTICLES, query)


# =============================================================================
# Single article
# =============================================================================


@router.get("/articles/{id}")
async def get_article(
    id: str,
    ctx: AuthContext = Depends(require_public()),
    storage: DocumentStorage = Depends(get_storage),
):
    """
    Get one article and count the view.

    Drafts exist only for their author and admins. Premium articles need a
    subscription unless the caller wrote them.
    """
    article = await storage.find_one(Collections.ARTICLES, {"_id": id})
    if article is None:
        raise NotFound("Article not found")

    manages = ctx.can_manage((article.get("author") or {}).get("email"))

    if article.get("status") != ArticleStatus.PUBLISHED.value and not manages:
        raise NotFound("Article not found")

    if article.get("isPremium") and not (ctx.is_premium or manages):
        if ctx.is_anonymous:
            raise Unauthenticated("Sign in to read premium articles")
        raise Forbidden("Requires an active premium subscription")

    await storage.update_one(Collections.ARTICLES, {"_id": id}, inc={"views": 1})
    article["views"] = article.get("views", 0) + 1
    return article


@router.post("/articles")
async def create_article(
    data: CreateArticleRequest,
    ctx: AuthContext = Depends(require_auth()),
    storage: DocumentStorage = Depends(get_storage),
):
    """
    Submit an article as the caller. It starts as a draft until an admin
    publishes it.
    """
    author_name = (ctx.user or {}).get("name", "")
    article = Article(
        title=data.title,
        body=data.body,
        image=data.image,
        author=AuthorRef(name=author_name, email=ctx.email),
        publisher=data.publisher,
        tags=normalize_tags(data.tags),
    )
    article_id = await storage.insert_one(Collections.ARTICLES, article.to_document())
    return inserted(article_id)


@router.put("/articles/{id}")
async def update_article(
    id: str,
    data: UpdateArticleRequest,
    ctx: AuthContext = Depends(require_owner_or_admin(article_owner)),
    storage: DocumentStorage = Depends(get_storage),
):
    """Edit an article. Only admins may change status or premium."""
    body = data.model_dump(exclude_none=True, by_alias=True, mode="json")
    if "tags" in body:
        body["tags"] = normalize_tags(body["tags"])

    changes = pick_fields(body, article_fields_for(ctx.is_admin))
    result = await storage.update_one(Collections.ARTICLES, {"_id": id}, set_fields=changes)
    return updated(result)


@router.delete("/articles/{id}")
async def delete_article(
    id: str,
    ctx: AuthContext = Depends(require_owner_or_admin(article_owner)),
    storage: DocumentStorage = Depends(get_storage),
):
    """Delete an article."""
    return deleted(await storage.delete_one(Collections.ARTICLES, {"_id": id}))
