"""
FastAPI application for the mNews API.

This is the HTTP API the mNews web client talks to.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from mnews.api.routes import articles, publishers, reviews, users
from mnews.api.routes import payments as payment_routes
from mnews.auth import auth_router
from mnews.config import Settings, get_settings
from mnews.core.errors import NewsError, UpstreamFailure
from mnews.integrations.payments import PaymentProvider, create_payment_provider
from mnews.integrations.sentry import capture_exception, init_sentry
from mnews.storage import DocumentStorage, create_storage

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup app resources."""
    settings: Settings = app.state.settings
    configure_logging(settings)

    if init_sentry(settings):
        logger.info("Sentry error tracking enabled")

    # Collaborators injected by create_app() (tests) are kept as they are
    owns_storage = getattr(app.state, "storage", None) is None
    if owns_storage:
        app.state.storage = await create_storage(settings)
    if getattr(app.state, "payments", None) is None:
        app.state.payments = create_payment_provider(settings)

    logger.info("mNews API starting in %s mode", settings.environment)

    yield

    if owns_storage:
        await app.state.storage.close()
    logger.info("mNews API shutting down")


# =============================================================================
# Error handling
# =============================================================================


async def handle_news_error(request: Request, exc: NewsError) -> JSONResponse:
    if isinstance(exc, UpstreamFailure):
        logger.error("Upstream failure on %s %s: %s", request.method, request.url.path, exc.message)
        capture_exception(exc, path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    capture_exception(exc, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "message": "Internal server error"},
    )


# =============================================================================
# App Setup
# =============================================================================


def create_app(
    settings: Settings | None = None,
    storage: DocumentStorage | None = None,
    payment_provider: PaymentProvider | None = None,
) -> FastAPI:
    """
    Build the application.

    Anything not passed in is created from settings at startup.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="mNews API",
        description="API for the mNews publishing site",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.storage = storage
    app.state.payments = payment_provider

    # CORS: only the known client origins, with cookies
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Idempotency-Key"],
    )

    app.add_exception_handler(NewsError, handle_news_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        return "mNews Server is running..."

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "mnews-api"}

    app.include_router(auth_router)
    app.include_router(articles.router)
    app.include_router(publishers.router)
    app.include_router(reviews.router)
    app.include_router(users.router)
    app.include_router(payment_routes.router)

    return app


app = create_app()
