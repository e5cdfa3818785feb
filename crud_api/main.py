"""FastAPI application entrypoint for the CRUD API."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi import Request

from crud_api.api.authors import router as authors_router
from crud_api.api.comments import router as comments_router
from crud_api.api.posts import router as posts_router
from crud_api.core.config import Settings
from crud_api.core.config import get_settings
from crud_api.core.errors import register_error_handlers
from crud_api.db.base import init_db
from crud_api.db.query_log import query_logger

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    init_db()
    yield


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logger.info("Creating CRUD API with settings=%s", settings.safe_for_logging())

    app = FastAPI(title="CRUD API", lifespan=lifespan)
    app.state.settings = settings
    register_error_handlers(app)

    if settings.query_log:

        @app.middleware("http")
        async def capture_query_log(request: Request, call_next):
            # Error handlers read the buffer from request.state once the
            # capture has closed.
            with query_logger.capture() as logs:
                request.state.query_log = logs
                return await call_next(request)

    app.include_router(authors_router)
    app.include_router(posts_router)
    app.include_router(comments_router)

    @app.get("/health")
    def health() -> dict[str, str]:
        """Health check stub endpoint for service readiness."""
        return {"status": "ok"}

    return app


app = create_app()
