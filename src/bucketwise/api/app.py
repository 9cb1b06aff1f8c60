"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bucketwise import __version__
from bucketwise.api.routes import (
    chat_router,
    core_queries_admin_router,
    core_queries_router,
    health_router,
    messages_router,
)
from bucketwise.chat.providers import create_provider
from bucketwise.chat.session import ChatMetrics, DetachedWorkers
from bucketwise.config import settings
from bucketwise.db.connection import close_db, init_db

log = structlog.get_logger()

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Build the chat backend and database schema before serving.

    A misconfigured backend raises here, so the process never starts
    accepting chat requests it cannot answer. On shutdown, replies still
    streaming to disconnected clients get a grace period to finish and be
    written before the backend and the database are closed.
    """
    provider = create_provider(settings)
    app.state.chat_provider = provider
    await init_db()
    log.info("api_ready", provider=provider.name, model=provider.model)
    try:
        yield
    finally:
        await app.state.chat_workers.drain(settings.chat_shutdown_grace_seconds)
        await provider.aclose()
        await close_db()
        log.info("api_stopped")


def create_api_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app with all routes and middleware.
    """
    app = FastAPI(
        title="Bucketwise API",
        description="Project workspace with AI chat on every page and bucket",
        version=__version__,
        docs_url=f"{API_PREFIX}/docs",
        redoc_url=f"{API_PREFIX}/redoc",
        openapi_url=f"{API_PREFIX}/openapi.json",
        lifespan=lifespan,
    )
    app.state.chat_metrics = ChatMetrics()
    app.state.chat_workers = DetachedWorkers()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat_router, prefix=API_PREFIX)
    app.include_router(messages_router, prefix=API_PREFIX)
    app.include_router(core_queries_router, prefix=API_PREFIX)
    app.include_router(core_queries_admin_router, prefix=API_PREFIX)
    app.include_router(health_router, prefix=API_PREFIX)

    @app.get("/")
    async def root() -> dict[str, str]:
        """API root - basic info."""
        return {
            "name": "Bucketwise API",
            "version": __version__,
            "docs": f"{API_PREFIX}/docs",
        }

    return app
