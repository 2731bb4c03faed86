"""Copilot Saver FastAPI application — entry point for the API server.

Usage:
    uvicorn copilot_saver.api.main:app --port 3000
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from config.settings import Settings, get_settings
from copilot_saver import __version__
from copilot_saver.api.container import Container, build_container
from copilot_saver.api.errors import register_exception_handlers
from copilot_saver.core.logging import get_logger, setup_logging

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup/shutdown lifecycle — open storage and the scheduler, close on exit."""
    container: Container = app.state.container
    log.info(
        "api_starting",
        storage_backend=container.storage.name,
        sync_enabled=container.settings.sync_enabled,
    )
    await container.start()
    yield
    await container.close()
    log.info("api_shutdown")


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or get_settings()
    setup_logging(settings.log_level, json=settings.log_json)

    app = FastAPI(
        title="Copilot Saver API",
        description="Stores and serves GitHub Copilot usage, metrics, and seats per tenant",
        version=__version__,
        lifespan=lifespan,
        servers=[{"url": settings.server_url}],
    )
    app.state.container = build_container(settings, transport=transport)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Register routers
    from copilot_saver.api.routes.copilot import router as copilot_router
    from copilot_saver.api.routes.health import router as health_router
    from copilot_saver.api.routes.sync import router as sync_router
    from copilot_saver.api.routes.tenants import router as tenants_router

    app.include_router(health_router, prefix="/api")
    app.include_router(tenants_router, prefix="/api")
    app.include_router(sync_router, prefix="/api")
    app.include_router(copilot_router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> RedirectResponse:
        return RedirectResponse(url="/api/tenants")

    return app


app = create_app()
