"""
Document Chat Server Application Entry Point

This module defines the FastAPI application instance, registers all routers,
configures global exception handling, and provides a test-friendly application
factory.

Startup Order
-------------
1. Logging is configured from settings.
2. The workspace is built and attached to ``app.state``.
3. Stored documents are loaded, the LLM/embedding services are checked and
   the index is rehydrated in a background task, so the server accepts
   requests (``/health`` in particular) while models are still loading.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from .config import settings
from .core.errors import register_exception_handlers
from .core.logging_setup import configure_logging
from .runtime.workspace import Workspace

from .api import (
    chat_routes,
    document_routes,
    health_routes,
    search_routes,
)


logger = logging.getLogger("docchat.app")


# ---------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging(settings.log_level)
    logger.info("Starting doc-chat-server")

    workspace = Workspace.from_settings(settings)
    app.state.workspace = workspace

    startup = asyncio.create_task(workspace.start())
    try:
        yield
    finally:
        logger.info("Shutting down doc-chat-server")
        if not startup.done():
            startup.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await startup
        workspace.close()


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    app = FastAPI(
        title="doc-chat-server",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    app.include_router(health_routes.router)
    app.include_router(document_routes.router)
    app.include_router(chat_routes.router)
    app.include_router(search_routes.router)

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn)
# ---------------------------------------------------------------------

app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "doc_chat_server.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
