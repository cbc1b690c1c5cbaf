"""FastAPI application factory and lifespan management.

This module contains the create_app() factory function that creates and configures
the FastAPI application instance, including lifespan management for startup/shutdown
and router registration.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pilot_server import __version__
from pilot_server.config import PilotServerSettings
from pilot_server.routers import health, text, tools
from pilot_server.services import ToolOrchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for FastAPI application.

    The tool orchestrator is created once at startup and stored in app.state.
    It connects to every configured provider before the server accepts
    requests, and closes every connection on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None: Control is yielded while the app is running.
    """
    settings: PilotServerSettings = app.state.settings
    orchestrator = ToolOrchestrator.from_settings(settings)
    app.state.orchestrator = orchestrator
    logger.info(
        f"Initialized orchestrator with engine '{orchestrator.engine.name}' "
        f"(model: {orchestrator.engine.model})"
    )

    try:
        await orchestrator.init()
    except Exception:
        await orchestrator.close_all()
        raise

    connected = await orchestrator.engine.check_connection()
    if connected is False:
        logger.warning(
            f"Could not connect to engine '{orchestrator.engine.name}' - check if it is running"
        )

    yield

    await orchestrator.close_all()
    logger.info("Tool orchestrator closed")


def create_app(settings: PilotServerSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional PilotServerSettings instance. If not provided,
                  settings will be loaded from environment variables.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        from pilot_server.dependencies import get_settings

        settings = get_settings()

    app = FastAPI(
        title="pilot-server",
        description="Tool orchestration server connecting a reasoning engine to MCP tool providers",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings

    # Note: FastAPI's type hints for add_middleware are overly strict
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(text.router)
    app.include_router(tools.router)

    return app
