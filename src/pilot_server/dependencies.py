"""Dependency injection providers for FastAPI endpoints.

This module provides FastAPI dependency functions that are used across
multiple routers to inject common dependencies like settings and the
tool orchestrator.
"""

from functools import lru_cache

from fastapi import HTTPException, Request

from pilot_server.config import PilotServerSettings
from pilot_server.services import ToolOrchestrator


@lru_cache
def get_settings() -> PilotServerSettings:
    """Get the application settings instance.

    This function is cached so that the same settings instance is reused
    across all requests. Settings are loaded from environment variables
    with the PILOT_ prefix.

    Returns:
        PilotServerSettings: The application configuration settings.
    """
    return PilotServerSettings()


def get_orchestrator(request: Request) -> ToolOrchestrator:
    """Get the tool orchestrator from app state.

    The orchestrator is created once during application startup and shared
    by all requests; it owns the provider connections.

    Args:
        request: The FastAPI request object.

    Returns:
        ToolOrchestrator: The shared orchestrator instance.

    Raises:
        HTTPException: If the orchestrator is not initialized (503 Service Unavailable).
    """
    if not hasattr(request.app.state, "orchestrator"):
        raise HTTPException(
            status_code=503,
            detail={
                "error": {
                    "code": "not_initialized",
                    "message": "Tool orchestrator not initialized",
                    "details": {},
                }
            },
        )
    return request.app.state.orchestrator
