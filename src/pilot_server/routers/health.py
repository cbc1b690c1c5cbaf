"""Health check endpoint router."""

import logging

from fastapi import APIRouter, Request

from pilot_server import __version__
from pilot_server.models.health import HealthResponse
from pilot_server.services import ToolOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint.

    Returns the current health status and version of pilot-server, the
    configured reasoning engine and how many providers are connected.
    Engine connectivity is checked when the engine supports it.

    Args:
        request: The FastAPI request object.

    Returns:
        HealthResponse: Health status and version information.
    """
    if not hasattr(request.app.state, "orchestrator"):
        return HealthResponse(status="ok", version=__version__)

    orchestrator: ToolOrchestrator = request.app.state.orchestrator
    engine = orchestrator.engine

    try:
        engine_connected = await engine.check_connection()
        logger.debug(f"Engine connectivity check: {engine_connected}")
    except Exception as e:
        logger.warning(f"Engine connectivity check failed: {e}")
        engine_connected = False

    return HealthResponse(
        status="ok",
        version=__version__,
        engine=engine.name,
        model=engine.model,
        engine_connected=engine_connected,
        providers_connected=orchestrator.manager.connected_count,
        providers_total=len(orchestrator.manager.providers),
    )
