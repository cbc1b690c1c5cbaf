"""Tool catalog and provider status endpoints."""

import logging

from fastapi import APIRouter, Depends

from pilot_server.dependencies import get_orchestrator
from pilot_server.models.tools import (
    ProviderListResponse,
    ProviderStatus,
    ToolCatalogResponse,
    ToolInfo,
)
from pilot_server.services import ToolOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["tools"])


@router.get("/tools", response_model=ToolCatalogResponse)
async def list_tools(
    orchestrator: ToolOrchestrator = Depends(get_orchestrator),
) -> ToolCatalogResponse:
    """Build the capability catalog and list every reachable tool.

    Unreachable providers are reported rather than failing the request.
    """
    catalog = await orchestrator.build_catalog()

    return ToolCatalogResponse(
        tools=[ToolInfo(**descriptor.to_dict()) for descriptor in catalog.descriptors()],
        provider_tool_counts=catalog.provider_tool_counts,
        unavailable_providers=catalog.unavailable,
        collisions=catalog.collisions,
    )


@router.get("/providers", response_model=ProviderListResponse)
async def list_providers(
    orchestrator: ToolOrchestrator = Depends(get_orchestrator),
) -> ProviderListResponse:
    """List configured providers and their connection state."""
    manager = orchestrator.manager
    providers = []
    for name, (state, last_error) in manager.states().items():
        launch = manager.providers[name].launch
        target = launch.url if launch.is_remote else " ".join([launch.command or "", *launch.args])
        providers.append(
            ProviderStatus(
                name=name,
                state=state.value,
                target=target.strip(),
                last_error=last_error,
            )
        )

    logger.debug(f"Listed {len(providers)} providers")
    return ProviderListResponse(providers=providers)
