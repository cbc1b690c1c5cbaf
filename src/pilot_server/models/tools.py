"""Pydantic models for the tool catalog and provider status endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class ToolInfo(BaseModel):
    """A tool in the capability catalog."""

    name: str = Field(description="Tool name")
    description: str = Field(description="Tool description")
    input_schema: dict[str, Any] = Field(description="JSON schema of the arguments")
    provider: str = Field(description="Provider that owns the tool")


class ToolCatalogResponse(BaseModel):
    """Response body for GET /api/v1/tools."""

    tools: list[ToolInfo] = Field(default_factory=list)
    provider_tool_counts: dict[str, int] = Field(
        default_factory=dict, description="Tools listed by each reachable provider"
    )
    unavailable_providers: dict[str, str] = Field(
        default_factory=dict, description="Providers skipped and why"
    )
    collisions: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Tool names exposed by more than one provider; the first provider wins",
    )


class ProviderStatus(BaseModel):
    """Connection status of one provider."""

    name: str
    state: str = Field(description="disconnected, connecting, or connected")
    target: str = Field(description="Command or URL used to reach the provider")
    last_error: str | None = None


class ProviderListResponse(BaseModel):
    """Response body for GET /api/v1/providers."""

    providers: list[ProviderStatus] = Field(default_factory=list)
