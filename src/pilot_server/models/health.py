"""Health check response model."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for the health check endpoint.

    Attributes:
        status: Health status indicator ("ok" or "error").
        version: The version of pilot-server.
        engine: Name of the configured reasoning engine.
        model: Model used by the reasoning engine.
        engine_connected: Whether the engine is reachable (None if not checkable).
        providers_connected: Number of providers with a live connection.
        providers_total: Number of configured providers.
    """

    status: str = Field(..., description="Health status of the service")
    version: str = Field(..., description="Version of pilot-server")
    engine: str | None = Field(default=None, description="Reasoning engine name")
    model: str | None = Field(default=None, description="Reasoning engine model")
    engine_connected: bool | None = Field(
        default=None,
        description="Whether the reasoning engine is reachable (None if not checkable)",
    )
    providers_connected: int = Field(
        default=0, description="Number of providers with a live connection"
    )
    providers_total: int = Field(default=0, description="Number of configured providers")
