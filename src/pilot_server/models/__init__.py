"""Pydantic models for API request and response schemas.

This package contains all Pydantic models used for validating and
serializing API requests and responses across all endpoints.
"""

from pilot_server.models.health import HealthResponse
from pilot_server.models.text import TextRequest, TextResponse, ToolCallSummary
from pilot_server.models.tools import (
    ProviderListResponse,
    ProviderStatus,
    ToolCatalogResponse,
    ToolInfo,
)

__all__ = [
    "HealthResponse",
    "ProviderListResponse",
    "ProviderStatus",
    "TextRequest",
    "TextResponse",
    "ToolCallSummary",
    "ToolCatalogResponse",
    "ToolInfo",
]
