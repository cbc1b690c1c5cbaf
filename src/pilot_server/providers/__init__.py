"""Tool provider connection, catalog, and routing layer.

This package connects to MCP tool providers, aggregates their tools into a
capability catalog, and routes tool calls to the provider that owns them.
"""

from pilot_server.providers.catalog import CapabilityCatalog
from pilot_server.providers.config import load_provider_specs, select_providers
from pilot_server.providers.connection import ProviderConnection
from pilot_server.providers.manager import ConnectionManager, Provider
from pilot_server.providers.router import ToolRouter
from pilot_server.providers.types import (
    LaunchSpec,
    ProviderState,
    ToolDescriptor,
    ToolInvocation,
    ToolResult,
)

__all__ = [
    "CapabilityCatalog",
    "ConnectionManager",
    "LaunchSpec",
    "Provider",
    "ProviderConnection",
    "ProviderState",
    "ToolDescriptor",
    "ToolInvocation",
    "ToolResult",
    "ToolRouter",
    "load_provider_specs",
    "select_providers",
]
