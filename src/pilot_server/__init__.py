"""pilot-server: Tool orchestration server for MCP tool providers.

This package connects a reasoning engine (Ollama, Anthropic or OpenAI) to a
set of MCP tool providers and answers text queries over a REST API, executing
the provider tools the engine asks for.
"""

# Set before importing the app, whose routers read it
__version__ = "0.1.0"

from pilot_server.app import create_app  # noqa: E402

__all__ = ["create_app", "__version__"]
