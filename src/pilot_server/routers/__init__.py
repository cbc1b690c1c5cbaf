"""FastAPI routers for API endpoints.

This package contains all route handlers organized by resource type.
Each router module defines endpoints for a specific domain (health, text, tools).
"""

from pilot_server.routers import health, text, tools

__all__ = [
    "health",
    "text",
    "tools",
]
