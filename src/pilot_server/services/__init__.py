"""Business logic services for pilot-server.

This package contains the tool orchestrator that drives the two-phase
protocol between the reasoning engine and the tool providers.
"""

from pilot_server.services.orchestrator import (
    OrchestrationResult,
    OrchestrationState,
    ToolOrchestrator,
)

__all__ = [
    "OrchestrationResult",
    "OrchestrationState",
    "ToolOrchestrator",
]
