"""Reasoning engine adapters.

This package provides one adapter per supported LLM service. Each adapter
converts tool descriptors and tool outcomes to and from its service's
native tool-calling format.
"""

from pilot_server.engines.anthropic_engine import AnthropicEngine
from pilot_server.engines.base import (
    OrchestrationTurn,
    ReasoningEngine,
    ToolCallRequest,
)
from pilot_server.engines.factory import create_engine
from pilot_server.engines.ollama_engine import OllamaEngine
from pilot_server.engines.openai_engine import OpenAIEngine

__all__ = [
    "AnthropicEngine",
    "OllamaEngine",
    "OpenAIEngine",
    "OrchestrationTurn",
    "ReasoningEngine",
    "ToolCallRequest",
    "create_engine",
]
