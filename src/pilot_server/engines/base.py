"""Abstract interface for reasoning engines.

A reasoning engine is the external LLM service that decides whether to answer
a query directly or to request tool calls. Each adapter converts tool
descriptors and tool outcomes to and from its service's native format.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from pilot_server.config import DEFAULT_SYSTEM_PROMPT
from pilot_server.providers.types import ToolDescriptor, ToolInvocation


@dataclass
class ToolCallRequest:
    """A tool call requested by the reasoning engine.

    Attributes:
        id: Correlation id used to match the outcome to the request
        name: Requested tool name
        arguments: Argument object, or its JSON encoding as sent by the engine
    """

    id: str
    name: str
    arguments: dict[str, Any] | str = field(default_factory=dict)


@dataclass
class OrchestrationTurn:
    """The engine's response to one round.

    Attributes:
        text: Text content of the response (may be empty when tools are requested)
        tool_calls: Tool calls requested in this turn
        assistant_message: Engine-native assistant message, replayed on resubmission
    """

    text: str
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    assistant_message: Any = None

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)


class ReasoningEngine(ABC):
    """Interface every reasoning engine adapter implements."""

    def __init__(
        self,
        model: str,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        max_tokens: int = 1000,
    ) -> None:
        self.model = model
        self.system_prompt = system_prompt
        self.max_tokens = max_tokens

    @property
    @abstractmethod
    def name(self) -> str:
        """Engine identifier (e.g. 'ollama', 'anthropic', 'openai')."""
        pass

    @abstractmethod
    async def process_text(
        self, text: str, tools: list[ToolDescriptor]
    ) -> OrchestrationTurn:
        """Send the user's text and the available tools for the first round.

        Raises:
            UpstreamModelError: If the engine call fails
        """
        pass

    @abstractmethod
    async def resubmit(
        self,
        text: str,
        tools: list[ToolDescriptor],
        turn: OrchestrationTurn,
        invocations: list[ToolInvocation],
    ) -> str:
        """Send the tool outcomes back and return the final answer text.

        Any further tool calls in this response are ignored.

        Raises:
            UpstreamModelError: If the engine call fails
        """
        pass

    async def check_connection(self) -> bool | None:
        """Check whether the engine is reachable; None if not checkable."""
        return None

    async def close(self) -> None:
        """Release client resources."""
        return None
