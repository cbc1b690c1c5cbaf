"""Ollama reasoning engine.

This module wraps ollama.AsyncClient. Chat requests use streaming, and the
chunks are collected into a complete turn, including any tool calls the model
emits along the way.
"""

import logging
from typing import Any

import httpx
import ollama

from pilot_server.engines.base import (
    DEFAULT_SYSTEM_PROMPT,
    OrchestrationTurn,
    ReasoningEngine,
    ToolCallRequest,
)
from pilot_server.errors import UpstreamModelError
from pilot_server.providers.types import ToolDescriptor, ToolInvocation

logger = logging.getLogger(__name__)

_OLLAMA_ERRORS = (
    ollama.ResponseError,
    ollama.RequestError,
    httpx.HTTPError,
    ConnectionError,
)


def _to_dict(obj: Any) -> dict[str, Any]:
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if isinstance(obj, dict):
        return obj
    return vars(obj)


class OllamaEngine(ReasoningEngine):
    """Reasoning engine backed by a local Ollama server.

    Attributes:
        host: The Ollama server URL (e.g., "http://localhost:11434")
        _client: The underlying ollama.AsyncClient instance
    """

    def __init__(
        self,
        model: str,
        host: str = "http://localhost:11434",
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        max_tokens: int = 1000,
    ) -> None:
        super().__init__(model, system_prompt=system_prompt, max_tokens=max_tokens)
        self.host = host
        self._client = ollama.AsyncClient(host=host)
        logger.info(f"OllamaEngine initialized with host: {host}")

    @property
    def name(self) -> str:
        return "ollama"

    async def check_connection(self) -> bool:
        """Check if the Ollama server is reachable.

        Returns:
            bool: True if connection is successful, False otherwise
        """
        try:
            # Listing models is the cheapest request Ollama offers
            await self._client.list()
            logger.debug("Ollama connection check: successful")
            return True
        except _OLLAMA_ERRORS as e:
            logger.warning(f"Ollama connection check failed: {e}")
            return False

    @staticmethod
    def _convert_tools(tools: list[ToolDescriptor]) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.input_schema or {"type": "object", "properties": {}},
                },
            }
            for tool in tools
        ]

    async def _collect_chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None,
    ) -> tuple[str, list[dict[str, Any]]]:
        """Stream a chat request and collect content and tool calls.

        Returns:
            Tuple of (complete_content, raw_tool_calls)

        Raises:
            UpstreamModelError: If the request fails or the stream is incomplete
        """
        content_parts: list[str] = []
        tool_calls: list[dict[str, Any]] = []
        done = False

        try:
            logger.debug(f"Starting chat stream with model: {self.model}")
            async for chunk in await self._client.chat(
                model=self.model,
                messages=messages,
                tools=tools or None,
                stream=True,
                options={"num_predict": self.max_tokens},
            ):
                chunk_dict = _to_dict(chunk)
                message = chunk_dict.get("message") or {}

                content = message.get("content") or ""
                if content:
                    content_parts.append(content)
                for call in message.get("tool_calls") or []:
                    tool_calls.append(_to_dict(call))

                if chunk_dict.get("done"):
                    done = True
        except _OLLAMA_ERRORS as e:
            logger.error(f"Ollama chat failed: {e}")
            raise UpstreamModelError(self.name, str(e)) from e

        if not done:
            raise UpstreamModelError(self.name, "stream ended without completion marker")

        return "".join(content_parts), tool_calls

    def _base_messages(self, text: str) -> list[dict[str, Any]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": text},
        ]

    async def process_text(
        self, text: str, tools: list[ToolDescriptor]
    ) -> OrchestrationTurn:
        content, raw_calls = await self._collect_chat(
            self._base_messages(text), self._convert_tools(tools)
        )

        # Ollama does not assign ids to tool calls
        requests = []
        for index, call in enumerate(raw_calls):
            function = _to_dict(call.get("function") or {})
            requests.append(
                ToolCallRequest(
                    id=f"call_{index}",
                    name=function.get("name", ""),
                    arguments=function.get("arguments") or {},
                )
            )

        return OrchestrationTurn(
            text=content,
            tool_calls=requests,
            assistant_message={
                "role": "assistant",
                "content": content,
                "tool_calls": raw_calls,
            },
        )

    async def resubmit(
        self,
        text: str,
        tools: list[ToolDescriptor],
        turn: OrchestrationTurn,
        invocations: list[ToolInvocation],
    ) -> str:
        messages = self._base_messages(text)
        messages.append(turn.assistant_message)
        for invocation in invocations:
            messages.append(
                {
                    "role": "tool",
                    "content": invocation.content,
                    "tool_name": invocation.tool_name,
                }
            )

        content, _ = await self._collect_chat(messages, self._convert_tools(tools))
        return content
