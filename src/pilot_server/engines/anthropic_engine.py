"""Anthropic (Claude) reasoning engine."""

import logging
from typing import Any

import anthropic

from pilot_server.engines.base import (
    DEFAULT_SYSTEM_PROMPT,
    OrchestrationTurn,
    ReasoningEngine,
    ToolCallRequest,
)
from pilot_server.errors import UpstreamModelError
from pilot_server.providers.types import ToolDescriptor, ToolInvocation

logger = logging.getLogger(__name__)


class AnthropicEngine(ReasoningEngine):
    """Reasoning engine backed by the Anthropic Messages API.

    The client is created on first use so that a missing API key surfaces as
    an UpstreamModelError on the request instead of failing at startup.
    """

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        max_tokens: int = 1000,
    ) -> None:
        super().__init__(model, system_prompt=system_prompt, max_tokens=max_tokens)
        self._api_key = api_key
        self._client: anthropic.AsyncAnthropic | None = None

    @property
    def name(self) -> str:
        return "anthropic"

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        return self._client

    @staticmethod
    def _convert_tools(tools: list[ToolDescriptor]) -> list[dict[str, Any]]:
        converted = []
        for tool in tools:
            converted.append(
                {
                    "name": tool.name,
                    "description": tool.description,
                    # Passed through whole so $defs and additionalProperties survive
                    "input_schema": {"type": "object", **(tool.input_schema or {})},
                }
            )
        return converted

    async def _create(
        self, messages: list[dict[str, Any]], tools: list[ToolDescriptor]
    ) -> Any:
        request: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": self.system_prompt,
            "messages": messages,
        }
        if tools:
            request["tools"] = self._convert_tools(tools)

        try:
            return await self._get_client().messages.create(**request)
        except anthropic.AnthropicError as e:
            logger.error(f"Anthropic API error: {e}")
            raise UpstreamModelError(self.name, str(e)) from e

    @staticmethod
    def _text_of(content: list[Any]) -> str:
        return " ".join(block.text for block in content if block.type == "text")

    async def process_text(
        self, text: str, tools: list[ToolDescriptor]
    ) -> OrchestrationTurn:
        response = await self._create([{"role": "user", "content": text}], tools)

        requests = []
        # Serialize blocks to plain dicts for replay on resubmission
        serialized: list[dict[str, Any]] = []
        for block in response.content:
            if block.type == "text":
                serialized.append({"type": "text", "text": block.text})
            elif block.type == "tool_use":
                serialized.append(
                    {
                        "type": "tool_use",
                        "id": block.id,
                        "name": block.name,
                        "input": block.input,
                    }
                )
                requests.append(
                    ToolCallRequest(id=block.id, name=block.name, arguments=block.input or {})
                )

        logger.debug(
            f"Anthropic turn: stop_reason={response.stop_reason}, tool_calls={len(requests)}"
        )
        return OrchestrationTurn(
            text=self._text_of(response.content),
            tool_calls=requests,
            assistant_message={"role": "assistant", "content": serialized},
        )

    async def resubmit(
        self,
        text: str,
        tools: list[ToolDescriptor],
        turn: OrchestrationTurn,
        invocations: list[ToolInvocation],
    ) -> str:
        tool_results = []
        for invocation in invocations:
            result: dict[str, Any] = {
                "type": "tool_result",
                "tool_use_id": invocation.call_id,
                "content": invocation.content,
            }
            if not invocation.ok:
                result["is_error"] = True
            tool_results.append(result)

        messages = [
            {"role": "user", "content": text},
            turn.assistant_message,
            {"role": "user", "content": tool_results},
        ]
        # Tool definitions must accompany messages containing tool_use blocks
        response = await self._create(messages, tools)
        return self._text_of(response.content)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
