"""OpenAI reasoning engine."""

import logging
from typing import Any

import openai

from pilot_server.engines.base import (
    DEFAULT_SYSTEM_PROMPT,
    OrchestrationTurn,
    ReasoningEngine,
    ToolCallRequest,
)
from pilot_server.errors import UpstreamModelError
from pilot_server.providers.types import ToolDescriptor, ToolInvocation

logger = logging.getLogger(__name__)


class OpenAIEngine(ReasoningEngine):
    """Reasoning engine backed by the OpenAI Chat Completions API.

    Tool-call arguments arrive as JSON strings and are passed through
    unparsed; the router decodes them.
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
        self._client: openai.AsyncOpenAI | None = None

    @property
    def name(self) -> str:
        return "openai"

    def _get_client(self) -> openai.AsyncOpenAI:
        # AsyncOpenAI raises at construction when no API key is available
        if self._client is None:
            self._client = openai.AsyncOpenAI(api_key=self._api_key)
        return self._client

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

    def _base_messages(self, text: str) -> list[dict[str, Any]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": text},
        ]

    async def _create(
        self, messages: list[dict[str, Any]], tools: list[ToolDescriptor]
    ) -> Any:
        request: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
        }
        if tools:
            request["tools"] = self._convert_tools(tools)
            request["tool_choice"] = "auto"

        try:
            response = await self._get_client().chat.completions.create(**request)
        except openai.OpenAIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise UpstreamModelError(self.name, str(e)) from e

        if not response.choices:
            raise UpstreamModelError(self.name, "response contained no choices")
        return response.choices[0].message

    async def process_text(
        self, text: str, tools: list[ToolDescriptor]
    ) -> OrchestrationTurn:
        message = await self._create(self._base_messages(text), tools)

        requests = [
            ToolCallRequest(
                id=call.id,
                name=call.function.name,
                arguments=call.function.arguments,
            )
            for call in message.tool_calls or []
        ]
        return OrchestrationTurn(
            text=message.content or "",
            tool_calls=requests,
            assistant_message=message.model_dump(exclude_none=True),
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
                    "tool_call_id": invocation.call_id,
                    "content": invocation.content,
                }
            )

        message = await self._create(messages, tools)
        return message.content or ""

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
