"""Routing of tool calls to the provider that owns each tool."""

import json
import logging
import time
import uuid
from typing import Any

from pilot_server.errors import (
    ProviderError,
    ProviderProtocolError,
    ToolExecutionError,
    ToolNotFoundError,
)
from pilot_server.providers.catalog import CapabilityCatalog
from pilot_server.providers.manager import ConnectionManager
from pilot_server.providers.types import ToolInvocation

logger = logging.getLogger(__name__)


def _parse_arguments(raw: dict[str, Any] | str | None) -> dict[str, Any]:
    """Normalize tool arguments, accepting JSON-encoded strings.

    Raises:
        ValueError: If the payload is not a JSON object
    """
    if raw is None or raw == "":
        return {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid arguments format: {e}") from e
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid arguments format: expected an object, got {type(raw).__name__}")
    return raw


class ToolRouter:
    """Dispatches tool calls through the capability catalog.

    Every failure is returned inside the ToolInvocation; nothing
    provider-related propagates out of dispatch().
    """

    def __init__(self, catalog: CapabilityCatalog, manager: ConnectionManager) -> None:
        self.catalog = catalog
        self.manager = manager

    async def dispatch(
        self,
        name: str,
        arguments: dict[str, Any] | str | None = None,
        call_id: str | None = None,
    ) -> ToolInvocation:
        """Execute one tool call.

        Args:
            name: Tool name as requested by the reasoning engine
            arguments: Argument object, or its JSON encoding
            call_id: Correlation id from the engine; generated if omitted

        Returns:
            ToolInvocation carrying either the result text or the error
        """
        invocation = ToolInvocation(call_id=call_id or uuid.uuid4().hex[:10], tool_name=name)
        started = time.monotonic()

        try:
            descriptor = self.catalog.resolve(name)
        except ToolNotFoundError as e:
            logger.warning(f"Requested tool '{name}' is not in the catalog")
            invocation.error = e
            return invocation

        invocation.provider = descriptor.provider

        try:
            invocation.arguments = _parse_arguments(arguments)
        except ValueError as e:
            invocation.error = ToolExecutionError(name, str(e), provider=descriptor.provider)
            logger.warning(f"Rejected call to '{name}': {e}")
            return invocation

        logger.info(f"Executing tool '{name}' on provider '{descriptor.provider}'")
        try:
            result = await self.manager.call_tool(
                descriptor.provider, name, invocation.arguments
            )
        except ProviderError as e:
            invocation.error = e
        except Exception as e:
            logger.exception(f"Unexpected failure calling tool '{name}'")
            invocation.error = ProviderProtocolError(
                descriptor.provider, f"call_tool({name}) failed: {type(e).__name__}: {e}"
            )
        else:
            if result.is_error:
                invocation.error = ToolExecutionError(
                    name, result.content or "Tool reported an error", provider=descriptor.provider
                )
            else:
                invocation.result = result.content

        invocation.duration_ms = round((time.monotonic() - started) * 1000, 1)
        if invocation.ok:
            logger.info(f"Tool '{name}' succeeded in {invocation.duration_ms}ms")
        else:
            logger.warning(
                f"Tool '{name}' failed after {invocation.duration_ms}ms "
                f"({invocation.error_kind}): {invocation.error}"
            )
        return invocation
