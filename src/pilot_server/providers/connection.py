"""MCP connection to a single tool provider.

Each ProviderConnection runs one background task that owns the transport
(a spawned stdio process or an SSE stream) and the MCP ClientSession. The
task enters both context managers, signals readiness after the initialize
handshake, and keeps them open until close() is requested. The transport's
cancel scopes must be entered and exited by the same task, so requests from
other tasks only ever use the live session object.
"""

import asyncio
import json
import logging
import os
from typing import Any, Awaitable, Callable, TypeVar

import anyio
from mcp import ClientSession, StdioServerParameters
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client
from mcp.shared.exceptions import McpError
from pydantic import ValidationError

from pilot_server.errors import (
    ProviderConnectionError,
    ProviderProtocolError,
    ProviderTimeoutError,
)
from pilot_server.providers.types import LaunchSpec, ToolDescriptor, ToolResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

# JSON-RPC error code the MCP SDK uses when the read stream closes mid-request
CONNECTION_CLOSED = -32000

_TRANSPORT_ERRORS = (
    anyio.ClosedResourceError,
    anyio.BrokenResourceError,
    anyio.EndOfStream,
    OSError,
)


def _describe_failure(exc: BaseException | None) -> str:
    """Render a connection failure, unwrapping single-member exception groups."""
    while isinstance(exc, BaseExceptionGroup) and len(exc.exceptions) == 1:
        exc = exc.exceptions[0]
    if exc is None:
        return "connection closed before handshake completed"
    return f"{type(exc).__name__}: {exc}"


def _render_content(result: Any) -> str:
    """Flatten an MCP CallToolResult into text for the reasoning engine."""
    parts: list[str] = []
    for item in result.content or []:
        if getattr(item, "type", None) == "text":
            parts.append(item.text)
        else:
            parts.append(item.model_dump_json(exclude_none=True))

    structured = getattr(result, "structuredContent", None)
    if not parts and structured is not None:
        parts.append(json.dumps(structured))

    return "\n".join(parts)


class ProviderConnection:
    """A live MCP session with one provider.

    Attributes:
        name: Provider name
        launch: Resolved launch parameters
        handshake_timeout: Seconds allowed for process start + initialize
        call_timeout: Seconds allowed for each list/call request
        close_timeout: Seconds allowed for a graceful close before cancelling
    """

    def __init__(
        self,
        name: str,
        launch: LaunchSpec,
        *,
        handshake_timeout: float = 30.0,
        call_timeout: float = 60.0,
        close_timeout: float = 2.5,
    ) -> None:
        self.name = name
        self.launch = launch
        self.handshake_timeout = handshake_timeout
        self.call_timeout = call_timeout
        self.close_timeout = close_timeout

        self._session: ClientSession | None = None
        self._task: asyncio.Task | None = None
        self._ready = asyncio.Event()
        self._closing = asyncio.Event()
        self._failure: BaseException | None = None
        self._broken = False

    @property
    def is_alive(self) -> bool:
        """Whether the session is believed healthy."""
        return (
            self._session is not None
            and not self._broken
            and self._task is not None
            and not self._task.done()
        )

    def _open_transport(self):
        if self.launch.is_remote:
            return sse_client(self.launch.url)

        params = StdioServerParameters(
            command=self.launch.command,
            args=self.launch.args,
            env={**os.environ, **self.launch.env},
            cwd=self.launch.cwd,
        )
        return stdio_client(params)

    async def _run(self) -> None:
        try:
            async with self._open_transport() as (read_stream, write_stream):
                async with ClientSession(read_stream, write_stream) as session:
                    await session.initialize()
                    self._session = session
                    self._ready.set()
                    await self._closing.wait()
        except Exception as e:
            self._failure = e
            if self._ready.is_set():
                logger.warning(
                    f"Provider '{self.name}' connection ended: {_describe_failure(e)}"
                )
        finally:
            self._session = None
            self._ready.set()

    async def open(self) -> None:
        """Start the provider and perform the MCP handshake.

        Raises:
            ProviderConnectionError: If the launch or handshake fails or times out
        """
        if self._task is not None:
            raise RuntimeError(f"Connection to '{self.name}' was already opened")

        target = self.launch.url if self.launch.is_remote else self.launch.command
        logger.debug(f"Opening provider '{self.name}' ({target})")

        self._task = asyncio.create_task(self._run(), name=f"provider-{self.name}")
        try:
            await asyncio.wait_for(self._ready.wait(), timeout=self.handshake_timeout)
        except asyncio.TimeoutError:
            await self._cancel_task()
            raise ProviderConnectionError(
                self.name, f"handshake timed out after {self.handshake_timeout:g}s"
            ) from None

        if self._session is None:
            raise ProviderConnectionError(
                self.name, f"failed to start: {_describe_failure(self._failure)}"
            ) from self._failure

    async def _request(
        self,
        operation: str,
        call: Callable[[ClientSession], Awaitable[T]],
    ) -> T:
        session = self._session
        if session is None or not self.is_alive:
            raise ProviderConnectionError(self.name, "not connected")

        try:
            return await asyncio.wait_for(call(session), timeout=self.call_timeout)
        except asyncio.TimeoutError:
            raise ProviderTimeoutError(self.name, operation, self.call_timeout) from None
        except McpError as e:
            if e.error.code == CONNECTION_CLOSED:
                self._broken = True
                raise ProviderConnectionError(
                    self.name, f"connection closed during {operation}"
                ) from e
            raise
        except ValidationError as e:
            raise ProviderProtocolError(
                self.name, f"malformed {operation} response: {e}"
            ) from e
        except _TRANSPORT_ERRORS as e:
            self._broken = True
            raise ProviderConnectionError(self.name, f"{operation} failed: {e}") from e
        except Exception as e:
            # e.g. RuntimeError for structured content violating the output schema
            raise ProviderProtocolError(
                self.name, f"{operation} failed: {type(e).__name__}: {e}"
            ) from e

    async def list_tools(self) -> list[ToolDescriptor]:
        """List the provider's tools.

        This is also the liveness probe; providers expose no heartbeat.

        Raises:
            ProviderConnectionError: If the channel is broken
            ProviderProtocolError: If the provider answers with an error or garbage
            ProviderTimeoutError: If the request times out
        """
        try:
            response = await self._request("list_tools", lambda s: s.list_tools())
        except McpError as e:
            raise ProviderProtocolError(
                self.name, f"list_tools rejected: {e.error.message}"
            ) from e

        return [
            ToolDescriptor(
                name=tool.name,
                description=tool.description or "",
                input_schema=dict(tool.inputSchema or {}),
                provider=self.name,
            )
            for tool in response.tools
        ]

    async def call_tool(self, tool_name: str, arguments: dict[str, Any]) -> ToolResult:
        """Invoke a tool on the provider.

        A JSON-RPC error reply or an `isError` result is returned as a failed
        ToolResult rather than raised.

        Raises:
            ProviderConnectionError: If the channel is broken
            ProviderProtocolError: If the response cannot be parsed
            ProviderTimeoutError: If the request times out
        """
        try:
            result = await self._request(
                f"call_tool({tool_name})",
                lambda s: s.call_tool(tool_name, arguments),
            )
        except McpError as e:
            return ToolResult(content=e.error.message, is_error=True)

        return ToolResult(content=_render_content(result), is_error=bool(result.isError))

    async def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.wait({self._task}, timeout=self.close_timeout)

    async def close(self) -> None:
        """Close the session and terminate the provider process. Idempotent."""
        task = self._task
        if task is None or task.done():
            self._session = None
            return

        self._closing.set()
        done, _ = await asyncio.wait({task}, timeout=self.close_timeout)
        if not done:
            logger.warning(
                f"Provider '{self.name}' did not shut down within "
                f"{self.close_timeout:g}s, cancelling"
            )
            await self._cancel_task()

        self._session = None
        logger.debug(f"Provider '{self.name}' connection closed")
