"""Pytest configuration and shared fixtures for pilot-server tests.

This module provides common fixtures used across all test modules,
including test app creation, async client setup, and in-memory stand-ins
for tool providers and the reasoning engine.
"""

import asyncio

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from pilot_server import create_app
from pilot_server.config import PilotServerSettings
from pilot_server.engines import OrchestrationTurn, ReasoningEngine, ToolCallRequest
from pilot_server.errors import ProviderConnectionError
from pilot_server.providers import ConnectionManager, LaunchSpec, ToolDescriptor, ToolResult


class FakeProvider:
    """Scripted tool provider.

    Every connection opened for the provider shares this behavior, so a
    reconnect sees the same tools and failure settings.

    Attributes:
        results: Tool name to result text, ToolResult, or exception to raise
        break_next: Number of upcoming requests that fail as if the channel broke
        connections: Every connection opened for this provider, oldest first
        calls: (tool_name, arguments) for every executed tool call
    """

    def __init__(
        self,
        tools=(),
        results=None,
        *,
        fail_open=False,
        open_delay=0.0,
        list_error=None,
        list_delay=0.0,
        close_error=None,
        close_hang=False,
    ):
        self.tools = list(tools)
        self.results = dict(results or {})
        self.fail_open = fail_open
        self.open_delay = open_delay
        self.list_error = list_error
        self.list_delay = list_delay
        self.close_error = close_error
        self.close_hang = close_hang
        self.break_next = 0
        self.connections = []
        self.calls = []


class FakeConnection:
    """In-memory stand-in for ProviderConnection."""

    def __init__(self, name, behavior):
        self.name = name
        self.behavior = behavior
        self.opened = False
        self.closed = False
        self.broken = False

    @property
    def is_alive(self):
        return self.opened and not self.closed and not self.broken

    async def open(self):
        if self.behavior.open_delay:
            await asyncio.sleep(self.behavior.open_delay)
        if self.behavior.fail_open:
            raise ProviderConnectionError(self.name, "failed to start: spawn error")
        self.opened = True

    def _check_channel(self, operation):
        if not self.is_alive:
            raise ProviderConnectionError(self.name, "not connected")
        if self.behavior.break_next:
            self.behavior.break_next -= 1
            self.broken = True
            raise ProviderConnectionError(self.name, f"connection closed during {operation}")

    async def list_tools(self):
        self._check_channel("list_tools")
        if self.behavior.list_delay:
            await asyncio.sleep(self.behavior.list_delay)
        if self.behavior.list_error is not None:
            raise self.behavior.list_error
        return [
            ToolDescriptor(
                name=tool,
                description=f"{tool} from {self.name}",
                input_schema={"type": "object", "properties": {}},
                provider=self.name,
            )
            for tool in self.behavior.tools
        ]

    async def call_tool(self, tool_name, arguments):
        self._check_channel(f"call_tool({tool_name})")
        self.behavior.calls.append((tool_name, arguments))
        result = self.behavior.results.get(tool_name, f"{tool_name} done")
        if isinstance(result, BaseException):
            raise result
        if isinstance(result, ToolResult):
            return result
        return ToolResult(content=result)

    async def close(self):
        if self.behavior.close_hang:
            await asyncio.sleep(3600)
        if self.behavior.close_error is not None:
            raise self.behavior.close_error
        self.closed = True


class FakeConnectionFactory:
    """Connection factory handing out FakeConnections per provider name."""

    def __init__(self, providers):
        self.providers = providers

    def __call__(self, name, launch):
        behavior = self.providers[name]
        connection = FakeConnection(name, behavior)
        behavior.connections.append(connection)
        return connection


class ScriptedEngine(ReasoningEngine):
    """Reasoning engine replaying a fixed script.

    Attributes:
        tool_calls: Tool calls requested by the first turn
        process_calls: Tool name lists seen by each process_text call
        resubmissions: Invocation lists passed to each resubmit call
    """

    def __init__(
        self,
        tool_calls=None,
        first_text="Direct answer",
        answer="Final answer",
        delay=0.0,
        error=None,
    ):
        super().__init__("scripted-model")
        self.tool_calls = list(tool_calls or [])
        self.first_text = first_text
        self.answer = answer
        self.delay = delay
        self.error = error
        self.process_calls = []
        self.resubmissions = []
        self.closed = False

    @property
    def name(self):
        return "scripted"

    async def _respond(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    async def process_text(self, text, tools):
        self.process_calls.append([tool.name for tool in tools])
        await self._respond()
        return OrchestrationTurn(
            text="" if self.tool_calls else self.first_text,
            tool_calls=[
                ToolCallRequest(id=f"call_{index}", name=name, arguments=arguments)
                for index, (name, arguments) in enumerate(self.tool_calls)
            ],
        )

    async def resubmit(self, text, tools, turn, invocations):
        self.resubmissions.append(list(invocations))
        await self._respond()
        return self.answer

    async def check_connection(self):
        return True

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_provider():
    """Factory fixture creating FakeProvider instances."""
    return FakeProvider


@pytest.fixture
def scripted_engine():
    """A ScriptedEngine that answers directly unless tool_calls are set."""
    return ScriptedEngine()


@pytest.fixture
def make_manager():
    """Factory fixture building a ConnectionManager over fake providers.

    Providers are registered in the order given, which is the configuration
    order used for collision resolution.
    """

    def _make(providers, **kwargs):
        specs = {name: LaunchSpec(command=f"{name}-server") for name in providers}
        kwargs.setdefault("handshake_timeout", 1.0)
        kwargs.setdefault("call_timeout", 1.0)
        kwargs.setdefault("shutdown_timeout", 0.2)
        return ConnectionManager(
            specs,
            connection_factory=FakeConnectionFactory(providers),
            **kwargs,
        )

    return _make


@pytest.fixture
def test_settings(tmp_path):
    """Create test settings with an isolated temporary data directory.

    Args:
        tmp_path: Pytest fixture providing a temporary directory.

    Returns:
        PilotServerSettings: Settings instance configured for testing.
    """
    return PilotServerSettings(
        host="127.0.0.1",
        port=8000,
        ollama_host="http://localhost:11434",
        data_dir=str(tmp_path),
        providers_file="providers.json",
        log_level="DEBUG",
        cors_origins=["*"],
    )


@pytest.fixture
def test_app(test_settings):
    """Create a FastAPI test application instance.

    Args:
        test_settings: Test settings fixture.

    Returns:
        FastAPI: Configured test application.
    """
    return create_app(settings=test_settings)


@pytest_asyncio.fixture
async def async_client(test_app):
    """Create an async HTTP client for testing FastAPI endpoints.

    Args:
        test_app: Test application fixture.

    Yields:
        AsyncClient: Async HTTP client for making test requests.
    """
    # Trigger the lifespan startup manually for tests
    async with test_app.router.lifespan_context(test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
