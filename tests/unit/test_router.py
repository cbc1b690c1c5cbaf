"""Unit tests for the ToolRouter."""

import pytest
import pytest_asyncio

from pilot_server.errors import (
    ProviderTimeoutError,
    ToolExecutionError,
    ToolNotFoundError,
)
from pilot_server.providers import CapabilityCatalog, ToolResult, ToolRouter


@pytest.fixture
def finance(fake_provider):
    return fake_provider(
        tools=["get_balance", "transfer"],
        results={
            "get_balance": "Balance: 1250.00 EUR",
            "transfer": ToolResult(content="Insufficient funds", is_error=True),
        },
    )


@pytest_asyncio.fixture
async def router(make_manager, finance, fake_provider):
    manager = make_manager({"finance": finance, "weather": fake_provider(tools=["get_forecast"])})
    catalog = await CapabilityCatalog.build(manager)
    return ToolRouter(catalog, manager)


@pytest.mark.asyncio
async def test_dispatch_routes_to_owning_provider(router, finance):
    """A known tool is executed on the provider that owns it."""
    invocation = await router.dispatch("get_balance", {"account": "main"}, call_id="call_1")

    assert invocation.ok is True
    assert invocation.call_id == "call_1"
    assert invocation.provider == "finance"
    assert invocation.result == "Balance: 1250.00 EUR"
    assert invocation.content == "Balance: 1250.00 EUR"
    assert finance.calls == [("get_balance", {"account": "main"})]


@pytest.mark.asyncio
async def test_dispatch_generates_call_id(router):
    """A missing correlation id is generated."""
    invocation = await router.dispatch("get_forecast")

    assert invocation.call_id
    assert invocation.arguments == {}


@pytest.mark.asyncio
async def test_dispatch_unknown_tool_contacts_no_provider(router, finance):
    """An unknown tool fails with not_found and reaches no provider."""
    invocation = await router.dispatch("nonexistent_tool", {})

    assert invocation.ok is False
    assert isinstance(invocation.error, ToolNotFoundError)
    assert invocation.error_kind == "not_found"
    assert invocation.provider is None
    assert invocation.content == "Error executing tool: Tool 'nonexistent_tool' not found"
    assert finance.calls == []


@pytest.mark.asyncio
async def test_dispatch_decodes_json_string_arguments(router, finance):
    """Arguments encoded as a JSON string are decoded before the call."""
    invocation = await router.dispatch("get_balance", '{"account": "savings"}')

    assert invocation.ok is True
    assert finance.calls == [("get_balance", {"account": "savings"})]


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["{not json", "[1, 2]"])
async def test_dispatch_rejects_invalid_arguments(router, finance, raw):
    """Undecodable or non-object arguments fail without calling the provider."""
    invocation = await router.dispatch("get_balance", raw)

    assert isinstance(invocation.error, ToolExecutionError)
    assert invocation.error_kind == "execution"
    assert "Invalid arguments format" in str(invocation.error)
    assert finance.calls == []


@pytest.mark.asyncio
async def test_dispatch_tool_reported_error(router):
    """A result flagged as an error becomes an execution failure."""
    invocation = await router.dispatch("transfer", {"amount": 1_000_000})

    assert invocation.ok is False
    assert invocation.error_kind == "execution"
    assert invocation.content == "Error executing tool: Insufficient funds"


@pytest.mark.asyncio
async def test_dispatch_provider_failure_is_contained(router, finance):
    """A provider that cannot be reached is reported, not raised."""
    finance.fail_open = True
    await router.manager.close("finance")

    invocation = await router.dispatch("get_balance", {})

    assert invocation.ok is False
    assert invocation.error_kind == "connection"
    assert invocation.provider == "finance"
    assert invocation.duration_ms >= 0


@pytest.mark.asyncio
async def test_dispatch_unexpected_provider_exception_is_contained(router, finance):
    """A plain exception from the provider becomes a protocol outcome."""
    finance.results["get_balance"] = RuntimeError(
        "Invalid structured content returned by tool get_balance"
    )

    invocation = await router.dispatch("get_balance", {})

    assert invocation.ok is False
    assert invocation.error_kind == "protocol"
    assert invocation.provider == "finance"
    assert "Invalid structured content" in invocation.content


@pytest.mark.asyncio
async def test_dispatch_timeout_is_not_retried(router, finance):
    """A timed-out call is reported without reconnecting."""
    finance.results["get_balance"] = ProviderTimeoutError(
        "finance", "call_tool(get_balance)", 1.0
    )

    invocation = await router.dispatch("get_balance", {})

    assert invocation.error_kind == "timeout"
    assert len(finance.connections) == 1
    assert finance.connections[0].closed is False
    assert finance.calls == [("get_balance", {})]
