"""Pytest configuration for integration tests.

This module provides integration-test-specific fixtures that replace the
orchestrator built at startup with one backed by fake providers and a
scripted engine, so API tests never launch real processes or call real
LLM services.
"""

from unittest.mock import patch

import pytest

from pilot_server.services import ToolOrchestrator


@pytest.fixture
def fake_providers(fake_provider):
    """Providers available to the app, in configuration order."""
    return {
        "finance": fake_provider(
            tools=["get_balance", "list_transactions"],
            results={"get_balance": "Balance: 1250.00 EUR"},
        ),
        "weather": fake_provider(tools=["get_forecast"]),
    }


@pytest.fixture(autouse=True)
def orchestrator(fake_providers, make_manager, scripted_engine):
    """Patch the orchestrator class used by the app lifespan.

    The patch is active before the app starts, ensuring the lifespan uses
    our orchestrator instead of reading the providers file.
    """
    instance = ToolOrchestrator(make_manager(fake_providers), scripted_engine, engine_timeout=1.0)
    with patch("pilot_server.app.ToolOrchestrator") as mock_class:
        mock_class.from_settings.return_value = instance
        yield instance
