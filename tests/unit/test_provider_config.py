"""Unit tests for provider launch specs and the providers file loader."""

import json

import pytest

from pilot_server.errors import ConfigurationError
from pilot_server.providers import LaunchSpec, load_provider_specs, select_providers


def write_providers(path, payload):
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_load_missing_file_returns_empty(tmp_path):
    """A missing providers file means no providers, not an error."""
    specs, errors = load_provider_specs(tmp_path / "missing.json")

    assert specs == {}
    assert errors == {}


def test_load_preserves_configuration_order(tmp_path):
    """Providers are returned in the order they appear in the file."""
    path = write_providers(
        tmp_path / "providers.json",
        {
            "providers": {
                "finance": {"command": "node", "args": ["dist/index.js"]},
                "dev-tools": {"url": "http://localhost:3004/sse"},
                "calendar": {"command": "python", "args": ["-m", "calendar_server"]},
            }
        },
    )

    specs, errors = load_provider_specs(path)

    assert list(specs) == ["finance", "dev-tools", "calendar"]
    assert specs["finance"].command == "node"
    assert specs["finance"].args == ["dist/index.js"]
    assert specs["dev-tools"].is_remote is True
    assert errors == {}


def test_load_accepts_mcp_servers_section(tmp_path):
    """The conventional 'mcpServers' key is accepted."""
    path = write_providers(
        tmp_path / "providers.json",
        {"mcpServers": {"weather": {"command": "weather-server"}}},
    )

    specs, errors = load_provider_specs(path)

    assert list(specs) == ["weather"]


def test_load_development_variant(tmp_path):
    """Development mode swaps in the variant and merges the environment."""
    path = write_providers(
        tmp_path / "providers.json",
        {
            "providers": {
                "finance": {
                    "command": "node",
                    "args": ["dist/index.js"],
                    "env": {"DATABASE_PATH": "./finance.db", "LOG": "info"},
                    "development": {
                        "command": "npx",
                        "args": ["tsx", "src/index.ts"],
                        "env": {"LOG": "debug"},
                    },
                }
            }
        },
    )

    production = load_provider_specs(path)[0]["finance"]
    development = load_provider_specs(path, mode="development")[0]["finance"]

    assert production.command == "node"
    assert production.development is None
    assert development.command == "npx"
    assert development.args == ["tsx", "src/index.ts"]
    assert development.env == {"DATABASE_PATH": "./finance.db", "LOG": "debug"}


def test_development_variant_may_switch_to_url():
    """A development variant with a url replaces the base command."""
    spec = LaunchSpec.model_validate(
        {"command": "node", "development": {"url": "http://localhost:3001/sse"}}
    )

    resolved = spec.for_mode("development")

    assert resolved.command is None
    assert resolved.url == "http://localhost:3001/sse"


def test_launch_spec_requires_command_or_url():
    """A spec with neither command nor url cannot be resolved."""
    spec = LaunchSpec.model_validate({"args": ["x"]})

    with pytest.raises(ValueError, match="exactly one"):
        spec.for_mode("production")


def test_launch_spec_rejects_nested_variants():
    """Development variants cannot contain their own variants."""
    with pytest.raises(ValueError):
        LaunchSpec.model_validate(
            {
                "command": "node",
                "development": {"command": "npx", "development": {"command": "tsx"}},
            }
        )


def test_load_invalid_entry_is_reported_per_provider(tmp_path):
    """An invalid entry is skipped and reported, the valid ones still load."""
    path = write_providers(
        tmp_path / "providers.json",
        {
            "providers": {
                "finance": {"command": "node", "unexpected": True},
                "weather": {"command": "weather-server"},
            }
        },
    )

    specs, errors = load_provider_specs(path)

    assert list(specs) == ["weather"]
    assert list(errors) == ["finance"]
    assert isinstance(errors["finance"], ConfigurationError)
    assert "finance" in str(errors["finance"])


def test_development_only_entry_in_production_mode(tmp_path):
    """An entry that only defines a development variant is invalid in production."""
    path = write_providers(
        tmp_path / "providers.json",
        {
            "providers": {
                "finance": {"command": "node", "args": ["dist/index.js"]},
                "devonly": {"development": {"url": "http://localhost:3004/sse"}},
            }
        },
    )

    production, production_errors = load_provider_specs(path)
    development, development_errors = load_provider_specs(path, mode="development")

    assert list(production) == ["finance"]
    assert list(production_errors) == ["devonly"]
    assert list(development) == ["finance", "devonly"]
    assert development_errors == {}


def test_load_invalid_json_raises(tmp_path):
    """A malformed file is a configuration error."""
    path = tmp_path / "providers.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Failed to read"):
        load_provider_specs(path)


def test_load_without_section_raises(tmp_path):
    """A file without a providers section is rejected."""
    path = write_providers(tmp_path / "providers.json", {"servers": {}})

    with pytest.raises(ConfigurationError, match="no 'providers'"):
        load_provider_specs(path)


def test_select_providers_all_when_not_restricted():
    """Without an enabled list every spec is selected."""
    specs = {"a": LaunchSpec(command="a"), "b": LaunchSpec(command="b")}

    selected, errors = select_providers(specs, None)

    assert list(selected) == ["a", "b"]
    assert errors == {}


def test_select_providers_reports_missing_specs():
    """An enabled name without a spec fails alone; the others are kept."""
    specs = {"a": LaunchSpec(command="a"), "b": LaunchSpec(command="b")}

    selected, errors = select_providers(specs, ["b", "ghost", "a"])

    assert list(selected) == ["b", "a"]
    assert list(errors) == ["ghost"]
    assert isinstance(errors["ghost"], ConfigurationError)
