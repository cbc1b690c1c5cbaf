"""Loading of provider launch specifications.

The providers file is a JSON mapping from provider name to launch spec:

    {
        "providers": {
            "finance": {
                "command": "node",
                "args": ["dist/index.js"],
                "env": {"DATABASE_PATH": "./finance.db"},
                "development": {"command": "npx", "args": ["tsx", "src/index.ts"]}
            },
            "dev-tools": {"url": "http://localhost:3004/sse"}
        }
    }

"mcpServers" is accepted in place of "providers". Key order is the
configuration order used for tool-name collision resolution.
"""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from pilot_server.errors import ConfigurationError
from pilot_server.providers.types import LaunchSpec

logger = logging.getLogger(__name__)


def load_provider_specs(
    path: Path, mode: str = "production"
) -> tuple[dict[str, LaunchSpec], dict[str, ConfigurationError]]:
    """Load and resolve provider launch specs from a JSON file.

    An invalid entry is a configuration error for that provider only; the
    remaining entries are still loaded.

    Args:
        path: Path to the providers file
        mode: Runtime mode; "development" selects each provider's variant

    Returns:
        Tuple of (resolved specs in configuration order, errors keyed by
        provider name). Both are empty if the file does not exist.

    Raises:
        ConfigurationError: If the file cannot be read, is not valid JSON or
                            has no providers section
    """
    if not path.exists():
        logger.warning(f"Providers file not found: {path} (no tool providers configured)")
        return {}, {}

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Failed to read providers file {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Providers file {path} must contain a JSON object")

    entries = raw.get("providers", raw.get("mcpServers"))
    if entries is None:
        raise ConfigurationError(
            f"Providers file {path} has no 'providers' (or 'mcpServers') section"
        )
    if not isinstance(entries, dict):
        raise ConfigurationError(f"'providers' in {path} must be an object")

    specs: dict[str, LaunchSpec] = {}
    errors: dict[str, ConfigurationError] = {}
    for name, entry in entries.items():
        try:
            specs[name] = LaunchSpec.model_validate(entry).for_mode(mode)
        except (ValidationError, ValueError) as e:
            error = ConfigurationError(f"Invalid launch spec for provider '{name}': {e}")
            logger.error(str(error))
            errors[name] = error

    logger.info(
        f"Loaded {len(specs)} provider spec(s) from {path} (mode={mode}, invalid={len(errors)})"
    )
    return specs, errors


def select_providers(
    specs: dict[str, LaunchSpec],
    enabled: list[str] | None,
) -> tuple[dict[str, LaunchSpec], dict[str, ConfigurationError]]:
    """Restrict specs to the enabled provider names.

    A referenced name without a launch spec is a configuration error for that
    provider only; the remaining providers are still returned.

    Args:
        specs: All loaded launch specs
        enabled: Provider names to use, in order; None means all of them

    Returns:
        Tuple of (selected specs in order, errors keyed by provider name)
    """
    if enabled is None:
        return dict(specs), {}

    selected: dict[str, LaunchSpec] = {}
    errors: dict[str, ConfigurationError] = {}
    for name in enabled:
        if name in specs:
            selected[name] = specs[name]
            continue
        error = ConfigurationError(f"Provider '{name}' has no launch specification")
        logger.error(str(error))
        errors[name] = error

    return selected, errors
