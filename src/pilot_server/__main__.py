"""CLI entry point for pilot-server.

This module provides the command-line interface for starting the pilot-server.
It can be invoked as `pilot-server` (via the script entry point) or
`python -m pilot_server`.
"""

import argparse
import logging
import sys

import uvicorn

from pilot_server import __version__, create_app
from pilot_server.config import PilotServerSettings


def main() -> None:
    """Main entry point for the pilot-server CLI.

    Parses command-line arguments and starts the uvicorn server with the
    FastAPI application.
    """
    parser = argparse.ArgumentParser(
        prog="pilot-server",
        description="Tool orchestration server connecting a reasoning engine to MCP tool providers",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"pilot-server {__version__}",
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind the server to (default: 127.0.0.1, can be set via PILOT_HOST)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind the server to (default: 8000, can be set via PILOT_PORT)",
    )

    parser.add_argument(
        "--mode",
        type=str,
        default=None,
        choices=["production", "development"],
        help="Runtime mode selecting provider launch variants (default: production, can be set via PILOT_MODE)",
    )

    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Base directory for the providers file (default: ., can be set via PILOT_DATA_DIR)",
    )

    parser.add_argument(
        "--providers-file",
        type=str,
        default=None,
        help="Providers file name within the data directory (default: providers.json, can be set via PILOT_PROVIDERS_FILE)",
    )

    parser.add_argument(
        "--engine",
        type=str,
        default=None,
        choices=["ollama", "anthropic", "openai"],
        help="Reasoning engine (default: ollama, can be set via PILOT_ENGINE)",
    )

    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Model for the reasoning engine (default depends on engine, can be set via PILOT_MODEL)",
    )

    parser.add_argument(
        "--ollama-host",
        type=str,
        default=None,
        help="Ollama server URL (default: http://localhost:11434, can be set via PILOT_OLLAMA_HOST)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO, can be set via PILOT_LOG_LEVEL)",
    )

    args = parser.parse_args()

    # Build settings, CLI args override environment variables
    settings_kwargs = {}
    for option in (
        "host",
        "port",
        "mode",
        "data_dir",
        "providers_file",
        "engine",
        "model",
        "ollama_host",
        "log_level",
    ):
        value = getattr(args, option)
        if value is not None:
            settings_kwargs[option] = value

    settings = PilotServerSettings(**settings_kwargs)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = create_app(settings=settings)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    sys.exit(main())
