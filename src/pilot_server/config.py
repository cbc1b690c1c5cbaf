"""Configuration module for pilot-server using pydantic-settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful personal assistant. You have access to tools provided by "
    "connected services. Use them when they help answer the user's query, and "
    "answer concisely."
)


class PilotServerSettings(BaseSettings):
    """Main configuration settings for pilot-server.

    All settings can be overridden via environment variables with the PILOT_ prefix.
    For example, PILOT_ENGINE will override the engine setting.
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Runtime mode; "development" selects each provider's development variant
    mode: str = "production"

    # Tool providers
    data_dir: str = "."
    providers_file: str = "providers.json"
    enabled_providers: list[str] | None = None
    tool_collision_policy: Literal["first_wins", "reject"] = "first_wins"

    # Reasoning engine
    engine: str = "ollama"
    model: str | None = None
    ollama_host: str = "http://localhost:11434"
    anthropic_api_key: str | None = None
    openai_api_key: str | None = None
    max_tokens: int = 1000
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    # Timeouts (seconds)
    handshake_timeout: float = 30.0
    provider_call_timeout: float = 60.0
    engine_timeout: float = 120.0
    shutdown_timeout: float = 5.0

    # CORS
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="PILOT_")

    @property
    def resolved_providers_file(self) -> Path:
        """Get the full path to the providers file."""
        return Path(self.data_dir) / self.providers_file
