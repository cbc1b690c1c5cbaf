"""Type definitions for tool providers.

This module contains the launch specification model read from the providers
file and the dataclasses describing tools and tool invocations.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pilot_server.errors import (
    PilotServerError,
    ProviderProtocolError,
    ProviderTimeoutError,
    ToolExecutionError,
    ToolNotFoundError,
)


class ProviderState(str, Enum):
    """Connection state of a provider."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class LaunchSpec(BaseModel):
    """How to start (or reach) a tool provider.

    Exactly one of `command` (spawn a process speaking MCP over stdio) or
    `url` (attach to an already-running provider over SSE) must be set.
    """

    command: str | None = Field(default=None, description="Executable to launch")
    args: list[str] = Field(default_factory=list, description="Command arguments")
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Environment overrides merged on top of the server environment",
    )
    cwd: str | None = Field(default=None, description="Working directory")
    url: str | None = Field(default=None, description="SSE endpoint of a running provider")
    development: "LaunchSpec | None" = Field(
        default=None,
        description="Alternate launch parameters used when mode is 'development'",
    )

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _check_nesting(self) -> "LaunchSpec":
        if self.development is not None and self.development.development is not None:
            raise ValueError("development variants cannot be nested")
        return self

    def for_mode(self, mode: str) -> "LaunchSpec":
        """Resolve the launch parameters for a runtime mode.

        In development mode the variant's fields replace the base fields and
        its environment is merged on top of the base environment.

        Raises:
            ValueError: If the resolved spec has neither or both of command/url.
        """
        if mode != "development" or self.development is None:
            if bool(self.command) == bool(self.url):
                raise ValueError("exactly one of 'command' or 'url' must be set")
            return self.model_copy(update={"development": None})

        variant = self.development
        overrides = variant.model_dump(exclude_unset=True, exclude={"development", "env"})
        if "command" in overrides and "url" not in overrides:
            overrides["url"] = None
        if "url" in overrides and "command" not in overrides:
            overrides["command"] = None
        resolved = self.model_copy(
            update={
                **overrides,
                "env": {**self.env, **variant.env},
                "development": None,
            }
        )
        if bool(resolved.command) == bool(resolved.url):
            raise ValueError("exactly one of 'command' or 'url' must be set")
        return resolved

    @property
    def is_remote(self) -> bool:
        return self.url is not None


@dataclass
class ToolDescriptor:
    """A tool exposed by a provider.

    Attributes:
        name: Tool name, intended to be unique across all providers
        description: Human-readable description shown to the reasoning engine
        input_schema: JSON schema describing the accepted arguments
        provider: Name of the provider that owns the tool
    """

    name: str
    description: str
    input_schema: dict[str, Any]
    provider: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
            "provider": self.provider,
        }


@dataclass
class ToolResult:
    """Normalized result of a provider tool call."""

    content: str
    is_error: bool = False


@dataclass
class ToolInvocation:
    """A single tool call and its outcome.

    Exactly one of `result` and `error` is set once the invocation completes.
    """

    call_id: str
    tool_name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    provider: str | None = None
    result: str | None = None
    error: PilotServerError | None = None
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_kind(self) -> str | None:
        """Classify the failure for callers and the reasoning engine."""
        if self.error is None:
            return None
        if isinstance(self.error, ToolNotFoundError):
            return "not_found"
        if isinstance(self.error, ToolExecutionError):
            return "execution"
        if isinstance(self.error, ProviderTimeoutError):
            return "timeout"
        if isinstance(self.error, ProviderProtocolError):
            return "protocol"
        return "connection"

    @property
    def content(self) -> str:
        """Text handed back to the reasoning engine for this call."""
        if self.error is not None:
            return f"Error executing tool: {self.error}"
        return self.result or ""
