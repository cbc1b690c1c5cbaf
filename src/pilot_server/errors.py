"""Exception hierarchy for pilot-server.

Provider-level failures (connection, protocol, timeout) are recovered locally
by the catalog and router. Only engine failures and total provider
unavailability abort an orchestration request.
"""


class PilotServerError(Exception):
    """Base exception for all pilot-server errors."""

    pass


class ConfigurationError(PilotServerError):
    """Raised when provider or engine configuration is invalid or missing."""

    pass


class ProviderError(PilotServerError):
    """Base exception for failures attributed to a single provider."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"Provider '{provider}': {message}")
        self.provider = provider
        self.reason = message


class ProviderConnectionError(ProviderError):
    """Raised when a provider cannot be launched, handshaken, or reached."""

    pass


class ProviderProtocolError(ProviderError):
    """Raised when a provider sends a malformed or unexpected response."""

    pass


class ProviderTimeoutError(ProviderError):
    """Raised when a provider call does not complete within its timeout."""

    def __init__(self, provider: str, operation: str, timeout: float):
        super().__init__(provider, f"{operation} timed out after {timeout:g}s")
        self.operation = operation
        self.timeout = timeout


class ToolNotFoundError(PilotServerError):
    """Raised when a tool name is not present in the capability catalog."""

    def __init__(self, tool_name: str):
        super().__init__(f"Tool '{tool_name}' not found")
        self.tool_name = tool_name


class ToolExecutionError(PilotServerError):
    """A provider reported a failure while executing a known tool.

    Never raised past the router; it is carried inside a ToolInvocation.
    """

    def __init__(self, tool_name: str, message: str, provider: str | None = None):
        super().__init__(message)
        self.tool_name = tool_name
        self.provider = provider


class UpstreamModelError(PilotServerError):
    """Raised when a reasoning engine call fails."""

    def __init__(self, engine: str, message: str):
        super().__init__(f"{engine} request failed: {message}")
        self.engine = engine
        self.reason = message


class ModelTimeoutError(UpstreamModelError):
    """Raised when a reasoning engine call exceeds its timeout."""

    def __init__(self, engine: str, timeout: float):
        super().__init__(engine, f"timed out after {timeout:g}s")
        self.timeout = timeout


class NoProvidersAvailableError(PilotServerError):
    """Raised when no configured provider could be reached.

    Attributes:
        failures: Mapping of provider name to a description of why it was
                  unavailable, e.g. "ProviderConnectionError: ...".
    """

    def __init__(self, failures: dict[str, str]):
        if failures:
            message = f"No tool providers reachable ({len(failures)} failed)"
        else:
            message = "No tool providers configured"
        super().__init__(message)
        self.failures = failures
