"""Connection lifecycle management for tool providers.

The ConnectionManager owns at most one live ProviderConnection per provider.
All connection-state transitions for a provider happen under that provider's
lock, so concurrent requests never spawn duplicate provider processes.
Operations go through a reconnect-once policy: a failure on a connection
that was believed healthy retires it and retries exactly once.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

from pilot_server.errors import (
    ConfigurationError,
    ProviderConnectionError,
    ProviderTimeoutError,
)
from pilot_server.providers.connection import ProviderConnection
from pilot_server.providers.types import (
    LaunchSpec,
    ProviderState,
    ToolDescriptor,
    ToolResult,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

ConnectionFactory = Callable[[str, LaunchSpec], ProviderConnection]


@dataclass
class Provider:
    """A configured tool provider and its current connection."""

    name: str
    launch: LaunchSpec
    state: ProviderState = ProviderState.DISCONNECTED
    connection: ProviderConnection | None = None
    last_error: str | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)


class ConnectionManager:
    """Establishes, probes, reconnects, and closes provider connections.

    Attributes:
        providers: Ordered mapping of provider name to Provider; the order is
                   the configuration order used for collision resolution
        handshake_timeout: Seconds allowed for launch + initialize
        call_timeout: Seconds allowed for each provider request
        shutdown_timeout: Seconds allowed for closing one provider
    """

    def __init__(
        self,
        specs: dict[str, LaunchSpec],
        *,
        handshake_timeout: float = 30.0,
        call_timeout: float = 60.0,
        shutdown_timeout: float = 5.0,
        connection_factory: ConnectionFactory | None = None,
    ) -> None:
        self.providers: dict[str, Provider] = {
            name: Provider(name=name, launch=spec) for name, spec in specs.items()
        }
        self.handshake_timeout = handshake_timeout
        self.call_timeout = call_timeout
        self.shutdown_timeout = shutdown_timeout
        self._connection_factory = connection_factory or self._create_connection

    def _create_connection(self, name: str, launch: LaunchSpec) -> ProviderConnection:
        return ProviderConnection(
            name,
            launch,
            handshake_timeout=self.handshake_timeout,
            call_timeout=self.call_timeout,
            close_timeout=self.shutdown_timeout / 2,
        )

    @property
    def provider_names(self) -> list[str]:
        return list(self.providers)

    @property
    def connected_count(self) -> int:
        return sum(
            1
            for provider in self.providers.values()
            if provider.connection is not None and provider.connection.is_alive
        )

    def states(self) -> dict[str, tuple[ProviderState, str | None]]:
        """Current state and last error of every provider, in configuration order."""
        return {
            name: (provider.state, provider.last_error)
            for name, provider in self.providers.items()
        }

    def get_provider(self, name: str) -> Provider:
        """Look up a configured provider.

        Raises:
            ConfigurationError: If no provider with that name is configured
        """
        try:
            return self.providers[name]
        except KeyError:
            raise ConfigurationError(f"Provider '{name}' has no launch specification") from None

    async def connect(self, name: str) -> ProviderConnection:
        """Launch (or attach to) a provider, replacing any existing connection.

        Raises:
            ConfigurationError: If the provider is unknown
            ProviderConnectionError: If the launch or handshake fails
        """
        provider = self.get_provider(name)
        async with provider.lock:
            return await self._connect_locked(provider)

    async def ensure_connection(self, name: str) -> ProviderConnection:
        """Return a healthy connection, connecting at most once if needed.

        Raises:
            ConfigurationError: If the provider is unknown
            ProviderConnectionError: If the single connect attempt fails
        """
        provider = self.get_provider(name)
        async with provider.lock:
            connection = provider.connection
            if connection is not None and connection.is_alive:
                return connection
            if connection is not None:
                logger.info(f"Provider '{name}' connection is no longer alive, reconnecting")
            return await self._connect_locked(provider)

    async def close(self, name: str) -> None:
        """Close a provider's connection and terminate its process. Idempotent.

        Raises:
            ConfigurationError: If the provider is unknown
            ProviderTimeoutError: If closing does not finish within shutdown_timeout
        """
        provider = self.get_provider(name)
        async with provider.lock:
            if provider.connection is None:
                return
            await self._retire_locked(provider, raise_errors=True)
            logger.info(f"Closed provider '{name}'")

    async def close_all(self) -> None:
        """Close every provider, continuing past individual failures."""
        names = self.provider_names
        results = await asyncio.gather(
            *(self.close(name) for name in names), return_exceptions=True
        )

        failures = 0
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                failures += 1
                logger.error(f"Failed to close provider '{name}': {result}")

        logger.info(f"Closed {len(names) - failures}/{len(names)} provider connection(s)")

    async def list_tools(self, name: str) -> list[ToolDescriptor]:
        """List a provider's tools, reconnecting once if the channel broke."""
        return await self._run_with_reconnect(
            name, "list_tools", lambda connection: connection.list_tools()
        )

    async def call_tool(
        self, name: str, tool_name: str, arguments: dict[str, Any]
    ) -> ToolResult:
        """Call a tool on a provider, reconnecting once if the channel broke."""
        return await self._run_with_reconnect(
            name,
            f"call_tool({tool_name})",
            lambda connection: connection.call_tool(tool_name, arguments),
        )

    async def _run_with_reconnect(
        self,
        name: str,
        operation: str,
        call: Callable[[ProviderConnection], Awaitable[T]],
    ) -> T:
        provider = self.get_provider(name)
        previous = provider.connection
        connection = await self.ensure_connection(name)

        try:
            return await call(connection)
        except ProviderConnectionError as e:
            self._record_failure(provider, connection, e)
            if connection is not previous:
                # The connect attempt for this operation has already been spent
                raise
            logger.warning(
                f"{operation} on provider '{name}' failed ({e.reason}), reconnecting once"
            )

        connection = await self._reconnect(name, stale=connection)
        try:
            return await call(connection)
        except ProviderConnectionError as e:
            self._record_failure(provider, connection, e)
            raise

    async def _reconnect(self, name: str, stale: ProviderConnection) -> ProviderConnection:
        provider = self.get_provider(name)
        async with provider.lock:
            current = provider.connection
            if current is not None and current is not stale and current.is_alive:
                return current
            return await self._connect_locked(provider)

    def _record_failure(
        self,
        provider: Provider,
        connection: ProviderConnection,
        error: ProviderConnectionError,
    ) -> None:
        provider.last_error = str(error)
        if provider.connection is connection and not connection.is_alive:
            provider.state = ProviderState.DISCONNECTED

    async def _connect_locked(self, provider: Provider) -> ProviderConnection:
        if provider.connection is not None:
            await self._retire_locked(provider, raise_errors=False)

        provider.state = ProviderState.CONNECTING
        connection = self._connection_factory(provider.name, provider.launch)
        try:
            await connection.open()
        except ProviderConnectionError as e:
            provider.state = ProviderState.DISCONNECTED
            provider.last_error = str(e)
            logger.warning(f"Failed to connect to provider '{provider.name}': {e.reason}")
            raise
        except BaseException:
            provider.state = ProviderState.DISCONNECTED
            raise

        provider.connection = connection
        provider.state = ProviderState.CONNECTED
        provider.last_error = None
        logger.info(f"Connected to provider '{provider.name}'")
        return connection

    async def _retire_locked(self, provider: Provider, *, raise_errors: bool) -> None:
        connection = provider.connection
        provider.connection = None
        provider.state = ProviderState.DISCONNECTED
        if connection is None:
            return

        try:
            await asyncio.wait_for(connection.close(), timeout=self.shutdown_timeout)
        except asyncio.TimeoutError:
            error = ProviderTimeoutError(provider.name, "close", self.shutdown_timeout)
            if raise_errors:
                raise error from None
            logger.warning(str(error))
        except Exception as e:
            if raise_errors:
                raise
            logger.warning(f"Error retiring connection to provider '{provider.name}': {e}")
