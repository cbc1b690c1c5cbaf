"""Tool orchestration: the two-phase protocol between engine and providers.

A request moves through these states:

    INIT -> MODEL_CALL_1 -> FINISHED
                         -> EXECUTING_TOOLS -> MODEL_CALL_2 -> FINISHED

At most one round of tool calls is executed. Tool calls requested in the
engine's second response are not executed.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, TypeVar

from pilot_server.config import PilotServerSettings
from pilot_server.engines import ReasoningEngine, create_engine
from pilot_server.errors import (
    ConfigurationError,
    ModelTimeoutError,
    NoProvidersAvailableError,
)
from pilot_server.providers import (
    CapabilityCatalog,
    ConnectionManager,
    ToolInvocation,
    ToolRouter,
    load_provider_specs,
    select_providers,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OrchestrationState(str, Enum):
    """States of a single orchestration request."""

    INIT = "init"
    MODEL_CALL_1 = "model_call_1"
    EXECUTING_TOOLS = "executing_tools"
    MODEL_CALL_2 = "model_call_2"
    FINISHED = "finished"


@dataclass
class OrchestrationResult:
    """Final answer of an orchestration request.

    Attributes:
        response_text: The engine's final answer
        tools_used: Names of every attempted tool, in request order
        invocations: Outcome of each tool call, for diagnostics
    """

    response_text: str
    tools_used: list[str] = field(default_factory=list)
    invocations: list[ToolInvocation] = field(default_factory=list)


class ToolOrchestrator:
    """Answers user queries with a reasoning engine and provider tools.

    Constructed once at startup and shared by all requests. Holds the
    connection manager (the only shared mutable state) and the engine.
    """

    def __init__(
        self,
        manager: ConnectionManager,
        engine: ReasoningEngine,
        *,
        engine_timeout: float = 120.0,
        tool_collision_policy: str = "first_wins",
        configuration_errors: dict[str, ConfigurationError] | None = None,
    ) -> None:
        self.manager = manager
        self.engine = engine
        self.engine_timeout = engine_timeout
        self.tool_collision_policy = tool_collision_policy
        self.configuration_errors = configuration_errors or {}

    @classmethod
    def from_settings(cls, settings: PilotServerSettings) -> "ToolOrchestrator":
        """Build the orchestrator from application settings.

        Raises:
            ConfigurationError: If the providers file or engine name is invalid
        """
        specs, load_errors = load_provider_specs(
            settings.resolved_providers_file, mode=settings.mode
        )
        selected, errors = select_providers(specs, settings.enabled_providers)
        # An invalid entry explains a missing spec better than "no launch specification"
        enabled = settings.enabled_providers
        for name, error in load_errors.items():
            if enabled is None or name in enabled:
                errors[name] = error

        manager = ConnectionManager(
            selected,
            handshake_timeout=settings.handshake_timeout,
            call_timeout=settings.provider_call_timeout,
            shutdown_timeout=settings.shutdown_timeout,
        )
        return cls(
            manager,
            create_engine(settings),
            engine_timeout=settings.engine_timeout,
            tool_collision_policy=settings.tool_collision_policy,
            configuration_errors=errors,
        )

    async def init(self) -> CapabilityCatalog:
        """Connect to every provider and build the initial catalog.

        Unreachable providers are logged and left for later requests to retry.

        Returns:
            The warm-up catalog

        Raises:
            ConfigurationError: If the collision policy is "reject" and two
                                providers expose the same tool name
        """
        logger.info(f"Initializing {len(self.manager.providers)} tool provider(s)")
        catalog = await CapabilityCatalog.build(self.manager)

        if catalog.collisions and self.tool_collision_policy == "reject":
            details = ", ".join(
                f"'{name}' ({', '.join(owners)})" for name, owners in catalog.collisions.items()
            )
            raise ConfigurationError(f"Tool name collisions between providers: {details}")

        if not catalog.reachable_providers:
            logger.warning("No tool providers reachable at startup")
        else:
            logger.info(
                f"Tool catalog ready: {len(catalog)} tool(s) from "
                f"{len(catalog.reachable_providers)} provider(s)"
            )
        return catalog

    async def build_catalog(self) -> CapabilityCatalog:
        """Build a fresh catalog from the currently reachable providers."""
        return await CapabilityCatalog.build(self.manager)

    def _transition(self, state: OrchestrationState) -> None:
        logger.info(f"Orchestration state -> {state.value}")

    async def _call_engine(self, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.engine_timeout)
        except asyncio.TimeoutError:
            logger.error(f"Engine '{self.engine.name}' timed out after {self.engine_timeout:g}s")
            raise ModelTimeoutError(self.engine.name, self.engine_timeout) from None

    async def run(self, text: str) -> OrchestrationResult:
        """Answer a user query, executing at most one round of tool calls.

        Args:
            text: Raw user text

        Returns:
            OrchestrationResult with the final answer and tools used

        Raises:
            NoProvidersAvailableError: If no provider could be reached
            UpstreamModelError: If the engine call fails or times out
        """
        self._transition(OrchestrationState.INIT)
        catalog = await self.build_catalog()
        if not catalog.reachable_providers:
            failures = {
                name: f"ConfigurationError: {error}"
                for name, error in self.configuration_errors.items()
            }
            failures.update(catalog.unavailable)
            raise NoProvidersAvailableError(failures)

        tools = catalog.descriptors()

        self._transition(OrchestrationState.MODEL_CALL_1)
        turn = await self._call_engine(self.engine.process_text(text, tools))

        if not turn.wants_tools:
            self._transition(OrchestrationState.FINISHED)
            return OrchestrationResult(response_text=turn.text)

        self._transition(OrchestrationState.EXECUTING_TOOLS)
        logger.info(f"Engine requested {len(turn.tool_calls)} tool call(s)")
        router = ToolRouter(catalog, self.manager)
        invocations = list(
            await asyncio.gather(
                *(
                    router.dispatch(request.name, request.arguments, call_id=request.id)
                    for request in turn.tool_calls
                )
            )
        )

        self._transition(OrchestrationState.MODEL_CALL_2)
        final_text = await self._call_engine(
            self.engine.resubmit(text, tools, turn, invocations)
        )

        self._transition(OrchestrationState.FINISHED)
        return OrchestrationResult(
            response_text=final_text,
            tools_used=[invocation.tool_name for invocation in invocations],
            invocations=invocations,
        )

    async def close_all(self) -> None:
        """Close every provider connection and the engine client."""
        await self.manager.close_all()
        await self.engine.close()
