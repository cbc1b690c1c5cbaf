"""Capability catalog: every reachable provider's tools under one namespace.

The catalog is rebuilt for each orchestration request. Providers are queried
concurrently; a provider that fails is skipped so the others stay usable.
Results are merged in configuration order, so when two providers expose the
same tool name the first configured provider wins regardless of which
listing completed first.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from pilot_server.errors import PilotServerError, ToolNotFoundError
from pilot_server.providers.manager import ConnectionManager
from pilot_server.providers.types import ToolDescriptor

logger = logging.getLogger(__name__)


@dataclass
class CapabilityCatalog:
    """Name-addressable registry of tools across providers.

    Attributes:
        tools: Ordered mapping of tool name to its descriptor
        provider_tool_counts: Number of tools each reachable provider listed
        unavailable: Provider name to the error that excluded it
        collisions: Tool name to every provider exposing it, in configuration
                    order, for names exposed by more than one provider
    """

    tools: dict[str, ToolDescriptor] = field(default_factory=dict)
    provider_tool_counts: dict[str, int] = field(default_factory=dict)
    unavailable: dict[str, str] = field(default_factory=dict)
    collisions: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    async def build(cls, manager: ConnectionManager) -> "CapabilityCatalog":
        """Query all providers concurrently and merge their tools.

        Args:
            manager: Connection manager owning the providers

        Returns:
            CapabilityCatalog with tools from every reachable provider
        """
        names = manager.provider_names
        results = await asyncio.gather(
            *(manager.list_tools(name) for name in names),
            return_exceptions=True,
        )

        catalog = cls()
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                catalog.unavailable[name] = f"{type(result).__name__}: {result}"
                if isinstance(result, PilotServerError):
                    logger.warning(f"Skipping provider '{name}': {result}")
                else:
                    logger.error(f"Skipping provider '{name}' after unexpected failure: {result!r}")
                continue
            if isinstance(result, BaseException):
                raise result

            catalog._merge(name, result)
            logger.info(f"Provider '{name}' contributed {len(result)} tool(s)")

        logger.debug(
            f"Built catalog with {len(catalog.tools)} tool(s) from "
            f"{len(catalog.provider_tool_counts)}/{len(names)} provider(s)"
        )
        return catalog

    def _merge(self, provider: str, descriptors: list[ToolDescriptor]) -> None:
        self.provider_tool_counts[provider] = len(descriptors)
        for descriptor in descriptors:
            existing = self.tools.get(descriptor.name)
            if existing is None:
                self.tools[descriptor.name] = descriptor
                continue
            if existing.provider == provider:
                continue

            owners = self.collisions.setdefault(descriptor.name, [existing.provider])
            if provider not in owners:
                owners.append(provider)
            logger.warning(
                f"Tool '{descriptor.name}' from provider '{provider}' is shadowed "
                f"by provider '{existing.provider}'"
            )

    def resolve(self, name: str) -> ToolDescriptor:
        """Find the descriptor (and owning provider) for a tool name.

        Raises:
            ToolNotFoundError: If no reachable provider exposes the tool
        """
        try:
            return self.tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def descriptors(self) -> list[ToolDescriptor]:
        return list(self.tools.values())

    @property
    def reachable_providers(self) -> list[str]:
        return list(self.provider_tool_counts)

    @property
    def is_empty(self) -> bool:
        return not self.tools

    def __contains__(self, name: object) -> bool:
        return name in self.tools

    def __len__(self) -> int:
        return len(self.tools)
