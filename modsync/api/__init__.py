"""
Platform API Layer.

This package handles all communication with the mod catalogs. Each platform
client resolves an identifier to the latest compatible file; the registry
routes identifiers to the right client.
"""

import asyncio
from typing import Protocol

from modsync.models.config import SyncConfig
from modsync.models.downloadable import Downloadable
from modsync.models.filters import Filter
from modsync.models.identifiers import (
    CurseForgeProject,
    GitHubRepository,
    ModIdentifier,
    ModrinthProject,
    PinnedModrinthProject,
)

from .client import CatalogClient
from .curseforge import CurseForgeClient
from .github import GitHubClient
from .modrinth import ModrinthClient
from .rate_limiter import AdaptiveRateLimiter


class Platform(Protocol):
    """Anything that can resolve an identifier to a downloadable file."""

    async def fetch(
        self, identifier: ModIdentifier, filters: list[Filter]
    ) -> Downloadable: ...


class PlatformRegistry:
    """Routes each identifier to the client of the platform it belongs to."""

    def __init__(
        self,
        modrinth: CatalogClient,
        curseforge: CatalogClient,
        github: CatalogClient,
    ):
        self._clients = {
            ModrinthProject: modrinth,
            PinnedModrinthProject: modrinth,
            CurseForgeProject: curseforge,
            GitHubRepository: github,
        }

    @classmethod
    def from_config(cls, config: SyncConfig) -> "PlatformRegistry":
        connections = config.max_concurrent_fetches
        return cls(
            modrinth=ModrinthClient(config.user_agent, connections),
            curseforge=CurseForgeClient(
                config.user_agent, config.curseforge_api_key, connections
            ),
            github=GitHubClient(config.user_agent, config.github_token, connections),
        )

    def client_for(self, identifier: ModIdentifier) -> CatalogClient:
        try:
            return self._clients[type(identifier)]
        except KeyError:
            raise TypeError(f"No platform can resolve {identifier!r}") from None

    async def fetch(
        self, identifier: ModIdentifier, filters: list[Filter]
    ) -> Downloadable:
        return await self.client_for(identifier).fetch(identifier, filters)

    async def close(self) -> None:
        """Closes every client's session."""
        clients = {id(c): c for c in self._clients.values()}.values()
        await asyncio.gather(*(c.close() for c in clients))

    async def __aenter__(self) -> "PlatformRegistry":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


__all__ = [
    "AdaptiveRateLimiter",
    "CatalogClient",
    "CurseForgeClient",
    "GitHubClient",
    "ModrinthClient",
    "Platform",
    "PlatformRegistry",
]
