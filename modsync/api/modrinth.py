"""
Client for the Modrinth v2 API.
"""

import logging
from typing import Any, Dict, List

from modsync.exceptions import NotCompatibleError
from modsync.models.downloadable import Downloadable
from modsync.models.filters import (
    FileCandidate,
    Filter,
    ReleaseChannel,
    select_latest,
)
from modsync.models.identifiers import (
    ModIdentifier,
    ModrinthProject,
    PinnedModrinthProject,
)
from modsync.utils.formatting import parse_loaders, parse_timestamp

from .client import CatalogClient

log = logging.getLogger(__name__)


class ModrinthClient(CatalogClient):
    """Resolves Modrinth projects and pinned Modrinth versions."""

    BASE_URL = "https://api.modrinth.com/v2/"
    PLATFORM = "Modrinth"

    async def fetch(
        self, identifier: ModIdentifier, filters: list[Filter]
    ) -> Downloadable:
        if isinstance(identifier, PinnedModrinthProject):
            version = await self.api_call(f"version/{identifier.version_id}")
            owner = version.get("project_id")
            if owner != identifier.project_id:
                # The profile may name the project by slug
                project = await self.api_call(f"project/{identifier.project_id}")
                if project.get("id") != owner:
                    raise NotCompatibleError(
                        f"Version {identifier.version_id} does not belong to project "
                        f"{identifier.project_id}"
                    )
            # A pinned version is used as-is, filters do not apply
            return Downloadable.from_candidate(self.version_to_candidate(version))

        if not isinstance(identifier, ModrinthProject):
            raise TypeError(f"{self.PLATFORM} cannot resolve {identifier}")

        versions = await self.api_call(f"project/{identifier.project_id}/version")
        candidates = [
            c for c in (self.version_to_candidate(v) for v in versions) if c.url
        ]
        return Downloadable.from_candidate(select_latest(candidates, filters))

    @staticmethod
    def version_to_candidate(version: Dict[str, Any]) -> FileCandidate:
        """Maps a Modrinth version object onto its primary file."""
        files = version.get("files") or []
        primary = next((f for f in files if f.get("primary")), files[0] if files else {})

        try:
            channel = ReleaseChannel(version.get("version_type", "release"))
        except ValueError:
            channel = ReleaseChannel.ALPHA

        return FileCandidate(
            filename=primary.get("filename", ""),
            url=primary.get("url", ""),
            title=version.get("name") or version.get("version_number") or "",
            game_versions=list(version.get("game_versions") or []),
            loaders=parse_loaders(version.get("loaders") or []),
            channel=channel,
            published=parse_timestamp(version.get("date_published")),
            length=primary.get("size") or 0,
            sha1=(primary.get("hashes") or {}).get("sha1"),
            dependencies=ModrinthClient.required_dependencies(version),
        )

    @staticmethod
    def required_dependencies(version: Dict[str, Any]) -> List[ModIdentifier]:
        dependencies: List[ModIdentifier] = []
        for dep in version.get("dependencies") or []:
            if dep.get("dependency_type") != "required":
                continue
            project_id, version_id = dep.get("project_id"), dep.get("version_id")
            if project_id and version_id:
                dependencies.append(PinnedModrinthProject(project_id, version_id))
            elif project_id:
                dependencies.append(ModrinthProject(project_id))
            else:
                log.debug(
                    f"Skipping dependency of version {version.get('id')} "
                    "without a project ID."
                )
        return dependencies
