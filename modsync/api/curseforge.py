"""
Client for the CurseForge Core API (v1).
"""

import logging
import re
from typing import Any, Dict, List

from modsync.exceptions import ConfigurationError
from modsync.models.downloadable import Downloadable
from modsync.models.filters import (
    FileCandidate,
    Filter,
    ReleaseChannel,
    select_latest,
)
from modsync.models.identifiers import CurseForgeProject, ModIdentifier
from modsync.utils.formatting import parse_loaders, parse_timestamp

from .client import CatalogClient

log = logging.getLogger(__name__)

RELEASE_TYPES = {
    1: ReleaseChannel.RELEASE,
    2: ReleaseChannel.BETA,
    3: ReleaseChannel.ALPHA,
}
REQUIRED_DEPENDENCY = 3
SHA1_ALGO = 1
GAME_VERSION_PATTERN = re.compile(r"^\d+\.\d+(\.\d+)?$")


class CurseForgeClient(CatalogClient):
    """Resolves CurseForge projects."""

    BASE_URL = "https://api.curseforge.com/v1/"
    PLATFORM = "CurseForge"
    FILES_PAGE_SIZE = 50

    def __init__(self, user_agent: str, api_key: str, max_connections: int = 10):
        self.api_key = api_key
        super().__init__(user_agent, max_connections)

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["x-api-key"] = self.api_key
        return headers

    async def fetch(
        self, identifier: ModIdentifier, filters: list[Filter]
    ) -> Downloadable:
        if not isinstance(identifier, CurseForgeProject):
            raise TypeError(f"{self.PLATFORM} cannot resolve {identifier}")
        if not self.api_key:
            raise ConfigurationError(
                "A CurseForge API key is required. Set MODSYNC_CURSEFORGE_API_KEY "
                "or curseforge_api_key in the config file."
            )

        files: List[Dict[str, Any]] = []
        index = 0
        while True:
            response = await self.api_call(
                f"mods/{identifier.project_id}/files",
                pageSize=self.FILES_PAGE_SIZE,
                index=index,
            )
            page = response.get("data") or []
            files.extend(page)
            index += len(page)
            total = (response.get("pagination") or {}).get("totalCount")
            if len(page) < self.FILES_PAGE_SIZE or (total is not None and index >= total):
                break

        candidates = [self.file_to_candidate(f) for f in files]
        return Downloadable.from_candidate(select_latest(candidates, filters))

    @staticmethod
    def download_url(file: Dict[str, Any]) -> str:
        """
        The file's download URL, built from the CDN layout when the author has
        disabled third-party distribution and the API omits it.
        """
        if url := file.get("downloadUrl"):
            return url
        file_id = int(file.get("id", 0))
        return (
            f"https://edge.forgecdn.net/files/{file_id // 1000}/{file_id % 1000}/"
            f"{file.get('fileName', '')}"
        )

    @staticmethod
    def file_to_candidate(file: Dict[str, Any]) -> FileCandidate:
        """Maps a CurseForge file object to a candidate."""
        tags = file.get("gameVersions") or []
        sha1 = next(
            (h.get("value") for h in file.get("hashes") or [] if h.get("algo") == SHA1_ALGO),
            None,
        )
        return FileCandidate(
            filename=file.get("fileName", ""),
            url=CurseForgeClient.download_url(file),
            title=file.get("displayName") or file.get("fileName", ""),
            game_versions=[t for t in tags if GAME_VERSION_PATTERN.match(t)],
            loaders=parse_loaders(tags),
            channel=RELEASE_TYPES.get(file.get("releaseType"), ReleaseChannel.ALPHA),
            published=parse_timestamp(file.get("fileDate")),
            length=file.get("fileLength") or 0,
            sha1=sha1,
            dependencies=CurseForgeClient.required_dependencies(file),
        )

    @staticmethod
    def required_dependencies(file: Dict[str, Any]) -> List[ModIdentifier]:
        return [
            CurseForgeProject(int(dep["modId"]))
            for dep in file.get("dependencies") or []
            if dep.get("relationType") == REQUIRED_DEPENDENCY and dep.get("modId")
        ]
