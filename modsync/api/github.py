"""
Client for GitHub Releases, for mods that are only published as release assets.
"""

import logging
import re
import time
from typing import Any, Dict, List, Mapping, Optional

from modsync.models.downloadable import Downloadable
from modsync.models.filters import (
    FileCandidate,
    Filter,
    ModLoader,
    ReleaseChannel,
    select_latest,
)
from modsync.models.identifiers import GitHubRepository, ModIdentifier
from modsync.utils.formatting import parse_timestamp

from .client import CatalogClient

log = logging.getLogger(__name__)

VERSION_TOKEN = re.compile(r"(?<![\d.])\d+\.\d+(?:\.\d+)?(?!\.?\d)")
# "forge" must not match inside "neoforge"
LOADER_PATTERNS = {
    ModLoader.NEOFORGE: re.compile(r"neoforge"),
    ModLoader.FORGE: re.compile(r"(?<!neo)forge"),
    ModLoader.FABRIC: re.compile(r"fabric"),
    ModLoader.QUILT: re.compile(r"quilt"),
}
EXCLUDED_ASSET = re.compile(r"-(sources|dev|javadoc)\.jar$", re.IGNORECASE)


def infer_loaders(*names: str) -> List[ModLoader]:
    text = " ".join(names).lower()
    return [loader for loader, pattern in LOADER_PATTERNS.items() if pattern.search(text)]


def infer_game_versions(*names: str) -> List[str]:
    found: List[str] = []
    for name in names:
        for token in VERSION_TOKEN.findall(name):
            if token not in found:
                found.append(token)
    return found


class GitHubClient(CatalogClient):
    """Resolves the newest compatible `.jar` asset of a repository's releases."""

    BASE_URL = "https://api.github.com/"
    PLATFORM = "GitHub"
    RELEASES_PAGE_SIZE = 100

    def __init__(self, user_agent: str, token: str = "", max_connections: int = 10):
        self.token = token
        super().__init__(user_agent, max_connections)

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["Accept"] = "application/vnd.github+json"
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _quota(
        self, headers: Mapping[str, str]
    ) -> tuple[Optional[int], Optional[float]]:
        # GitHub reports the reset as an epoch timestamp
        remaining, reset_epoch = super()._quota(headers)
        if reset_epoch is None:
            return remaining, None
        return remaining, reset_epoch - time.time()

    async def fetch(
        self, identifier: ModIdentifier, filters: list[Filter]
    ) -> Downloadable:
        if not isinstance(identifier, GitHubRepository):
            raise TypeError(f"{self.PLATFORM} cannot resolve {identifier}")

        releases: List[Dict[str, Any]] = []
        page = 1
        while True:
            batch = await self.api_call(
                f"repos/{identifier.owner}/{identifier.repo}/releases",
                per_page=self.RELEASES_PAGE_SIZE,
                page=page,
            )
            batch = batch or []
            releases.extend(batch)
            if len(batch) < self.RELEASES_PAGE_SIZE:
                break
            page += 1

        candidates = [
            candidate
            for release in releases
            if not release.get("draft")
            for candidate in self.release_to_candidates(release)
        ]
        return Downloadable.from_candidate(select_latest(candidates, filters))

    @staticmethod
    def release_to_candidates(release: Dict[str, Any]) -> List[FileCandidate]:
        """One candidate per `.jar` asset of a release."""
        title = release.get("name") or release.get("tag_name") or ""
        channel = ReleaseChannel.BETA if release.get("prerelease") else ReleaseChannel.RELEASE
        published = parse_timestamp(release.get("published_at"))

        candidates = []
        for asset in release.get("assets") or []:
            name = asset.get("name", "")
            if not name.lower().endswith(".jar") or EXCLUDED_ASSET.search(name):
                continue
            candidates.append(
                FileCandidate(
                    filename=name,
                    url=asset.get("browser_download_url", ""),
                    title=title,
                    game_versions=infer_game_versions(name, title),
                    loaders=infer_loaders(name, title),
                    channel=channel,
                    published=published,
                    length=asset.get("size") or 0,
                )
            )
        return candidates
