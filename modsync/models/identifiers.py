"""
Identifiers naming a mod on one of the supported platforms, and the rules
for deciding when two identifiers refer to the same underlying project.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Union


@dataclass(frozen=True)
class CurseForgeProject:
    """Latest compatible file of a CurseForge project."""

    project_id: int

    def __str__(self) -> str:
        return f"curseforge:{self.project_id}"


@dataclass(frozen=True)
class ModrinthProject:
    """Latest compatible version of a Modrinth project."""

    project_id: str

    def __str__(self) -> str:
        return f"modrinth:{self.project_id}"


@dataclass(frozen=True)
class PinnedModrinthProject:
    """An exact version of a Modrinth project."""

    project_id: str
    version_id: str

    def __str__(self) -> str:
        return f"modrinth:{self.project_id}@{self.version_id}"


@dataclass(frozen=True)
class GitHubRepository:
    """Latest release of a GitHub repository."""

    owner: str
    repo: str

    def __str__(self) -> str:
        return f"github:{self.owner}/{self.repo}"


ModIdentifier = Union[
    CurseForgeProject, ModrinthProject, PinnedModrinthProject, GitHubRepository
]

_PREFIX_PATTERN = re.compile(r"^(?P<platform>[a-z]+):(?P<value>.+)$", re.IGNORECASE)
_REPO_PATTERN = re.compile(r"^(?P<owner>[\w.-]+)/(?P<repo>[\w.-]+)$")


def _modrinth_project(identifier: ModIdentifier) -> Optional[str]:
    if isinstance(identifier, (ModrinthProject, PinnedModrinthProject)):
        return identifier.project_id
    return None


def same_item(a: ModIdentifier, b: ModIdentifier) -> bool:
    """
    Checks whether two identifiers name the same project.

    Modrinth references match on project ID regardless of whether either of
    them is pinned to a version. Every other pair must be structurally equal.
    """
    if a == b:
        return True
    project_a = _modrinth_project(a)
    return project_a is not None and project_a == _modrinth_project(b)


def find_clash(
    identifier: ModIdentifier, ledger: Iterable[ModIdentifier]
) -> Optional[ModIdentifier]:
    """
    Finds an already processed reference to the same Modrinth project that asks
    for a different version.

    Returns the first such reference, pinned or not. Identifiers of other
    platforms never clash.
    """
    project = _modrinth_project(identifier)
    if project is None:
        return None
    for seen in ledger:
        if seen != identifier and _modrinth_project(seen) == project:
            return seen
    return None


def version_label(identifier: ModIdentifier) -> str:
    """The version a Modrinth reference asks for, 'latest' when unpinned."""
    if isinstance(identifier, PinnedModrinthProject):
        return identifier.version_id
    return "latest"


def dependency_label(identifier: ModIdentifier) -> str:
    """The ID shown in the synthesized name of a discovered dependency."""
    if isinstance(identifier, CurseForgeProject):
        return str(identifier.project_id)
    if isinstance(identifier, ModrinthProject):
        return identifier.project_id
    if isinstance(identifier, PinnedModrinthProject):
        return identifier.version_id
    return f"{identifier.owner}/{identifier.repo}"


def parse_identifier(text: str) -> ModIdentifier:
    """
    Parses the textual form of an identifier.

    Accepted forms:
        curseforge:238222 (or a bare number)
        modrinth:AANobbMI
        modrinth:AANobbMI@xk8ZBxAu
        github:owner/repo (or a bare owner/repo)

    Raises:
        ValueError: If the text is not a recognised identifier.
    """
    text = text.strip()
    if text.isdigit():
        return CurseForgeProject(int(text))
    if match := _REPO_PATTERN.match(text):
        return GitHubRepository(match.group("owner"), match.group("repo"))

    match = _PREFIX_PATTERN.match(text)
    if not match:
        raise ValueError(f"Unrecognised mod identifier: '{text}'")

    platform = match.group("platform").lower()
    value = match.group("value").strip()

    if platform in ("curseforge", "cf"):
        if not value.isdigit():
            raise ValueError(f"CurseForge project IDs are numeric, got '{value}'")
        return CurseForgeProject(int(value))

    if platform in ("modrinth", "mr"):
        project_id, _, version_id = value.partition("@")
        if not project_id:
            raise ValueError(f"Missing Modrinth project ID in '{text}'")
        if version_id:
            return PinnedModrinthProject(project_id, version_id)
        return ModrinthProject(project_id)

    if platform in ("github", "gh"):
        if repo_match := _REPO_PATTERN.match(value):
            return GitHubRepository(repo_match.group("owner"), repo_match.group("repo"))
        raise ValueError(f"GitHub identifiers look like 'owner/repo', got '{value}'")

    raise ValueError(f"Unknown platform '{platform}' in identifier '{text}'")
