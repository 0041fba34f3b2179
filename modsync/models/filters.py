"""
Compatibility filters and the selection of the latest file that passes them.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from modsync.exceptions import NotCompatibleError
from modsync.models.identifiers import ModIdentifier

if TYPE_CHECKING:
    from modsync.models.profile import Mod


class ModLoader(str, Enum):
    FORGE = "forge"
    NEOFORGE = "neoforge"
    FABRIC = "fabric"
    QUILT = "quilt"


class ReleaseChannel(str, Enum):
    RELEASE = "release"
    BETA = "beta"
    ALPHA = "alpha"

    @property
    def stability(self) -> int:
        return ("release", "beta", "alpha").index(self.value)


@dataclass
class FileCandidate:
    """One downloadable file offered by a platform, normalized for filtering."""

    filename: str
    url: str
    title: str = ""
    game_versions: list[str] = field(default_factory=list)
    loaders: list[ModLoader] = field(default_factory=list)
    channel: ReleaseChannel = ReleaseChannel.RELEASE
    published: Optional[datetime] = None
    length: int = 0
    sha1: Optional[str] = None
    dependencies: list[ModIdentifier] = field(default_factory=list)


def _minor(version: str) -> str:
    return ".".join(version.split(".")[:2])


class ModLoaderPrefer(BaseModel):
    """Use the first loader in the list that has any compatible file."""

    kind: Literal["mod_loader_prefer"] = "mod_loader_prefer"
    loaders: list[ModLoader]

    def apply(self, candidates: list[FileCandidate]) -> list[FileCandidate]:
        for loader in self.loaders:
            if matched := [c for c in candidates if loader in c.loaders]:
                return matched
        return []

    def describe(self) -> str:
        return "mod loader " + " > ".join(loader.value for loader in self.loaders)


class ModLoaderAny(BaseModel):
    kind: Literal["mod_loader_any"] = "mod_loader_any"
    loaders: list[ModLoader]

    def apply(self, candidates: list[FileCandidate]) -> list[FileCandidate]:
        return [c for c in candidates if set(self.loaders) & set(c.loaders)]

    def describe(self) -> str:
        return "mod loader " + " | ".join(loader.value for loader in self.loaders)


class GameVersionStrict(BaseModel):
    kind: Literal["game_version_strict"] = "game_version_strict"
    versions: list[str]

    def apply(self, candidates: list[FileCandidate]) -> list[FileCandidate]:
        return [c for c in candidates if set(self.versions) & set(c.game_versions)]

    def describe(self) -> str:
        return "game version " + ", ".join(self.versions)


class GameVersionMinor(BaseModel):
    """Accept any patch release of the given minor game versions."""

    kind: Literal["game_version_minor"] = "game_version_minor"
    versions: list[str]

    def apply(self, candidates: list[FileCandidate]) -> list[FileCandidate]:
        wanted = {_minor(v) for v in self.versions}
        return [
            c for c in candidates if wanted & {_minor(v) for v in c.game_versions}
        ]

    def describe(self) -> str:
        return "game version " + ", ".join(f"{_minor(v)}.x" for v in self.versions)


class ReleaseChannelFilter(BaseModel):
    """Accept files at least as stable as the given channel."""

    kind: Literal["release_channel"] = "release_channel"
    channel: ReleaseChannel

    def apply(self, candidates: list[FileCandidate]) -> list[FileCandidate]:
        return [c for c in candidates if c.channel.stability <= self.channel.stability]

    def describe(self) -> str:
        return f"release channel {self.channel.value}"


class _RegexFilter(BaseModel):
    pattern: str

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid regular expression '{v}': {e}") from e
        return v


class FilenameFilter(_RegexFilter):
    kind: Literal["filename"] = "filename"

    def apply(self, candidates: list[FileCandidate]) -> list[FileCandidate]:
        return [c for c in candidates if re.search(self.pattern, c.filename)]

    def describe(self) -> str:
        return f"filename /{self.pattern}/"


class TitleFilter(_RegexFilter):
    kind: Literal["title"] = "title"

    def apply(self, candidates: list[FileCandidate]) -> list[FileCandidate]:
        return [c for c in candidates if re.search(self.pattern, c.title)]

    def describe(self) -> str:
        return f"title /{self.pattern}/"


Filter = Annotated[
    Union[
        ModLoaderPrefer,
        ModLoaderAny,
        GameVersionStrict,
        GameVersionMinor,
        ReleaseChannelFilter,
        FilenameFilter,
        TitleFilter,
    ],
    Field(discriminator="kind"),
]


def effective_filters(profile_filters: list[Filter], mod: "Mod") -> list[Filter]:
    """The filters a mod is resolved with: its own, on top of the profile's unless overridden."""
    if mod.override_filters:
        return list(mod.filters)
    return [*profile_filters, *mod.filters]


def mod_loader(filters: list[Filter]) -> Optional[ModLoader]:
    """The first mod loader named by any loader filter."""
    for f in filters:
        if isinstance(f, (ModLoaderPrefer, ModLoaderAny)) and f.loaders:
            return f.loaders[0]
    return None


def game_versions(filters: list[Filter]) -> list[str]:
    for f in filters:
        if isinstance(f, (GameVersionStrict, GameVersionMinor)):
            return list(f.versions)
    return []


def select_latest(
    candidates: list[FileCandidate], filters: list[Filter]
) -> FileCandidate:
    """
    Picks the newest candidate that passes every filter.

    Candidates with a publish date are ordered newest first; otherwise the
    platform's order is kept.

    Raises:
        NotCompatibleError: If no candidate exists or a filter rejects them all.
    """
    if not candidates:
        raise NotCompatibleError("The project has no files")

    remaining = list(candidates)
    if all(c.published for c in remaining):
        remaining.sort(key=lambda c: c.published, reverse=True)

    for f in filters:
        remaining = f.apply(remaining)
        if not remaining:
            raise NotCompatibleError(f"No compatible file for {f.describe()}")
    return remaining[0]
