"""
Results of resolution: downloadable files and the outcome of a resolution run.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pathvalidate import sanitize_filename

from modsync.models.filters import FileCandidate
from modsync.models.identifiers import ModIdentifier


@dataclass
class Downloadable:
    """A resolved file ready to be fetched."""

    filename: str
    source_url: str
    dependencies: list[ModIdentifier] = field(default_factory=list)
    output: Optional[Path] = None
    length: int = 0
    sha1: Optional[str] = None

    @classmethod
    def from_candidate(cls, candidate: FileCandidate) -> "Downloadable":
        """Builds a downloadable from the file a platform selected."""
        return cls(
            filename=sanitize_filename(candidate.filename, platform="universal"),
            source_url=candidate.url,
            dependencies=list(candidate.dependencies),
            length=candidate.length,
            sha1=candidate.sha1,
        )


@dataclass
class InstallEntry:
    """A manually placed file from the `user` folder to copy into the output."""

    filename: str
    path: Path


@dataclass
class ResolutionOutcome:
    downloadables: list[Downloadable] = field(default_factory=list)
    had_errors: bool = False
    warnings: list[str] = field(default_factory=list)


@dataclass
class UpgradeSummary:
    """Counts reported at the end of an upgrade."""

    resolved: int = 0
    downloaded: int = 0
    installed: int = 0
    quarantined: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    had_errors: bool = False
