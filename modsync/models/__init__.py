"""
Data Models Layer.

This package contains the Pydantic models and dataclasses that define the core
data structures used throughout the application: identifiers, filters,
profiles, configuration and resolution results.
"""

from .config import SyncConfig
from .downloadable import Downloadable, InstallEntry, ResolutionOutcome, UpgradeSummary
from .profile import Mod, Profile

__all__ = [
    "Downloadable",
    "InstallEntry",
    "Mod",
    "Profile",
    "ResolutionOutcome",
    "SyncConfig",
    "UpgradeSummary",
]
