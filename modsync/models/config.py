"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from modsync import __version__
from modsync.models.profile import Profile

DEFAULT_USER_AGENT = f"modsync/{__version__} (+https://pypi.org/project/modsync/)"
DEFAULT_PARALLEL_NETWORK = 10


class SyncConfig(BaseModel):
    """A validated configuration model for the application."""

    # Profiles
    active_profile: int = 0
    profiles: list[Profile] = Field(default_factory=list)

    # Network Settings
    max_concurrent_fetches: int = DEFAULT_PARALLEL_NETWORK
    max_concurrent_downloads: int = 8
    user_agent: str = DEFAULT_USER_AGENT

    # Platform Credentials
    curseforge_api_key: str = Field(default="", repr=False)
    github_token: str = Field(default="", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("max_concurrent_fetches")
    @classmethod
    def validate_fetches(cls, v: int) -> int:
        """Ensures a reasonable number of parallel metadata requests."""
        if v < 1 or v > 64:
            raise ValueError("Parallel network requests must be between 1 and 64.")
        return v

    @field_validator("max_concurrent_downloads")
    @classmethod
    def validate_downloads(cls, v: int) -> int:
        """Ensures a reasonable number of download workers."""
        if v < 1 or v > 32:
            raise ValueError("Max downloads must be between 1 and 32.")
        return v

    @model_validator(mode="after")
    def validate_profiles(self) -> "SyncConfig":
        """Checks that profile names are unique and the active index is valid."""
        names = [p.name.lower() for p in self.profiles]
        if len(names) != len(set(names)):
            raise ValueError("Profile names must be unique.")
        if self.profiles and not 0 <= self.active_profile < len(self.profiles):
            raise ValueError(
                f"Active profile index {self.active_profile} is out of range."
            )
        return self

    def get_profile(self, name: Optional[str] = None) -> Optional[Profile]:
        """Returns the named profile, or the active one when no name is given."""
        if name is None:
            if not self.profiles:
                return None
            return self.profiles[self.active_profile]
        for profile in self.profiles:
            if profile.name.lower() == name.lower():
                return profile
        return None
