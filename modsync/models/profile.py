"""
Pydantic models for profiles and the mods they contain.
"""

from pathlib import Path
from typing import Annotated, Any, Optional

from pydantic import BaseModel, Field, PlainSerializer, PlainValidator, field_validator

from modsync.models.filters import Filter, ModLoader, game_versions, mod_loader
from modsync.models.identifiers import (
    CurseForgeProject,
    GitHubRepository,
    ModIdentifier,
    ModrinthProject,
    PinnedModrinthProject,
    dependency_label,
    parse_identifier,
    same_item,
)


def _coerce_identifier(value: Any) -> ModIdentifier:
    if isinstance(
        value,
        (CurseForgeProject, ModrinthProject, PinnedModrinthProject, GitHubRepository),
    ):
        return value
    if isinstance(value, int):
        return CurseForgeProject(value)
    if isinstance(value, str):
        return parse_identifier(value)
    raise ValueError(f"Cannot interpret {value!r} as a mod identifier")


IdentifierField = Annotated[
    ModIdentifier,
    PlainValidator(_coerce_identifier),
    PlainSerializer(str, return_type=str),
]


class Mod(BaseModel):
    """A mod to resolve: either listed in a profile or discovered as a dependency."""

    name: str
    identifier: IdentifierField
    filters: list[Filter] = Field(default_factory=list)
    override_filters: bool = False

    @classmethod
    def dependency(cls, identifier: ModIdentifier) -> "Mod":
        """A work item for a required dependency; it carries no filters of its own."""
        return cls(name=f"Dependency: {dependency_label(identifier)}", identifier=identifier)


class Profile(BaseModel):
    """A set of mods installed into one output directory."""

    name: str
    output_dir: Path
    filters: list[Filter] = Field(default_factory=list)
    mods: list[Mod] = Field(default_factory=list)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v:
            raise ValueError("Profile name cannot be empty.")
        return v

    @field_validator("output_dir")
    @classmethod
    def validate_output_dir(cls, v: Path) -> Path:
        return v.expanduser()

    def loader(self) -> Optional[ModLoader]:
        return mod_loader(self.filters)

    def game_versions(self) -> list[str]:
        return game_versions(self.filters)

    def find_mod(self, name_or_id: str) -> Optional[Mod]:
        """Finds a mod by case-insensitive name or by identifier text."""
        needle = name_or_id.strip().lower()
        for mod in self.mods:
            if mod.name.lower() == needle or str(mod.identifier).lower() == needle:
                return mod
        return None

    def add_mod(self, mod: Mod) -> None:
        """
        Appends a mod to the profile.

        Raises:
            ValueError: If the project or the name is already in the profile.
        """
        for existing in self.mods:
            if same_item(existing.identifier, mod.identifier):
                raise ValueError(
                    f"'{existing.name}' ({existing.identifier}) is already in the profile."
                )
            if existing.name.lower() == mod.name.lower():
                raise ValueError(f"A mod named '{mod.name}' is already in the profile.")
        self.mods = [*self.mods, mod]

    def remove_mod(self, name_or_id: str) -> Mod:
        """
        Removes a mod by name or identifier.

        Raises:
            ValueError: If no mod matches.
        """
        mod = self.find_mod(name_or_id)
        if mod is None:
            raise ValueError(f"No mod named '{name_or_id}' in profile '{self.name}'.")
        self.mods = [m for m in self.mods if m is not mod]
        return mod
