"""Tests for models/filters.py: filter semantics and latest-file selection."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import TypeAdapter, ValidationError

from modsync.exceptions import NotCompatibleError
from modsync.models.filters import (
    FileCandidate,
    FilenameFilter,
    Filter,
    GameVersionMinor,
    GameVersionStrict,
    ModLoader,
    ModLoaderAny,
    ModLoaderPrefer,
    ReleaseChannel,
    ReleaseChannelFilter,
    TitleFilter,
    effective_filters,
    game_versions,
    mod_loader,
    select_latest,
)
from modsync.models.identifiers import ModrinthProject
from modsync.models.profile import Mod


def candidate(filename, day=1, loaders=(ModLoader.FABRIC,), versions=("1.20.1",), **kw):
    return FileCandidate(
        filename=filename,
        url=f"https://cdn.example.com/{filename}",
        title=kw.pop("title", filename),
        game_versions=list(versions),
        loaders=list(loaders),
        published=datetime(2024, 1, day, tzinfo=timezone.utc),
        **kw,
    )


class TestSelectLatest:
    def test_newest_first(self):
        files = [candidate("old.jar", day=1), candidate("new.jar", day=5)]
        assert select_latest(files, []).filename == "new.jar"

    def test_keeps_platform_order_without_dates(self):
        files = [
            FileCandidate(filename="first.jar", url="u1"),
            FileCandidate(filename="second.jar", url="u2"),
        ]
        assert select_latest(files, []).filename == "first.jar"

    def test_no_files(self):
        with pytest.raises(NotCompatibleError, match="no files"):
            select_latest([], [])

    def test_filter_rejecting_everything(self):
        files = [candidate("a.jar", versions=("1.19.2",))]
        with pytest.raises(NotCompatibleError, match="game version 1.20.1"):
            select_latest(files, [GameVersionStrict(versions=["1.20.1"])])

    def test_filters_apply_in_order(self):
        files = [
            candidate("forge-new.jar", day=9, loaders=(ModLoader.FORGE,)),
            candidate("fabric-old.jar", day=2, versions=("1.20.1",)),
            candidate("fabric-other.jar", day=8, versions=("1.19.4",)),
        ]
        filters = [
            ModLoaderAny(loaders=[ModLoader.FABRIC]),
            GameVersionStrict(versions=["1.20.1"]),
        ]
        assert select_latest(files, filters).filename == "fabric-old.jar"


class TestFilters:
    def test_loader_prefer_uses_first_loader_with_a_match(self):
        files = [
            candidate("fabric.jar", day=9, loaders=(ModLoader.FABRIC,)),
            candidate("quilt.jar", day=1, loaders=(ModLoader.QUILT,)),
        ]
        prefer = ModLoaderPrefer(loaders=[ModLoader.QUILT, ModLoader.FABRIC])
        assert [c.filename for c in prefer.apply(files)] == ["quilt.jar"]

    def test_loader_prefer_falls_back(self):
        files = [candidate("fabric.jar", loaders=(ModLoader.FABRIC,))]
        prefer = ModLoaderPrefer(loaders=[ModLoader.QUILT, ModLoader.FABRIC])
        assert [c.filename for c in prefer.apply(files)] == ["fabric.jar"]

    def test_loader_any(self):
        files = [
            candidate("forge.jar", loaders=(ModLoader.FORGE,)),
            candidate("neo.jar", loaders=(ModLoader.NEOFORGE,)),
        ]
        any_ = ModLoaderAny(loaders=[ModLoader.NEOFORGE, ModLoader.QUILT])
        assert [c.filename for c in any_.apply(files)] == ["neo.jar"]

    def test_game_version_minor(self):
        files = [
            candidate("a.jar", versions=("1.20.4",)),
            candidate("b.jar", versions=("1.21",)),
        ]
        minor = GameVersionMinor(versions=["1.20"])
        assert [c.filename for c in minor.apply(files)] == ["a.jar"]
        assert minor.describe() == "game version 1.20.x"

    def test_release_channel_accepts_more_stable(self):
        files = [
            candidate("r.jar", channel=ReleaseChannel.RELEASE),
            candidate("b.jar", channel=ReleaseChannel.BETA),
            candidate("a.jar", channel=ReleaseChannel.ALPHA),
        ]
        beta = ReleaseChannelFilter(channel=ReleaseChannel.BETA)
        assert [c.filename for c in beta.apply(files)] == ["r.jar", "b.jar"]

    def test_filename_and_title_regex(self):
        files = [
            candidate("mod-fabric-1.0.jar", title="Release 1.0"),
            candidate("mod-forge-1.0.jar", title="Beta 1.0"),
        ]
        assert [c.filename for c in FilenameFilter(pattern="fabric").apply(files)] == [
            "mod-fabric-1.0.jar"
        ]
        assert [c.filename for c in TitleFilter(pattern="^Beta").apply(files)] == [
            "mod-forge-1.0.jar"
        ]

    def test_invalid_regex_is_rejected(self):
        with pytest.raises(ValidationError):
            FilenameFilter(pattern="(")

    def test_discriminated_union_from_json(self):
        adapter = TypeAdapter(list[Filter])
        parsed = adapter.validate_python(
            [
                {"kind": "mod_loader_prefer", "loaders": ["quilt", "fabric"]},
                {"kind": "game_version_strict", "versions": ["1.20.1"]},
                {"kind": "release_channel", "channel": "beta"},
            ]
        )
        assert isinstance(parsed[0], ModLoaderPrefer)
        assert parsed[0].loaders == [ModLoader.QUILT, ModLoader.FABRIC]
        assert isinstance(parsed[1], GameVersionStrict)
        assert parsed[2].channel is ReleaseChannel.BETA


class TestEffectiveFilters:
    profile_filters = [GameVersionStrict(versions=["1.20.1"])]

    def test_profile_then_mod(self):
        own = FilenameFilter(pattern="fabric")
        mod = Mod(name="A", identifier=ModrinthProject("A"), filters=[own])
        assert effective_filters(self.profile_filters, mod) == [*self.profile_filters, own]

    def test_override(self):
        own = FilenameFilter(pattern="fabric")
        mod = Mod(
            name="A",
            identifier=ModrinthProject("A"),
            filters=[own],
            override_filters=True,
        )
        assert effective_filters(self.profile_filters, mod) == [own]


def test_loader_and_versions_helpers():
    filters = [
        GameVersionMinor(versions=["1.20"]),
        ModLoaderPrefer(loaders=[ModLoader.QUILT, ModLoader.FABRIC]),
    ]
    assert mod_loader(filters) is ModLoader.QUILT
    assert game_versions(filters) == ["1.20"]
    assert mod_loader([]) is None
    assert game_versions([]) == []
