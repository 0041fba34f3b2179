"""Tests for core/upgrade.py: resolve, reconcile and download a whole profile."""

from __future__ import annotations

from pathlib import Path

import pytest

from fakes import FakePlatform, make_downloadable
from modsync.core.upgrade import UpgradeManager
from modsync.exceptions import (
    NotFoundError,
    RateLimitedError,
    ResolutionAbortedError,
    UpgradeFailedError,
)
from modsync.models.config import SyncConfig
from modsync.models.filters import ModLoader, ModLoaderPrefer
from modsync.models.identifiers import CurseForgeProject, ModrinthProject
from modsync.models.profile import Mod, Profile

A = ModrinthProject("AAAA")
B = CurseForgeProject(2222)
C = ModrinthProject("CCCC")


class RecordingDownload:
    """Stands in for the executor, writing each file it is asked for."""

    def __init__(self):
        self.calls = []

    async def __call__(self, output_dir, to_download, to_install, **kwargs):
        self.calls.append(
            ([d.filename for d in to_download], [e.filename for e in to_install], kwargs)
        )
        for item in to_download:
            (output_dir / item.output).write_bytes(item.source_url.encode())
        for entry in to_install:
            (output_dir / entry.filename).write_bytes(entry.path.read_bytes())


@pytest.fixture
def recorder(monkeypatch) -> RecordingDownload:
    recorder = RecordingDownload()
    monkeypatch.setattr("modsync.core.upgrade.download", recorder)
    return recorder


def make_profile(output_dir: Path, *mods, loader=ModLoader.FABRIC) -> Profile:
    return Profile(
        name="main",
        output_dir=output_dir,
        filters=[ModLoaderPrefer(loaders=[loader])],
        mods=[Mod(name=name, identifier=identifier) for name, identifier in mods],
    )


def manager(platform, console, **config) -> UpgradeManager:
    return UpgradeManager(SyncConfig(**config), platform, console, quiet=True)


class TestUpgrade:
    @pytest.mark.asyncio
    async def test_end_to_end(self, output_dir, console, recorder):
        (output_dir / "stale.jar").write_bytes(b"stale")
        platform = FakePlatform(
            {
                A: make_downloadable("a.jar", C),
                B: make_downloadable("b.jar"),
                C: make_downloadable("c.jar"),
            }
        )
        profile = make_profile(output_dir, ("Mod A", A), ("Mod B", B))

        summary = await manager(platform, console).upgrade(profile)

        assert summary.resolved == 3
        assert summary.downloaded == 3
        assert summary.quarantined == ["stale.jar"]
        assert summary.had_errors is False
        assert (output_dir / ".old" / "stale.jar").read_bytes() == b"stale"
        assert not (output_dir / "stale.jar").exists()
        assert sorted(recorder.calls[0][0]) == ["a.jar", "b.jar", "c.jar"]
        for name in ("a.jar", "b.jar", "c.jar"):
            assert (output_dir / name).is_file()
        assert "Downloading Mod Files" in console.file.getvalue()

    @pytest.mark.asyncio
    async def test_second_run_is_up_to_date(self, output_dir, console, recorder):
        platform = FakePlatform({A: make_downloadable("a.jar")})
        profile = make_profile(output_dir, ("Mod A", A))
        upgrader = manager(platform, console)

        await upgrader.upgrade(profile)
        summary = await upgrader.upgrade(profile)

        assert len(recorder.calls) == 1
        assert summary.downloaded == 0
        assert "All up to date!" in console.file.getvalue()

    @pytest.mark.asyncio
    async def test_user_installs_are_copied(self, output_dir, console, recorder):
        user = output_dir / "user"
        user.mkdir()
        (user / "manual.jar").write_bytes(b"manual")
        platform = FakePlatform({A: make_downloadable("a.jar")})

        summary = await manager(platform, console).upgrade(
            make_profile(output_dir, ("Mod A", A))
        )

        assert summary.installed == 1
        assert recorder.calls[0][1] == ["manual.jar"]
        assert (output_dir / "manual.jar").read_bytes() == b"manual"

    @pytest.mark.asyncio
    async def test_quilt_skips_user_installs(self, output_dir, console, recorder):
        user = output_dir / "user"
        user.mkdir()
        (user / "manual.jar").write_bytes(b"manual")
        platform = FakePlatform({A: make_downloadable("a.jar")})

        await manager(platform, console).upgrade(
            make_profile(output_dir, ("Mod A", A), loader=ModLoader.QUILT)
        )

        assert recorder.calls[0][1] == []

    @pytest.mark.asyncio
    async def test_downloads_happen_before_failure_is_reported(
        self, output_dir, console, recorder
    ):
        platform = FakePlatform(
            {A: make_downloadable("a.jar"), B: NotFoundError("mods/2222/files was not found")}
        )
        profile = make_profile(output_dir, ("Mod A", A), ("Mod B", B))

        with pytest.raises(UpgradeFailedError) as excinfo:
            await manager(platform, console).upgrade(profile)

        assert recorder.calls[0][0] == ["a.jar"]
        assert (output_dir / "a.jar").is_file()
        assert excinfo.value.summary.downloaded == 1
        assert excinfo.value.summary.had_errors is True

    @pytest.mark.asyncio
    async def test_rate_limit_downloads_nothing(self, output_dir, console, recorder):
        (output_dir / "stale.jar").write_bytes(b"stale")
        platform = FakePlatform({A: RateLimitedError("Modrinth rate limit exceeded")})

        with pytest.raises(ResolutionAbortedError):
            await manager(platform, console).upgrade(
                make_profile(output_dir, ("Mod A", A))
            )

        assert recorder.calls == []
        assert (output_dir / "stale.jar").exists()

    @pytest.mark.asyncio
    async def test_download_settings_come_from_config(self, output_dir, console, recorder):
        platform = FakePlatform({A: make_downloadable("a.jar")})
        await manager(
            platform, console, max_concurrent_downloads=3, user_agent="test-agent/1.0"
        ).upgrade(make_profile(output_dir, ("Mod A", A)))

        kwargs = recorder.calls[0][2]
        assert kwargs["max_concurrent"] == 3
        assert kwargs["user_agent"] == "test-agent/1.0"
