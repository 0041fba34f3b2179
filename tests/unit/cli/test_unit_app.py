"""Smoke tests for the typer CLI."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from fakes import FakePlatform, make_downloadable
from modsync import __version__
from modsync.cli import app as app_module
from modsync.cli.app import app
from modsync.exceptions import NotCompatibleError
from modsync.models.identifiers import CurseForgeProject, ModrinthProject

runner = CliRunner()


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    monkeypatch.delenv("MODSYNC_CURSEFORGE_API_KEY", raising=False)
    monkeypatch.delenv("MODSYNC_GITHUB_TOKEN", raising=False)


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config.json"


@pytest.fixture
def cli(config_path):
    def invoke(*args):
        return runner.invoke(app, ["--config", str(config_path), *args])

    return invoke


@pytest.fixture
def profile(cli, tmp_path):
    mods_dir = tmp_path / "mods"
    result = cli(
        "profile", "create", "main",
        "--output-dir", str(mods_dir),
        "--loader", "fabric",
        "--game-version", "1.20.1",
    )
    assert result.exit_code == 0, result.output
    return mods_dir


def saved(config_path) -> dict:
    return json.loads(config_path.read_text())


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


class TestProfiles:
    def test_create(self, profile, config_path):
        data = saved(config_path)
        assert data["active_profile"] == 0
        created = data["profiles"][0]
        assert created["name"] == "main"
        assert created["output_dir"] == str(profile)
        assert [f["kind"] for f in created["filters"]] == [
            "mod_loader_prefer",
            "game_version_strict",
        ]

    def test_quilt_profile_accepts_fabric_mods(self, cli, config_path, tmp_path):
        result = cli("profile", "create", "q", "--output-dir", str(tmp_path), "--loader", "quilt")
        assert result.exit_code == 0, result.output
        loaders = saved(config_path)["profiles"][0]["filters"][0]["loaders"]
        assert loaders == ["quilt", "fabric"]

    def test_duplicate_name(self, cli, profile, tmp_path):
        result = cli("profile", "create", "MAIN", "--output-dir", str(tmp_path))
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_switch(self, cli, profile, config_path, tmp_path):
        cli("profile", "create", "second", "--output-dir", str(tmp_path / "other"))
        assert saved(config_path)["active_profile"] == 1

        result = cli("profile", "switch", "main")
        assert result.exit_code == 0, result.output
        assert saved(config_path)["active_profile"] == 0

    def test_switch_unknown(self, cli, profile):
        result = cli("profile", "switch", "nope")
        assert result.exit_code == 1
        assert "no profile named 'nope'" in result.output

    def test_list_profiles(self, cli, profile):
        result = cli("profile", "list")
        assert result.exit_code == 0
        assert "main" in result.output


class TestMods:
    def test_add_and_list(self, cli, profile, config_path):
        result = cli("add", "modrinth:AANobbMI", "--name", "Sodium")
        assert result.exit_code == 0, result.output
        result = cli("add", "238222")
        assert result.exit_code == 0, result.output

        mods = saved(config_path)["profiles"][0]["mods"]
        assert [(m["name"], m["identifier"]) for m in mods] == [
            ("Sodium", "modrinth:AANobbMI"),
            ("238222", "curseforge:238222"),
        ]

        result = cli("list")
        assert result.exit_code == 0
        assert "Sodium" in result.output

    def test_add_override_filters(self, cli, profile, config_path):
        cli("add", "github:owner/repo", "--override-filters")
        mod = saved(config_path)["profiles"][0]["mods"][0]
        assert mod["name"] == "repo"
        assert mod["override_filters"] is True

    def test_add_duplicate_project(self, cli, profile):
        cli("add", "modrinth:AANobbMI", "--name", "Sodium")
        result = cli("add", "modrinth:AANobbMI@v1", "--name", "Sodium pinned")
        assert result.exit_code == 1
        assert "already in the profile" in result.output

    def test_add_invalid_identifier(self, cli, profile):
        result = cli("add", "sodium")
        assert result.exit_code == 1
        assert "Unrecognised mod identifier" in result.output

    def test_add_without_profile(self, cli):
        result = cli("add", "modrinth:AANobbMI")
        assert result.exit_code == 1
        assert "no profiles" in result.output

    def test_remove(self, cli, profile, config_path):
        cli("add", "modrinth:AANobbMI", "--name", "Sodium")
        cli("add", "cf:238222", "--name", "JEI")

        result = cli("remove", "sodium", "missing")

        assert result.exit_code == 1
        mods = saved(config_path)["profiles"][0]["mods"]
        assert [m["name"] for m in mods] == ["JEI"]


class FakeRegistry:
    def __init__(self, platform):
        self.platform = platform

    async def fetch(self, identifier, filters):
        return await self.platform.fetch(identifier, filters)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


@pytest.fixture
def platform(monkeypatch):
    platform = FakePlatform()

    class Registry:
        @staticmethod
        def from_config(config):
            return FakeRegistry(platform)

    async def fake_download(output_dir, to_download, to_install, **kwargs):
        output_dir.mkdir(parents=True, exist_ok=True)
        for item in to_download:
            (output_dir / item.output).write_bytes(b"jar")

    monkeypatch.setattr(app_module, "PlatformRegistry", Registry)
    monkeypatch.setattr("modsync.core.upgrade.download", fake_download)
    return platform


class TestUpgrade:
    def test_upgrade(self, cli, profile, platform):
        cli("add", "modrinth:AAAA", "--name", "Mod A")
        platform.results = {
            ModrinthProject("AAAA"): make_downloadable("a.jar", CurseForgeProject(7)),
            CurseForgeProject(7): make_downloadable("dep.jar"),
        }

        result = cli("upgrade")

        assert result.exit_code == 0, result.output
        assert (profile / "a.jar").is_file()
        assert (profile / "dep.jar").is_file()
        assert "Upgrade Complete" in result.output

    def test_upgrade_with_failures_exits_non_zero(self, cli, profile, platform):
        cli("add", "modrinth:AAAA", "--name", "Mod A")
        cli("add", "modrinth:BBBB", "--name", "Mod B")
        platform.results = {
            ModrinthProject("AAAA"): make_downloadable("a.jar"),
            ModrinthProject("BBBB"): NotCompatibleError("No compatible file"),
        }

        result = cli("upgrade")

        assert result.exit_code == 1
        assert (profile / "a.jar").is_file()
        assert "UpgradeFailedError" in result.output

    def test_upgrade_without_profiles(self, cli, platform):
        result = cli("upgrade")
        assert result.exit_code == 1
        assert "ConfigurationError" in result.output

    def test_parallel_network_is_validated(self, cli, profile, platform):
        result = cli("upgrade", "--parallel-network", "0")
        assert result.exit_code == 1
        assert "between 1 and 64" in result.output
