"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from modsync import __version__
from modsync.api import PlatformRegistry
from modsync.core.upgrade import UpgradeManager
from modsync.exceptions import ConfigurationError, ModSyncError, UpgradeFailedError
from modsync.models.config import SyncConfig
from modsync.models.filters import GameVersionStrict, ModLoader, ModLoaderPrefer
from modsync.models.identifiers import GitHubRepository, ModIdentifier, parse_identifier
from modsync.models.profile import Mod, Profile
from modsync.storage.config_manager import ConfigManager, get_config_dir

from .formatters import (
    format_error_with_suggestions,
    print_profile_table,
    print_profiles_table,
    print_summary_panel,
)

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("modsync")

app = typer.Typer(
    name="modsync",
    help=(
        "Keeps a folder of Minecraft mods up to date from Modrinth, CurseForge and"
        " GitHub. Use 'modsync <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)
profile_app = typer.Typer(help="Create, list and switch between profiles.")
app.add_typer(profile_app, name="profile")

CONFIG_FILE = get_config_dir() / "config.json"


def _config_manager(ctx: typer.Context) -> ConfigManager:
    return ctx.find_root().obj or ConfigManager(CONFIG_FILE)


def _fail(error: Exception) -> typer.Exit:
    console.print(format_error_with_suggestions(error))
    return typer.Exit(code=1)


def _select_profile(config: SyncConfig, name: Optional[str]) -> Profile:
    profile = config.get_profile(name)
    if profile is None:
        if name:
            raise ConfigurationError(f"There is no profile named '{name}'.")
        raise ConfigurationError("There are no profiles configured.")
    return profile


def _default_name(identifier: ModIdentifier) -> str:
    if isinstance(identifier, GitHubRepository):
        return identifier.repo
    return str(identifier.project_id)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity.",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        help=f"Use a different configuration file (default {CONFIG_FILE}).",
    ),
):
    """Minecraft mod profile synchronizer"""
    if version:
        console.print(f"[bold]modsync[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    if verbose >= 1:
        logging.getLogger("modsync").setLevel("DEBUG")

    ctx.obj = ConfigManager(config_path.expanduser() if config_path else CONFIG_FILE)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def upgrade(
    ctx: typer.Context,
    profile_name: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Upgrade this profile instead of the active one."
    ),
    parallel_network: Optional[int] = typer.Option(
        None,
        "--parallel-network",
        help="Number of simultaneous metadata requests (default 10).",
    ),
):
    """Download the latest compatible version of every mod in a profile."""
    cli_options = {
        key: value
        for key, value in {"max_concurrent_fetches": parallel_network}.items()
        if value is not None
    }
    config_manager = _config_manager(ctx)

    async def _upgrade_async():
        config = config_manager.load_config(cli_options)
        profile = _select_profile(config, profile_name)
        console.print(
            f"[bold cyan]Upgrading profile '{escape(profile.name)}'[/bold cyan] "
            f"[dim]({len(profile.mods)} mods)[/dim]\n"
        )
        async with PlatformRegistry.from_config(config) as platforms:
            manager = UpgradeManager(config, platforms, console)
            return await manager.upgrade(profile)

    start_time = time.monotonic()
    try:
        summary = asyncio.run(_upgrade_async())
    except UpgradeFailedError as e:
        if e.summary is not None:
            print_summary_panel(e.summary, time.monotonic() - start_time)
        raise _fail(e) from e
    except ModSyncError as e:
        raise _fail(e) from e
    print_summary_panel(summary, time.monotonic() - start_time)


@app.command(name="list")
def list_command(
    ctx: typer.Context,
    profile_name: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Show this profile instead of the active one."
    ),
):
    """List the mods of a profile."""
    try:
        config = _config_manager(ctx).load_config()
        print_profile_table(_select_profile(config, profile_name))
    except ModSyncError as e:
        raise _fail(e) from e


@app.command()
def add(
    ctx: typer.Context,
    identifier: str = typer.Argument(
        ...,
        help="curseforge:<id>, modrinth:<id>[@<version>] or github:<owner>/<repo>.",
    ),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Display name."),
    override_filters: bool = typer.Option(
        False,
        "--override-filters",
        help="Ignore the profile's filters when resolving this mod.",
    ),
):
    """Add a mod to the active profile."""
    config_manager = _config_manager(ctx)
    try:
        parsed = parse_identifier(identifier)
    except ValueError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    try:
        config = config_manager.load_config()
        profile = _select_profile(config, None)
        mod = Mod(
            name=name or _default_name(parsed),
            identifier=parsed,
            override_filters=override_filters,
        )
        try:
            profile.add_mod(mod)
        except ValueError as e:
            console.print(f"[red]✗ {escape(str(e))}[/red]")
            raise typer.Exit(code=1) from e
        config_manager.save_config(config)
    except ModSyncError as e:
        raise _fail(e) from e
    console.print(
        f"[green]✓[/green] Added [cyan]{escape(mod.name)}[/cyan] "
        f"[dim]({escape(str(parsed))})[/dim] to '{escape(profile.name)}'"
    )


@app.command()
def remove(
    ctx: typer.Context,
    names: list[str] = typer.Argument(  # noqa: B008
        ..., help="Names or identifiers of the mods to remove."
    ),
):
    """Remove mods from the active profile."""
    config_manager = _config_manager(ctx)
    missing = []
    try:
        config = config_manager.load_config()
        profile = _select_profile(config, None)
        for name in names:
            try:
                mod = profile.remove_mod(name)
            except ValueError as e:
                missing.append(name)
                console.print(f"[red]✗ {escape(str(e))}[/red]")
                continue
            console.print(f"[green]✓[/green] Removed [cyan]{escape(mod.name)}[/cyan]")
        if len(missing) < len(names):
            config_manager.save_config(config)
    except ModSyncError as e:
        raise _fail(e) from e
    if missing:
        raise typer.Exit(code=1)


@profile_app.command(name="create")
def profile_create(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the new profile."),
    output_dir: Path = typer.Option(  # noqa: B008
        ..., "--output-dir", "-o", help="The mods folder to keep in sync."
    ),
    loader: Optional[ModLoader] = typer.Option(
        None, "--loader", "-l", help="The mod loader the profile runs on."
    ),
    game_versions: Optional[list[str]] = typer.Option(  # noqa: B008
        None, "--game-version", "-g", help="Game version to target (repeatable)."
    ),
):
    """Create a profile and make it the active one."""
    config_manager = _config_manager(ctx)
    filters = []
    if loader == ModLoader.QUILT:
        # Quilt can load Fabric mods
        filters.append(ModLoaderPrefer(loaders=[ModLoader.QUILT, ModLoader.FABRIC]))
    elif loader is not None:
        filters.append(ModLoaderPrefer(loaders=[loader]))
    if game_versions:
        filters.append(GameVersionStrict(versions=game_versions))

    try:
        config = config_manager.load_config()
        if config.get_profile(name) is not None:
            raise ConfigurationError(f"A profile named '{name}' already exists.")
        profile = Profile(name=name, output_dir=output_dir, filters=filters)
        config.profiles = [*config.profiles, profile]
        config.active_profile = len(config.profiles) - 1
        config_manager.save_config(config)
    except ModSyncError as e:
        raise _fail(e) from e
    console.print(
        f"[green]✓[/green] Created profile [cyan]{escape(profile.name)}[/cyan] "
        f"[dim]→ {escape(str(profile.output_dir))}[/dim]"
    )


@profile_app.command(name="switch")
def profile_switch(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the profile to activate."),
):
    """Make another profile the active one."""
    config_manager = _config_manager(ctx)
    try:
        config = config_manager.load_config()
        profile = _select_profile(config, name)
        config.active_profile = config.profiles.index(profile)
        config_manager.save_config(config)
    except ModSyncError as e:
        raise _fail(e) from e
    console.print(f"[green]✓[/green] Switched to [cyan]{escape(profile.name)}[/cyan]")


@profile_app.command(name="list")
def profile_list(ctx: typer.Context):
    """List every profile."""
    config_manager = _config_manager(ctx)
    try:
        config = config_manager.load_config()
    except ModSyncError as e:
        raise _fail(e) from e
    print_profiles_table(config, config_manager.config_file_path)
