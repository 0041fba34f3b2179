"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from modsync.models.config import SyncConfig
from modsync.models.downloadable import UpgradeSummary
from modsync.models.profile import Profile
from modsync.utils.formatting import format_duration


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "RateLimitedError": [
            "• A platform's rate limit was exhausted; wait a few minutes and retry.",
            "• Lower `--parallel-network` to spread requests out.",
            "• Set MODSYNC_GITHUB_TOKEN to raise the GitHub limit.",
        ],
        "ResolutionAbortedError": [
            "• Resolution stopped early and nothing was downloaded.",
            "• Wait for the rate limit to reset, then run `modsync upgrade` again.",
            "• Lower `--parallel-network` to spread requests out.",
        ],
        "UpgradeFailedError": [
            "• The files of every other mod were downloaded.",
            "• Check the crossed-out mods above for the reason.",
            "• Adjust the profile's filters or set `override_filters` on the mod.",
        ],
        "ConfigurationError": [
            "• Check the configuration file for typos or invalid values.",
            "• Create a profile with `modsync profile create`.",
            "• CurseForge needs an API key in MODSYNC_CURSEFORGE_API_KEY.",
        ],
        "TransportError": [
            "• A network connection issue occurred.",
            "• The platform might be temporarily unavailable.",
            "• Please try again in a few minutes.",
        ],
        "FileIntegrityError": [
            "• A downloaded file did not match its published checksum.",
            "• Run `modsync upgrade` again to retry the download.",
        ],
        "ClientResponseError": [
            "• A download server refused the request.",
            "• Please try again in a few minutes.",
        ],
        "TimeoutError": [
            "• A download timed out, which may indicate network throttling.",
            "• Check your internet speed.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -v for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_profile_table(profile: Profile):
    """Displays the mods of one profile."""
    console = Console()

    details = Table(show_header=False, box=None, padding=(0, 2))
    details.add_column(style="bold cyan")
    details.add_column()
    details.add_row("Output:", f"[dim]{escape(str(profile.output_dir))}[/dim]")
    for f in profile.filters:
        details.add_row("Filter:", escape(f.describe()))
    console.print(
        Panel(details, title=f"[bold]{escape(profile.name)}[/bold]", border_style="cyan")
    )

    if not profile.mods:
        console.print("[dim]No mods in this profile yet.[/dim]")
        return

    table = Table(box=box.ROUNDED)
    table.add_column("Name", style="cyan")
    table.add_column("Identifier", style="magenta")
    table.add_column("Filters")
    for mod in profile.mods:
        filters = ", ".join(f.describe() for f in mod.filters)
        if mod.override_filters:
            filters = f"[yellow]overrides[/yellow] {escape(filters)}".strip()
        else:
            filters = escape(filters)
        table.add_row(escape(mod.name), escape(str(mod.identifier)), filters or "[dim]-[/dim]")
    console.print(table)


def print_profiles_table(config: SyncConfig, config_path: Path):
    """Displays every profile, marking the active one."""
    console = Console()
    if not config.profiles:
        console.print(
            "[yellow]No profiles yet.[/yellow] "
            "Create one with [cyan]modsync profile create[/cyan]."
        )
        return

    table = Table(
        title=f"Profiles ([dim]{escape(str(config_path))}[/dim])", box=box.ROUNDED
    )
    table.add_column("", width=1)
    table.add_column("Name", style="cyan")
    table.add_column("Mods", justify="right", style="green")
    table.add_column("Output", style="dim")
    for i, profile in enumerate(config.profiles):
        marker = "[bold green]*[/bold green]" if i == config.active_profile else ""
        table.add_row(
            marker,
            escape(profile.name),
            str(len(profile.mods)),
            escape(str(profile.output_dir)),
        )
    console.print(table)


def print_summary_panel(summary: UpgradeSummary, duration_s: float):
    """Displays the final summary of an upgrade."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=16)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row("✓ Resolved:", f"[bold green]{summary.resolved}[/bold green]")
    stats_table.add_row("↓ Downloaded:", f"[green]{summary.downloaded}[/green]")
    if summary.installed:
        stats_table.add_row("⇢ Installed:", f"[green]{summary.installed}[/green]")
    if summary.quarantined:
        stats_table.add_row(
            "○ Moved to .old:", f"[yellow]{len(summary.quarantined)}[/yellow]"
        )
    if summary.warnings:
        stats_table.add_row("⚠ Warnings:", f"[yellow]{len(summary.warnings)}[/yellow]")

    stats_table.add_row("", "")
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")

    if summary.had_errors:
        title = "[bold]Upgrade Incomplete[/bold]"
        border_color = "red"
    else:
        title = "[bold]Upgrade Complete![/bold]"
        border_color = "green"

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
