"""
The main orchestrator: resolves a profile, reconciles its output directory and
downloads whatever is missing.
"""

import logging
import time
from pathlib import Path

from rich.console import Console

from modsync.api import Platform
from modsync.cli.progress_manager import ProgressReporter
from modsync.exceptions import UpgradeFailedError
from modsync.media.downloader import download
from modsync.models.config import SyncConfig
from modsync.models.downloadable import UpgradeSummary
from modsync.models.profile import Profile

from .reconciler import clean, collect_user_installs
from .resolver import ResolutionEngine

log = logging.getLogger(__name__)


class UpgradeManager:
    """Orchestrates the upgrade of one profile."""

    def __init__(
        self,
        config: SyncConfig,
        platforms: Platform,
        console: Console,
        quiet: bool = False,
    ):
        self.config = config
        self.platforms = platforms
        self.console = console
        self.quiet = quiet
        self.start_time = time.monotonic()

    async def upgrade(self, profile: Profile) -> UpgradeSummary:
        """
        Brings the profile's output directory up to date.

        Files for every mod that resolved are downloaded even when others failed;
        the failure is raised afterwards.

        Raises:
            ResolutionAbortedError: A platform's rate limit was exhausted.
            OSError: Reconciling or writing the output directory failed.
            ModSyncError: Some mods could not be resolved.
        """
        self.console.print("[bold]Determining the Latest Compatible Versions[/bold]\n")
        engine = ResolutionEngine(
            self.platforms,
            max_concurrent=self.config.max_concurrent_fetches,
            progress=ProgressReporter(self.console, disable=self.quiet),
        )
        outcome = await engine.resolve(profile.mods, profile.filters)
        summary = UpgradeSummary(
            resolved=len(outcome.downloadables),
            warnings=outcome.warnings,
            had_errors=outcome.had_errors,
        )

        output_dir: Path = profile.output_dir
        to_download = outcome.downloadables
        to_install = collect_user_installs(output_dir, profile.loader())

        summary.quarantined = await clean(output_dir, to_download, to_install)
        for item in to_download:
            # Download directly into the output directory
            item.output = Path(item.filename)

        if not to_download and not to_install:
            self.console.print("\n[bold]All up to date![/bold]")
        else:
            self.console.print("\n[bold]Downloading Mod Files[/bold]\n")
            await download(
                output_dir,
                to_download,
                to_install,
                max_concurrent=self.config.max_concurrent_downloads,
                console=self.console,
                user_agent=self.config.user_agent,
            )
            summary.downloaded = len(to_download)
            summary.installed = len(to_install)

        log.debug(
            f"Upgrade of '{profile.name}' finished in "
            f"{time.monotonic() - self.start_time:.1f}s"
        )
        if outcome.had_errors:
            raise UpgradeFailedError(
                "Could not get the latest compatible version of some mods", summary
            )
        return summary

