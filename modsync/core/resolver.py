"""
Resolves a profile's mods, and every dependency they pull in, to downloadable files.

Resolution is a self-feeding producer/consumer loop. The queue is seeded with
the profile's mods; a single dispatch coroutine takes items off it, drops
duplicates, and spawns one worker task per new project. Workers fetch the
latest compatible file and push the dependencies it declares back onto the
queue, so the amount of work is only known once it has all been done.

Termination is tracked explicitly with the queue's unfinished-item counter:
every enqueued item is counted, the dispatcher marks discarded items done
straight away, and a worker marks its item done only after it has enqueued all
of that item's dependencies. When `queue.join()` returns, no undelivered item
and no running producer can remain.
"""

import asyncio
import logging
from typing import Optional

from rich.console import Console
from rich.markup import escape

from modsync.api import Platform
from modsync.cli.progress_manager import ProgressReporter
from modsync.exceptions import RateLimitedError, ResolutionAbortedError
from modsync.models.config import DEFAULT_PARALLEL_NETWORK
from modsync.models.downloadable import Downloadable, ResolutionOutcome
from modsync.models.filters import Filter, effective_filters
from modsync.models.identifiers import ModIdentifier, find_clash, version_label
from modsync.models.profile import Mod
from modsync.utils.formatting import pad_width

log = logging.getLogger(__name__)

TICK = "[green]✓[/green]"
CROSS = "×"


class ResolutionEngine:
    """
    Finds the latest compatible file of every mod and its required dependencies.

    The engine keeps no state between calls; everything a run needs lives in a
    `_ResolutionRun` created by `resolve`.
    """

    def __init__(
        self,
        platforms: Platform,
        max_concurrent: int = DEFAULT_PARALLEL_NETWORK,
        progress: Optional[ProgressReporter] = None,
    ):
        """
        Args:
            platforms: Resolves a single identifier, usually a PlatformRegistry.
            max_concurrent: The most fetches allowed in flight at once.
            progress: The shared progress display; a default one is created if omitted.
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.platforms = platforms
        self.max_concurrent = max_concurrent
        self.progress = progress or ProgressReporter(Console())

    async def resolve(
        self, mods: list[Mod], profile_filters: list[Filter]
    ) -> ResolutionOutcome:
        """
        Resolves `mods` and their transitive required dependencies.

        Failures of individual mods are reported and folded into
        `ResolutionOutcome.had_errors`; the other mods still resolve.

        Raises:
            ResolutionAbortedError: A platform's rate limit was exhausted. The
                files resolved before that are attached to the error.
        """
        run = _ResolutionRun(
            platforms=self.platforms,
            semaphore=asyncio.Semaphore(self.max_concurrent),
            progress=self.progress,
            profile_filters=profile_filters,
            pad_len=pad_width(mod.name for mod in mods),
        )
        return await run.execute(mods)


class _ResolutionRun:
    """The queue, ledger and results of a single call to `ResolutionEngine.resolve`."""

    def __init__(
        self,
        platforms: Platform,
        semaphore: asyncio.Semaphore,
        progress: ProgressReporter,
        profile_filters: list[Filter],
        pad_len: int,
    ):
        self.platforms = platforms
        self.semaphore = semaphore
        self.progress = progress
        self.profile_filters = profile_filters
        self.pad_len = pad_len

        self.queue: asyncio.Queue[Mod] = asyncio.Queue()
        # Only the dispatch coroutine touches the ledger
        self.ledger: list[ModIdentifier] = []
        self._seen: set[ModIdentifier] = set()
        self.warnings: list[str] = []

        self.downloadables: list[Downloadable] = []
        self.results_lock = asyncio.Lock()
        self.tasks: list[asyncio.Task] = []

        self.abort = asyncio.Event()
        self.fatal: Optional[RateLimitedError] = None

    async def execute(self, mods: list[Mod]) -> ResolutionOutcome:
        for mod in mods:
            self.queue.put_nowait(mod)

        self.progress.start()
        dispatcher = asyncio.create_task(self._dispatch())
        drained = asyncio.create_task(self.queue.join())
        aborted = asyncio.create_task(self.abort.wait())
        try:
            await asyncio.wait({drained, aborted}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            for task in self.tasks:
                task.cancel()
            self.progress.finish_and_clear()
            raise
        finally:
            for waiter in (dispatcher, drained, aborted):
                waiter.cancel()
            await asyncio.gather(dispatcher, drained, aborted, return_exceptions=True)

        # Workers still running may be adding results
        results = await asyncio.gather(*self.tasks, return_exceptions=True)
        self.progress.finish_and_clear()

        if self.fatal is not None:
            raise ResolutionAbortedError(
                self.fatal, list(self.downloadables)
            ) from self.fatal

        for result in results:
            if isinstance(result, BaseException):
                log.debug(f"Resolution task failed unexpectedly: {result!r}")

        return ResolutionOutcome(
            downloadables=list(self.downloadables),
            had_errors=any(r is not True and r is not None for r in results),
            warnings=list(self.warnings),
        )

    async def _dispatch(self) -> None:
        """Takes work off the queue until cancelled, spawning a worker per new project."""
        while True:
            mod = await self.queue.get()
            # Nothing below awaits, so cancellation never lands mid-item
            if self.abort.is_set() or not self._admit(mod):
                self.queue.task_done()
                continue
            self.progress.add_to_total(1)
            self.tasks.append(asyncio.create_task(self._resolve_mod(mod)))

    def _admit(self, mod: Mod) -> bool:
        """Records a mod in the ledger unless it, or a clashing version of it, was seen."""
        identifier = mod.identifier
        if identifier in self._seen:
            return False

        if clash := find_clash(identifier, self.ledger):
            warning = (
                f"Multiple versions of {identifier.project_id} were requested, "
                f"{version_label(clash)} and {version_label(identifier)}. "
                "Ignoring the latter."
            )
            self.warnings.append(warning)
            self.progress.println(
                f"[bold yellow]Warning:[/bold yellow] {escape(warning)}"
            )
            return False

        self.ledger.append(identifier)
        self._seen.add(identifier)
        return True

    async def _resolve_mod(self, mod: Mod) -> Optional[bool]:
        """
        Fetches one mod and queues its dependencies.

        Returns True on success, False on a reported failure, and None when the
        run was aborted before the fetch started.
        """
        name = escape(mod.name.ljust(self.pad_len))
        try:
            async with self.semaphore:
                if self.abort.is_set():
                    return None
                try:
                    filters = effective_filters(self.profile_filters, mod)
                    downloadable = await self.platforms.fetch(mod.identifier, filters)
                except RateLimitedError as e:
                    self.progress.advance()
                    self.progress.finish_and_clear()
                    if self.fatal is None:
                        self.fatal = e
                    self.abort.set()
                    raise
                except Exception as e:
                    self.progress.advance()
                    self.progress.println(f"[red]{CROSS} {name}  {escape(str(e))}[/red]")
                    log.debug(
                        f"Could not resolve {mod.identifier}: {e!r}",
                        exc_info=log.getEffectiveLevel() == logging.DEBUG,
                    )
                    return False

            for dependency in downloadable.dependencies:
                self.queue.put_nowait(Mod.dependency(dependency))
            async with self.results_lock:
                self.downloadables.append(downloadable)
            self.progress.advance()
            self.progress.println(
                f"{TICK} {name}  [dim]{escape(downloadable.filename)}[/dim]"
            )
            return True
        finally:
            self.queue.task_done()
