"""
Progress displays shared by concurrent tasks: a counting bar for resolution and
a byte-level display for transfers. Both print result lines above the bar.
"""

import threading

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TransferSpeedColumn,
)


class ProgressReporter:
    """
    A lock-guarded counter with a line printer, used by every resolution task.

    The total only ever grows: it is raised before a task is dispatched, so the
    displayed amount of outstanding work is never lower than the real one.
    """

    def __init__(self, console: Console, disable: bool = False):
        self.console = console
        self.progress = Progress(
            SpinnerColumn(),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True,
            disable=disable,
        )
        self._task_id = self.progress.add_task("resolving", total=0)
        self._lock = threading.Lock()
        self._running = False
        self.total = 0
        self.completed = 0

    def start(self) -> None:
        with self._lock:
            if not self._running:
                self.progress.start()
                self._running = True

    def add_to_total(self, count: int = 1) -> None:
        with self._lock:
            self.total += count
            self.progress.update(self._task_id, total=self.total)

    def advance(self, count: int = 1) -> None:
        with self._lock:
            self.completed += count
            self.progress.update(self._task_id, completed=self.completed)

    def println(self, message: str) -> None:
        """Prints a line above the bar without disturbing it."""
        with self._lock:
            self.progress.console.print(message, highlight=False)

    def finish_and_clear(self) -> None:
        """Stops and removes the bar. Safe to call more than once."""
        with self._lock:
            if self._running:
                self.progress.stop()
                self._running = False

    def __enter__(self) -> "ProgressReporter":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.finish_and_clear()


class TransferProgress:
    """Byte-level progress for concurrent file downloads."""

    def __init__(self, console: Console, disable: bool = False):
        self.console = console
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=20),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            DownloadColumn(),
            "•",
            TransferSpeedColumn(),
            console=console,
            transient=True,
            disable=disable,
        )
        self._lock = threading.Lock()

    def add_file(self, filename: str, total: int) -> TaskID:
        description = filename if len(filename) <= 40 else filename[:37] + "..."
        with self._lock:
            return self.progress.add_task(description, total=total or None)

    def update(self, task_id: TaskID, completed: int, total: int | None = None) -> None:
        with self._lock:
            if total:
                self.progress.update(task_id, completed=completed, total=total)
            else:
                self.progress.update(task_id, completed=completed)

    def finish_file(self, task_id: TaskID, message: str) -> None:
        with self._lock:
            self.progress.remove_task(task_id)
            self.progress.console.print(message, highlight=False)

    def println(self, message: str) -> None:
        with self._lock:
            self.progress.console.print(message, highlight=False)

    def __enter__(self) -> "TransferProgress":
        self.progress.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.progress.stop()
