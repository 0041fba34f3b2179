"""
Handles the low-level downloading of mod files over HTTP and the installation
of manually placed files.
"""

import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import Optional

import aiofiles
import aiohttp
from rich.console import Console
from rich.markup import escape
from rich.progress import TaskID

from modsync.cli.progress_manager import TransferProgress
from modsync.exceptions import FileIntegrityError
from modsync.models.downloadable import Downloadable, InstallEntry
from modsync.utils.formatting import format_size

from .integrity import FileIntegrityChecker

log = logging.getLogger(__name__)

PART_SUFFIX = ".part"

_connection_pool: aiohttp.ClientSession | None = None
_pool_lock = asyncio.Lock()


async def get_connection_pool(
    max_workers: int = 8, user_agent: Optional[str] = None
) -> aiohttp.ClientSession:
    """
    Gets or creates a shared aiohttp ClientSession for downloads.

    This function ensures that only one connection pool is created for the
    lifetime of the application run.

    Args:
        max_workers: Maximum concurrent connections.
        user_agent: Sent with every download request.
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=max_workers * 2,
            limit_per_host=max_workers,
            ttl_dns_cache=600,
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        )
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90)
        headers = {"User-Agent": user_agent} if user_agent else {}
        _connection_pool = aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=headers
        )
        log.debug(f"Created download pool with limit_per_host={max_workers}")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared downloader connection pool closed.")


class Downloader:
    """A low-level file downloader with retry logic and whole-file writes."""

    CHUNK_SIZE = 131072  # 128 KB

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.5,
        max_workers: int = 8,
        user_agent: Optional[str] = None,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_workers = max_workers
        self.user_agent = user_agent

    async def download_file(
        self,
        url: str,
        destination: Path,
        sha1: Optional[str] = None,
        progress: Optional[TransferProgress] = None,
        task_id: Optional[TaskID] = None,
    ) -> int:
        """
        Downloads a file next to its destination and moves it into place once complete.

        The destination is never left holding a partial file: bytes go to a
        `.part` file which replaces the destination only after verification.

        Returns:
            The number of bytes written.

        Raises:
            aiohttp.ClientError, asyncio.TimeoutError: When every attempt failed.
            FileIntegrityError: If the file does not match its published checksum.
        """
        part_path = destination.with_name(destination.name + PART_SUFFIX)
        last_exception: Optional[BaseException] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                session = await get_connection_pool(self.max_workers, self.user_agent)
                async with session.get(url, allow_redirects=True) as response:
                    response.raise_for_status()
                    total = int(response.headers.get("Content-Length", 0))

                    bytes_downloaded = 0
                    async with aiofiles.open(part_path, "wb") as f:
                        async for chunk in response.content.iter_chunked(
                            self.CHUNK_SIZE
                        ):
                            await f.write(chunk)
                            bytes_downloaded += len(chunk)
                            if progress and task_id is not None:
                                progress.update(task_id, bytes_downloaded, total)
                break
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_exception = e
                log.debug(
                    f"Download attempt {attempt}/{self.max_attempts} for "
                    f"'{destination.name}' failed: {e}. Retrying..."
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.base_delay * (2 ** (attempt - 1)))
        else:
            await asyncio.to_thread(part_path.unlink, missing_ok=True)
            raise last_exception

        try:
            await asyncio.to_thread(self._verify, part_path, sha1)
        except FileIntegrityError:
            await asyncio.to_thread(part_path.unlink, missing_ok=True)
            raise
        await asyncio.to_thread(os.replace, part_path, destination)
        return bytes_downloaded

    @staticmethod
    def _verify(path: Path, sha1: Optional[str]) -> None:
        if sha1:
            FileIntegrityChecker.verify_sha1(str(path), sha1)
        elif path.name.removesuffix(PART_SUFFIX).lower().endswith(".jar"):
            if not FileIntegrityChecker.check_archive(str(path)):
                raise FileIntegrityError(
                    f"'{path.name.removesuffix(PART_SUFFIX)}' is not a valid jar archive"
                )


def _copy_whole(source: Path, destination: Path) -> None:
    part_path = destination.with_name(destination.name + PART_SUFFIX)
    shutil.copy2(source, part_path)
    os.replace(part_path, destination)


async def download(
    output_dir: Path,
    to_download: list[Downloadable],
    to_install: list[InstallEntry],
    max_concurrent: int = 8,
    console: Optional[Console] = None,
    user_agent: Optional[str] = None,
) -> None:
    """
    Downloads every resolved file and copies every manual install into `output_dir`.

    All items are independent and run concurrently. Every item is attempted
    before the first failure, if any, is raised.
    """
    await asyncio.to_thread(output_dir.mkdir, parents=True, exist_ok=True)
    semaphore = asyncio.Semaphore(max_concurrent)
    downloader = Downloader(max_workers=max_concurrent, user_agent=user_agent)

    with TransferProgress(console or Console()) as progress:

        async def fetch_one(item: Downloadable) -> None:
            async with semaphore:
                destination = output_dir / (item.output or item.filename)
                task_id = progress.add_file(item.filename, item.length)
                try:
                    written = await downloader.download_file(
                        item.source_url, destination, item.sha1, progress, task_id
                    )
                except BaseException:
                    progress.finish_file(
                        task_id,
                        f"[red]× Failed to download {escape(item.filename)}[/red]",
                    )
                    raise
                progress.finish_file(
                    task_id,
                    f"[green]✓[/green] Downloaded  [dim]{escape(item.filename)}[/dim] "
                    f"[blue]({format_size(written)})[/blue]",
                )

        async def install_one(entry: InstallEntry) -> None:
            await asyncio.to_thread(_copy_whole, entry.path, output_dir / entry.filename)
            progress.println(
                f"[green]✓[/green] Installed   [dim]{escape(entry.filename)}[/dim]"
            )

        try:
            results = await asyncio.gather(
                *(fetch_one(item) for item in to_download),
                *(install_one(entry) for entry in to_install),
                return_exceptions=True,
            )
        finally:
            await close_connection_pool()

    errors = [r for r in results if isinstance(r, BaseException)]
    for error in errors[1:]:
        log.error(f"[red]{escape(str(error))}[/red]")
    if errors:
        raise errors[0]
