"""
Reconciles the output directory with the resolved set of files.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

from modsync.models.downloadable import Downloadable, InstallEntry
from modsync.models.filters import ModLoader

log = logging.getLogger(__name__)

USER_DIR = "user"
QUARANTINE_DIR = ".old"
ARCHIVE_SUFFIX = ".jar"


def collect_user_installs(
    output_dir: Path, loader: Optional[ModLoader]
) -> list[InstallEntry]:
    """
    Lists the manually placed archives in the output's `user` folder.

    Quilt loads mods from nested folders itself, so nothing is collected for it.
    """
    user_dir = output_dir / USER_DIR
    if loader == ModLoader.QUILT or not user_dir.is_dir():
        return []
    return [
        InstallEntry(filename=path.name, path=path)
        for path in sorted(user_dir.iterdir())
        if path.is_file() and path.suffix.lower() == ARCHIVE_SUFFIX
    ]


def drop_duplicate_filenames(to_download: list[Downloadable]) -> list[str]:
    """
    Keeps only the first downloadable for each filename, in place.

    Returns:
        The filenames that were requested more than once.
    """
    seen: set[str] = set()
    dupes: list[str] = []
    kept = []
    for item in to_download:
        if item.filename in seen:
            if item.filename not in dupes:
                dupes.append(item.filename)
            continue
        seen.add(item.filename)
        kept.append(item)
    to_download[:] = kept
    return dupes


def _clean_sync(
    directory: Path,
    to_download: list[Downloadable],
    to_install: list[InstallEntry],
) -> list[str]:
    quarantine = directory / QUARANTINE_DIR
    quarantine.mkdir(parents=True, exist_ok=True)

    moved = []
    for entry in sorted(directory.iterdir()):
        if not entry.is_file():
            continue
        filename = entry.name

        if (index := _index_of(to_download, filename)) is not None:
            # Already downloaded
            del to_download[index]
        elif (index := _index_of(to_install, filename)) is not None:
            # Already installed
            del to_install[index]
        else:
            os.replace(entry, quarantine / filename)
            moved.append(filename)
            log.debug(f"Moved '{filename}' to {QUARANTINE_DIR}/")
    return moved


def _index_of(items: list, filename: str) -> Optional[int]:
    for i, item in enumerate(items):
        if item.filename == filename:
            return i
    return None


async def clean(
    directory: Path,
    to_download: list[Downloadable],
    to_install: list[InstallEntry],
) -> list[str]:
    """
    Brings `directory` in line with the files that should be in it.

    Both lists are updated in place: files already present under the right
    name are removed from them. Any other file in the directory root is moved
    into the `.old` folder, replacing an older copy there. Nothing is deleted,
    and sub-folders such as `user` are left alone.

    Returns:
        The names of the files that were moved into quarantine.

    Raises:
        OSError: If the directory cannot be read or a file cannot be moved.
    """
    if dupes := drop_duplicate_filenames(to_download):
        log.warning(
            "[yellow]The following files were requested more than once and "
            f"will only be downloaded once: {', '.join(dupes)}[/yellow]"
        )

    if not directory.exists():
        return []
    return await asyncio.to_thread(_clean_sync, directory, to_download, to_install)

