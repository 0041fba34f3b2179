"""Shared test fixtures for all unit tests.

Provides a quiet console and progress reporter, and temp output directories.
"""

from __future__ import annotations

import io

import pytest
from rich.console import Console

from modsync.cli.progress_manager import ProgressReporter


@pytest.fixture
def console() -> Console:
    """A console writing into memory; read it with `console.file.getvalue()`."""
    return Console(file=io.StringIO(), width=200, color_system=None)


@pytest.fixture
def reporter(console: Console) -> ProgressReporter:
    return ProgressReporter(console, disable=True)


@pytest.fixture
def output_dir(tmp_path):
    path = tmp_path / "mods"
    path.mkdir()
    return path
