"""
File Transfer Layer.

This package is responsible for all mod file operations after resolution:
downloading, installing manually placed files, and integrity validation.
"""

from .downloader import Downloader, download
from .integrity import FileIntegrityChecker

__all__ = ["Downloader", "FileIntegrityChecker", "download"]
