"""
Provides methods for checking the integrity of downloaded mod files.
"""

import hashlib
import logging
import zipfile

from modsync.exceptions import FileIntegrityError

log = logging.getLogger(__name__)


class FileIntegrityChecker:
    """A collection of static methods for validating downloaded archives."""

    @staticmethod
    def sha1_of(filepath: str) -> str:
        digest = hashlib.sha1()  # noqa: S324
        with open(filepath, "rb") as f:
            for block in iter(lambda: f.read(1 << 16), b""):
                digest.update(block)
        return digest.hexdigest()

    @staticmethod
    def verify_sha1(filepath: str, expected: str) -> None:
        """
        Compares a file's SHA-1 digest with the one the platform published.

        Raises:
            FileIntegrityError: If the digests differ.
        """
        actual = FileIntegrityChecker.sha1_of(filepath)
        if actual.lower() != expected.lower():
            raise FileIntegrityError(
                f"Checksum mismatch for '{filepath}': expected {expected}, got {actual}"
            )

    @staticmethod
    def check_archive(filepath: str) -> bool:
        """
        Performs a basic integrity check on a jar archive.

        Returns:
            True if the file is a readable zip archive, False otherwise.
        """
        try:
            with zipfile.ZipFile(filepath) as archive:
                if bad := archive.testzip():
                    log.warning(
                        f"Archive integrity check failed for '{filepath}': "
                        f"corrupt member '{bad}'."
                    )
                    return False
            return True
        except zipfile.BadZipFile:
            log.warning(f"Archive integrity check failed for '{filepath}': not a zip file.")
            return False
        except OSError as e:
            log.debug(f"Archive check failed for '{filepath}' with unexpected error: {e}")
            return False
