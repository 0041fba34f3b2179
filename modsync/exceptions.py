"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class ModSyncError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(ModSyncError):
    """Raised for issues related to configuration loading or validation."""


class FileIntegrityError(ModSyncError):
    """Raised when a downloaded file fails a post-download integrity check."""


class FetchError(ModSyncError):
    """Base class for failures while resolving a single mod on a platform."""


class NotCompatibleError(FetchError):
    """Raised when no file of a project matches the active filters."""


class NotFoundError(FetchError):
    """Raised when the platform does not know the requested project or version."""


class TransportError(FetchError):
    """Raised when the platform could not be reached or answered unexpectedly."""


class RateLimitedError(FetchError):
    """
    Raised when a platform reports that its rate limit has been exhausted.

    Unlike the other fetch errors this one aborts the whole resolution run.
    """


class ResolutionAbortedError(ModSyncError):
    """
    Raised when resolution stopped early because of a fatal fetch error.

    The files resolved before the abort are kept in `downloadables`.
    """

    def __init__(self, cause: FetchError, downloadables: list | None = None):
        super().__init__(str(cause))
        self.cause = cause
        self.downloadables = downloadables or []


class UpgradeFailedError(ModSyncError):
    """
    Raised after an upgrade in which some mods could not be resolved.

    The files of the mods that did resolve have already been downloaded.
    """

    def __init__(self, message: str, summary=None):
        super().__init__(message)
        self.summary = summary
