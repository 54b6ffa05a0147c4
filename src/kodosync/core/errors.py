"""Exception hierarchy for kodosync.

Fatal errors (configuration, filesystem, index build, region lookup) abort the
run before or instead of dispatching. TransientNetworkError is raised by every
remote call and is retried; once retries are exhausted it is recorded against
the file that triggered it.
"""

from __future__ import annotations


class KodoSyncError(Exception):
    """Base exception for kodosync errors."""


class ConfigError(KodoSyncError):
    """Required configuration is missing or invalid."""


class FilesystemError(KodoSyncError):
    """The local root directory is missing or unreadable."""


class TransientNetworkError(KodoSyncError):
    """A remote call failed and may succeed if retried."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class IndexBuildError(KodoSyncError):
    """Listing the remote prefix failed after all retries."""


class RegionError(KodoSyncError):
    """The bucket's region hosts could not be resolved."""
