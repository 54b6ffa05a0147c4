"""Shared types for kodosync.

This module provides:
- LocalFile, RemoteObject, UploadTask: per-file records
- FileFailure: a failure recorded against a single key
- SyncPhase: orchestrator state
- SyncResult: thread-safe run accumulator
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path


@dataclass(frozen=True)
class LocalFile:
    """A regular file found under the local root.

    Attributes:
        absolute_path: Absolute path on disk.
        relative_key: Remote key (prefix + POSIX relative path).
        size_bytes: File size at enumeration time.
    """

    absolute_path: Path
    relative_key: str
    size_bytes: int


@dataclass(frozen=True)
class RemoteObject:
    """Last known server-side state of a key.

    ``size_bytes`` is None when the store returned no usable size.
    """

    key: str
    content_hash: str
    size_bytes: int | None

    @classmethod
    def from_dict(cls, key: str, data: dict) -> RemoteObject:
        """Create from a stat or list item response."""
        size = data.get("fsize")
        return cls(
            key=key,
            content_hash=str(data.get("hash") or ""),
            size_bytes=size if isinstance(size, int) and not isinstance(size, bool) else None,
        )


@dataclass(frozen=True)
class UploadTask:
    """A file scheduled for upload."""

    key: str
    local_file: LocalFile
    mime_type: str


@dataclass(frozen=True)
class FileFailure:
    """A per-file failure that did not abort the run."""

    key: str
    error: str


class SyncPhase(Enum):
    """State of a sync run."""

    ENUMERATING = auto()
    INDEX_BUILDING = auto()
    DISPATCHING = auto()
    DRAINING = auto()
    REPORTING = auto()
    DONE = auto()


@dataclass
class SyncResult:
    """Aggregate outcome of a sync run.

    Counters are updated from worker threads, so every mutation goes through
    the record_* methods which hold the internal lock.
    """

    uploaded: int = 0
    skipped: int = 0
    failed: int = 0
    started_at: float = field(default_factory=time.monotonic)
    failures: list[FileFailure] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def total(self) -> int:
        """Number of files accounted for so far."""
        with self._lock:
            return self.uploaded + self.skipped + self.failed

    @property
    def elapsed(self) -> float:
        """Seconds since the run started."""
        return time.monotonic() - self.started_at

    def record_uploaded(self) -> int:
        """Count an uploaded (or planned) file. Returns the new total."""
        with self._lock:
            self.uploaded += 1
            return self.uploaded + self.skipped + self.failed

    def record_skipped(self) -> int:
        """Count a skipped file. Returns the new total."""
        with self._lock:
            self.skipped += 1
            return self.uploaded + self.skipped + self.failed

    def record_failed(self, key: str, error: str) -> int:
        """Count a failed file. Returns the new total."""
        with self._lock:
            self.failed += 1
            self.failures.append(FileFailure(key=key, error=error))
            return self.uploaded + self.skipped + self.failed

    def counts_line(self) -> str:
        """Format the current counters."""
        with self._lock:
            return f"uploaded={self.uploaded} skipped={self.skipped} failed={self.failed}"

    def summary_line(self) -> str:
        """Format the final summary."""
        return f"done {self.counts_line()} elapsed={round(self.elapsed)}s"

    def exit_code(self, dry_run: bool) -> int:
        """Process exit status for this result."""
        if not dry_run and self.failed > 0:
            return 1
        return 0
