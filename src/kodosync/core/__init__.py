"""Core module - configuration, errors, hashing and shared types."""

from kodosync.core.config import SyncConfig, key_prefix_for, normalize_prefix
from kodosync.core.errors import (
    ConfigError,
    FilesystemError,
    IndexBuildError,
    KodoSyncError,
    RegionError,
    TransientNetworkError,
)
from kodosync.core.hashing import BLOCK_SIZE, hash_stream, qetag_bytes, qetag_file
from kodosync.core.types import (
    FileFailure,
    LocalFile,
    RemoteObject,
    SyncPhase,
    SyncResult,
    UploadTask,
)

__all__ = [
    # Config
    "SyncConfig",
    "key_prefix_for",
    "normalize_prefix",
    # Errors
    "ConfigError",
    "FilesystemError",
    "IndexBuildError",
    "KodoSyncError",
    "RegionError",
    "TransientNetworkError",
    # Hashing
    "BLOCK_SIZE",
    "hash_stream",
    "qetag_bytes",
    "qetag_file",
    # Types
    "FileFailure",
    "LocalFile",
    "RemoteObject",
    "SyncPhase",
    "SyncResult",
    "UploadTask",
]
