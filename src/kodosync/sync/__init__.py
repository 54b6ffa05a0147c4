"""Sync engine.

Architecture:
    scan_local_files -> build_remote_index (optional) -> decide -> UploadScheduler

Components:
- **scan_local_files**: Enumerates the local root into LocalFile records
- **build_remote_index**: Paginates the remote listing into a RemoteIndex
- **decide / RemoteLookup**: Existence -> size -> fingerprint upload decision
- **UploadScheduler**: Bounded FIFO worker pool; **HashPool** for hashing
- **with_retries / RetryPolicy**: Exponential backoff around every remote call
- **SyncOrchestrator**: Drives a run and aggregates the SyncResult
"""

from kodosync.sync.retry import (
    LIST_RETRY,
    NO_RETRY,
    REGION_RETRY,
    STAT_RETRY,
    UPLOAD_RETRY,
    RetryPolicy,
    with_retries,
)
from kodosync.sync.decisions import Decision, DecisionAction, RemoteLookup, decide
from kodosync.sync.remote_index import RemoteIndex, build_remote_index
from kodosync.sync.scanner import scan_local_files
from kodosync.sync.scheduler import HashPool, SchedulerState, UploadScheduler
from kodosync.sync.orchestrator import SyncOrchestrator

__all__ = [
    "LIST_RETRY",
    "NO_RETRY",
    "REGION_RETRY",
    "STAT_RETRY",
    "UPLOAD_RETRY",
    "Decision",
    "DecisionAction",
    "HashPool",
    "RemoteIndex",
    "RemoteLookup",
    "RetryPolicy",
    "SchedulerState",
    "SyncOrchestrator",
    "UploadScheduler",
    "build_remote_index",
    "decide",
    "scan_local_files",
    "with_retries",
]
