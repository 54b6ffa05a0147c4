"""Upload decision for a single local file.

Checks run from cheapest to most expensive:

| Step | Check                         | Outcome on hit      |
|------|-------------------------------|---------------------|
| 1    | force upload                  | UPLOAD (forced)     |
| 2    | remote object absent          | UPLOAD (missing)    |
| 3    | size differs or unknown       | UPLOAD (size)       |
| 4    | fingerprint differs           | UPLOAD (hash)       |
| -    | otherwise                     | SKIP (unchanged)    |

The fingerprint is only computed when step 4 is reached.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from kodosync.sync.retry import STAT_RETRY, RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from kodosync.client.api import RemoteStore
    from kodosync.core.types import LocalFile, RemoteObject
    from kodosync.sync.remote_index import RemoteIndex


class DecisionAction(Enum):
    """What to do with a local file."""

    UPLOAD = auto()
    SKIP = auto()


@dataclass(frozen=True)
class Decision:
    """Outcome of decide() with the check that produced it."""

    action: DecisionAction
    reason: str

    @property
    def should_upload(self) -> bool:
        return self.action is DecisionAction.UPLOAD


FORCED = Decision(DecisionAction.UPLOAD, "forced")
MISSING = Decision(DecisionAction.UPLOAD, "missing")
SIZE_CHANGED = Decision(DecisionAction.UPLOAD, "size")
HASH_CHANGED = Decision(DecisionAction.UPLOAD, "hash")
UNCHANGED = Decision(DecisionAction.SKIP, "unchanged")


class RemoteLookup:
    """Resolves the remote state of a key.

    Uses the prebuilt index when one exists and covers the key; otherwise
    falls back to a retried point stat against the store.
    """

    def __init__(
        self,
        store: RemoteStore,
        bucket: str,
        index: RemoteIndex | None = None,
        retry: RetryPolicy = STAT_RETRY,
    ) -> None:
        self._store = store
        self._bucket = bucket
        self._index = index
        self._retry = retry

    @property
    def index(self) -> RemoteIndex | None:
        return self._index

    def get(self, key: str) -> RemoteObject | None:
        """Return the remote object for key, or None if it does not exist."""
        if self._index is not None and self._index.covers(key):
            return self._index.get(key)
        return self._retry.call(
            lambda: self._store.stat(self._bucket, key),
            description=f"stat {key}",
        )


def decide(
    local: LocalFile,
    lookup: RemoteLookup | None,
    fingerprint: Callable[[Path], str],
    force: bool = False,
) -> Decision:
    """Decide whether local must be uploaded.

    Args:
        local: The local file.
        lookup: Remote state resolver; may be None only when force is set.
        fingerprint: Computes the content fingerprint of a path.
        force: Upload unconditionally.

    Returns:
        The decision and the check that produced it.
    """
    if force:
        return FORCED
    if lookup is None:
        raise ValueError("A remote lookup is required unless force is set")

    remote = lookup.get(local.relative_key)
    if remote is None:
        return MISSING

    if remote.size_bytes is None or remote.size_bytes != local.size_bytes:
        return SIZE_CHANGED

    if fingerprint(local.absolute_path) != remote.content_hash:
        return HASH_CHANGED
    return UNCHANGED
