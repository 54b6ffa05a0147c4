"""Snapshot of remote objects under a key prefix.

This module provides:
- RemoteIndex: read-only key -> RemoteObject mapping
- build_remote_index: paginate list_prefix into a RemoteIndex
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from kodosync.core.errors import IndexBuildError
from kodosync.core.types import RemoteObject
from kodosync.sync.retry import LIST_RETRY, RetryPolicy

if TYPE_CHECKING:
    from kodosync.client.api import RemoteStore

logger = logging.getLogger(__name__)

LIST_PAGE_LIMIT = 1000


class RemoteIndex(Mapping[str, RemoteObject]):
    """Immutable view of the remote objects found under a prefix.

    Built once per run and shared by all worker threads without locking.
    A key missing from the index means the object did not exist under the
    indexed prefix when the listing ran.
    """

    def __init__(self, prefix: str, objects: Mapping[str, RemoteObject]) -> None:
        self._prefix = prefix
        self._objects = MappingProxyType(dict(objects))

    @property
    def prefix(self) -> str:
        """Prefix the index was built for."""
        return self._prefix

    def covers(self, key: str) -> bool:
        """Whether key falls under the indexed prefix."""
        return key.startswith(self._prefix)

    def __getitem__(self, key: str) -> RemoteObject:
        return self._objects[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._objects)

    def __len__(self) -> int:
        return len(self._objects)

    def __repr__(self) -> str:
        return f"RemoteIndex(prefix={self._prefix!r}, objects={len(self)})"


def build_remote_index(
    store: RemoteStore,
    bucket: str,
    prefix: str,
    retry: RetryPolicy = LIST_RETRY,
    limit: int = LIST_PAGE_LIMIT,
) -> RemoteIndex:
    """List every object under prefix, following continuation markers.

    Each page request is retried independently. Items without a usable key
    are skipped.

    Args:
        store: Remote store to list.
        bucket: Bucket name.
        prefix: Key prefix to list.
        retry: Retry policy for each page request.
        limit: Maximum items per page.

    Returns:
        RemoteIndex of the listed objects.

    Raises:
        IndexBuildError: If a page still fails after all retries.
    """
    objects: dict[str, RemoteObject] = {}
    marker: str | None = None
    pages = 0

    while True:
        current_marker = marker
        try:
            page = retry.call(
                lambda: store.list_prefix(bucket, prefix, marker=current_marker, limit=limit),
                description=f"list {prefix!r} page {pages + 1}",
            )
        except Exception as e:
            raise IndexBuildError(f"Listing prefix {prefix!r} failed: {e}") from e
        pages += 1

        for item in page.items:
            key = item.get("key") if isinstance(item, dict) else None
            if not isinstance(key, str) or not key:
                continue
            objects[key] = RemoteObject.from_dict(key, item)

        marker = page.marker
        if not marker:
            break

    logger.debug(f"Listed {len(objects)} objects under {prefix!r} in {pages} page(s)")
    return RemoteIndex(prefix, objects)
