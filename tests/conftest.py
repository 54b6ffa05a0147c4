"""Shared fixtures: an in-memory remote store and a small site export."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from kodosync.client.api import ListPage, RemoteStore
from kodosync.core.config import SyncConfig
from kodosync.core.errors import TransientNetworkError
from kodosync.core.hashing import qetag_bytes
from kodosync.core.types import RemoteObject
from kodosync.sync.retry import RetryPolicy

# Retries without sleeping
FAST_RETRY = RetryPolicy(max_retries=2, base_delay=0.0, jitter=0.0)


class FakeStore(RemoteStore):
    """Thread-safe in-memory RemoteStore.

    Attributes:
        objects: key -> RemoteObject currently stored.
        upload_failures: key -> number of upload attempts that fail before
            one succeeds (-1 fails forever).
        list_failures: number of list_prefix calls that fail before success.
        upload_delay: seconds each upload sleeps (to overlap tasks).
    """

    def __init__(self, page_size: int = 1000) -> None:
        self.objects: dict[str, RemoteObject] = {}
        self.page_size = page_size
        self.upload_failures: dict[str, int] = {}
        self.list_failures = 0
        self.upload_delay = 0.0
        self.stat_calls: list[str] = []
        self.list_calls: list[str | None] = []
        self.upload_calls: list[str] = []
        self.upload_mime_types: dict[str, str] = {}
        self.active_uploads = 0
        self.peak_uploads = 0
        self.closed = False
        self._lock = threading.Lock()

    def put(self, key: str, data: bytes) -> None:
        """Seed an object as if it had been uploaded earlier."""
        self.objects[key] = RemoteObject(key=key, content_hash=qetag_bytes(data), size_bytes=len(data))

    def stat(self, bucket: str, key: str) -> RemoteObject | None:
        with self._lock:
            self.stat_calls.append(key)
            return self.objects.get(key)

    def list_prefix(
        self,
        bucket: str,
        prefix: str,
        marker: str | None = None,
        limit: int = 1000,
    ) -> ListPage:
        with self._lock:
            self.list_calls.append(marker)
            if self.list_failures:
                self.list_failures -= 1
                raise TransientNetworkError("listPrefix failed (503): unavailable", 503)
            keys = sorted(k for k in self.objects if k.startswith(prefix))
            start = int(marker) if marker else 0
            end = start + min(limit, self.page_size)
            items: list[dict[str, Any]] = [
                {
                    "key": k,
                    "hash": self.objects[k].content_hash,
                    "fsize": self.objects[k].size_bytes,
                }
                for k in keys[start:end]
            ]
            return ListPage(items=items, marker=str(end) if end < len(keys) else None)

    def upload(self, bucket: str, key: str, path: Path, mime_type: str) -> dict[str, Any]:
        with self._lock:
            self.upload_calls.append(key)
            self.active_uploads += 1
            self.peak_uploads = max(self.peak_uploads, self.active_uploads)
        try:
            if self.upload_delay:
                time.sleep(self.upload_delay)
            with self._lock:
                remaining = self.upload_failures.get(key, 0)
                if remaining:
                    if remaining > 0:
                        self.upload_failures[key] = remaining - 1
                    raise TransientNetworkError("upload failed (500): server error", 500)
            data = Path(path).read_bytes()
            with self._lock:
                self.put(key, data)
                self.upload_mime_types[key] = mime_type
            return {"key": key, "hash": self.objects[key].content_hash}
        finally:
            with self._lock:
                self.active_uploads -= 1

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_store() -> FakeStore:
    """Empty in-memory store."""
    return FakeStore()


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """A small static site export with three files."""
    root = tmp_path / "out"
    (root / "assets").mkdir(parents=True)
    (root / "index.html").write_text("<html>home</html>")
    (root / "assets" / "app.js").write_text("console.log('hi');")
    (root / "assets" / "logo.svg").write_text("<svg/>")
    return root


@pytest.fixture
def make_config(site_dir: Path) -> Callable[..., SyncConfig]:
    """Factory for SyncConfig pointing at site_dir."""

    def _make(**overrides: Any) -> SyncConfig:
        values: dict[str, Any] = {
            "access_key": "ak",
            "secret_key": "sk",
            "bucket": "site",
            "local_root": site_dir,
            "concurrency": 4,
            "hash_workers": 2,
        }
        values.update(overrides)
        return SyncConfig(**values)

    return _make


@pytest.fixture
def fast_retry() -> RetryPolicy:
    """Two retries with no backoff delay."""
    return FAST_RETRY
