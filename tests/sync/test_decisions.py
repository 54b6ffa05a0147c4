"""Tests for the upload decision."""

from pathlib import Path

import pytest

from kodosync.core.hashing import qetag_bytes
from kodosync.core.types import LocalFile, RemoteObject
from kodosync.sync.decisions import DecisionAction, RemoteLookup, decide
from kodosync.sync.remote_index import RemoteIndex


class CountingHasher:
    """Fingerprint function that records its calls."""

    def __init__(self, value: str) -> None:
        self.value = value
        self.calls: list[Path] = []

    def __call__(self, path: Path) -> str:
        self.calls.append(path)
        return self.value


def local(key: str = "demo/index.html", data: bytes = b"<html/>") -> LocalFile:
    return LocalFile(absolute_path=Path("/site") / key, relative_key=key, size_bytes=len(data))


class TestDecide:
    """Tests for decide() against a prebuilt index."""

    def make_lookup(self, fake_store, objects: dict[str, RemoteObject]) -> RemoteLookup:  # type: ignore[no-untyped-def]
        return RemoteLookup(fake_store, "site", RemoteIndex("demo/", objects))

    def test_force_uploads_without_lookup_or_hash(self) -> None:
        """Force skips both lookup and hashing."""
        hasher = CountingHasher("unused")
        decision = decide(local(), None, hasher, force=True)

        assert decision.action is DecisionAction.UPLOAD
        assert decision.reason == "forced"
        assert hasher.calls == []

    def test_lookup_required_without_force(self) -> None:
        """Should require a lookup unless forced."""
        with pytest.raises(ValueError):
            decide(local(), None, CountingHasher("x"))

    def test_missing_remote_uploads(self, fake_store) -> None:  # type: ignore[no-untyped-def]
        """A missing remote object is uploaded."""
        hasher = CountingHasher("unused")
        decision = decide(local(), self.make_lookup(fake_store, {}), hasher)

        assert decision.should_upload
        assert decision.reason == "missing"
        assert hasher.calls == []
        assert fake_store.stat_calls == []

    def test_size_mismatch_uploads_without_hashing(self, fake_store) -> None:  # type: ignore[no-untyped-def]
        """A size mismatch uploads without hashing."""
        file = local()
        remote = RemoteObject(file.relative_key, qetag_bytes(b"<html/>"), file.size_bytes + 1)
        hasher = CountingHasher(remote.content_hash)

        decision = decide(file, self.make_lookup(fake_store, {file.relative_key: remote}), hasher)

        assert decision.reason == "size"
        assert hasher.calls == []

    def test_unknown_remote_size_uploads(self, fake_store) -> None:  # type: ignore[no-untyped-def]
        """An unknown remote size is treated as changed."""
        file = local()
        remote = RemoteObject(file.relative_key, "Fx", None)

        decision = decide(file, self.make_lookup(fake_store, {file.relative_key: remote}), CountingHasher("Fx"))

        assert decision.reason == "size"

    def test_same_size_same_hash_skips(self, fake_store) -> None:  # type: ignore[no-untyped-def]
        """Matching size and hash are skipped."""
        file = local()
        remote = RemoteObject(file.relative_key, "Fsame", file.size_bytes)
        hasher = CountingHasher("Fsame")

        decision = decide(file, self.make_lookup(fake_store, {file.relative_key: remote}), hasher)

        assert decision.action is DecisionAction.SKIP
        assert decision.reason == "unchanged"
        assert hasher.calls == [file.absolute_path]

    def test_same_size_different_hash_uploads(self, fake_store) -> None:  # type: ignore[no-untyped-def]
        """A differing hash is uploaded."""
        file = local()
        remote = RemoteObject(file.relative_key, "Fold", file.size_bytes)

        decision = decide(file, self.make_lookup(fake_store, {file.relative_key: remote}), CountingHasher("Fnew"))

        assert decision.should_upload
        assert decision.reason == "hash"


class TestRemoteLookup:
    """Tests for RemoteLookup resolution."""

    def test_prefers_index(self, fake_store) -> None:  # type: ignore[no-untyped-def]
        """Should answer covered keys from the index."""
        obj = RemoteObject("demo/a", "Fa", 1)
        lookup = RemoteLookup(fake_store, "site", RemoteIndex("demo/", {"demo/a": obj}))

        assert lookup.get("demo/a") == obj
        assert lookup.get("demo/b") is None
        assert fake_store.stat_calls == []

    def test_falls_back_to_stat_without_index(self, fake_store) -> None:  # type: ignore[no-untyped-def]
        """Should stat keys when no index was built."""
        fake_store.put("a.html", b"abc")
        lookup = RemoteLookup(fake_store, "site", None)

        assert lookup.get("a.html") == fake_store.objects["a.html"]
        assert lookup.get("b.html") is None
        assert fake_store.stat_calls == ["a.html", "b.html"]

    def test_stat_for_keys_outside_index(self, fake_store) -> None:  # type: ignore[no-untyped-def]
        """Should stat keys outside the indexed prefix."""
        lookup = RemoteLookup(fake_store, "site", RemoteIndex("demo/", {}))

        assert lookup.get("other/a") is None
        assert fake_store.stat_calls == ["other/a"]

    def test_stat_is_retried(self, fake_store, fast_retry) -> None:  # type: ignore[no-untyped-def]
        """Should retry a failing stat."""
        calls = {"n": 0}
        original = fake_store.stat

        def flaky_stat(bucket: str, key: str):  # type: ignore[no-untyped-def]
            calls["n"] += 1
            if calls["n"] < 3:
                raise ConnectionError("reset")
            return original(bucket, key)

        fake_store.stat = flaky_stat
        lookup = RemoteLookup(fake_store, "site", None, retry=fast_retry)

        assert lookup.get("a") is None
        assert calls["n"] == 3
