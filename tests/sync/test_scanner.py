"""Tests for local enumeration."""

import os
from pathlib import Path

import pytest

from kodosync.core.errors import FilesystemError
from kodosync.sync.scanner import scan_local_files


class TestScanLocalFiles:
    """Tests for scan_local_files."""

    def test_lists_files_sorted_with_posix_keys(self, site_dir: Path) -> None:
        """Should list files sorted by POSIX key."""
        files = scan_local_files(site_dir)

        assert [f.relative_key for f in files] == [
            "assets/app.js",
            "assets/logo.svg",
            "index.html",
        ]
        assert all(f.absolute_path.is_absolute() for f in files)
        index = files[-1]
        assert index.size_bytes == len("<html>home</html>")

    def test_applies_prefix(self, site_dir: Path) -> None:
        """Should prefix every key."""
        files = scan_local_files(site_dir, key_prefix="demo/")
        assert [f.relative_key for f in files][0] == "demo/assets/app.js"

    def test_deep_tree(self, tmp_path: Path) -> None:
        """Should walk deep trees without recursion limits."""
        deep = tmp_path
        for i in range(50):
            deep = deep / f"d{i}"
        deep.mkdir(parents=True)
        (deep / "leaf.txt").write_text("x")

        files = scan_local_files(tmp_path)

        assert len(files) == 1
        assert files[0].relative_key.endswith("/d49/leaf.txt")

    def test_empty_directory(self, tmp_path: Path) -> None:
        """Empty directories contribute no files."""
        (tmp_path / "empty").mkdir()
        assert scan_local_files(tmp_path) == []

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_ignores_symlinks(self, site_dir: Path, tmp_path: Path) -> None:
        """Should skip symlinks."""
        target = tmp_path / "outside.txt"
        target.write_text("outside")
        try:
            (site_dir / "link.txt").symlink_to(target)
        except OSError:
            pytest.skip("cannot create symlinks")

        keys = [f.relative_key for f in scan_local_files(site_dir)]

        assert "link.txt" not in keys

    def test_missing_root_raises(self, tmp_path: Path) -> None:
        """Should raise for a missing root."""
        with pytest.raises(FilesystemError):
            scan_local_files(tmp_path / "missing")

    def test_file_root_raises(self, tmp_path: Path) -> None:
        """Should raise when the root is a file."""
        path = tmp_path / "file.txt"
        path.write_text("x")
        with pytest.raises(FilesystemError):
            scan_local_files(path)
