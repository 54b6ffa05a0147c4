"""Local directory enumeration.

Walks the local root with an explicit stack instead of recursion, keeping
only regular files. Symlinks and special files are ignored.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from kodosync.core.errors import FilesystemError
from kodosync.core.types import LocalFile

logger = logging.getLogger(__name__)


def to_key(root: Path, path: Path, key_prefix: str = "") -> str:
    """Build the remote key of path: prefix + POSIX path relative to root."""
    return key_prefix + path.relative_to(root).as_posix()


def scan_local_files(root: Path | str, key_prefix: str = "") -> list[LocalFile]:
    """List every regular file under root.

    Args:
        root: Local directory to scan.
        key_prefix: Prefix for remote keys ("" or ending with "/").

    Returns:
        Local files sorted by key.

    Raises:
        FilesystemError: If root does not exist or is not a directory.
    """
    root = Path(root)
    if not root.is_dir():
        raise FilesystemError(f"{root} not found or not a directory")
    root = root.resolve()

    files: list[LocalFile] = []
    stack: list[Path] = [root]

    while stack:
        directory = stack.pop()
        try:
            entries = list(os.scandir(directory))
        except OSError as e:
            raise FilesystemError(f"Cannot read directory {directory}: {e}") from e

        for entry in entries:
            if entry.is_symlink():
                logger.debug(f"Skipping symlink: {entry.path}")
                continue
            if entry.is_dir(follow_symlinks=False):
                stack.append(Path(entry.path))
            elif entry.is_file(follow_symlinks=False):
                path = Path(entry.path)
                files.append(
                    LocalFile(
                        absolute_path=path,
                        relative_key=to_key(root, path, key_prefix),
                        size_bytes=entry.stat(follow_symlinks=False).st_size,
                    )
                )

    files.sort(key=lambda f: f.relative_key)
    return files
