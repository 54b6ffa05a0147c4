"""Content fingerprinting compatible with Kodo's qetag.

The fingerprint is computed over fixed 4 MiB blocks:

- content <= BLOCK_SIZE: base64url(0x16 || sha1(content))
- content > BLOCK_SIZE:  base64url(0x96 || sha1(sha1(block0) || sha1(block1) || ...))

The base64url output is unpadded. Reads are streamed so that at most one block
is held in memory, and the result does not depend on the read size.
"""

from __future__ import annotations

import base64
import hashlib
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

BLOCK_SIZE = 4 * 1024 * 1024  # 4 MiB

SINGLE_BLOCK_PREFIX = 0x16
MULTI_BLOCK_PREFIX = 0x96

DEFAULT_READ_SIZE = 1024 * 1024


def urlsafe_b64encode(data: bytes, padding: bool = True) -> str:
    """Encode bytes as URL-safe base64 (``+`` -> ``-``, ``/`` -> ``_``).

    Args:
        data: Raw bytes to encode.
        padding: Keep trailing ``=`` characters.

    Returns:
        Encoded ASCII string.
    """
    encoded = base64.urlsafe_b64encode(data).decode("ascii")
    if not padding:
        encoded = encoded.rstrip("=")
    return encoded


def _iter_blocks(stream: BinaryIO, read_size: int) -> Iterator[bytes]:
    """Yield consecutive BLOCK_SIZE blocks (the last may be shorter)."""
    buffer = bytearray()
    while True:
        data = stream.read(read_size)
        if not data:
            break
        buffer.extend(data)
        while len(buffer) >= BLOCK_SIZE:
            yield bytes(buffer[:BLOCK_SIZE])
            del buffer[:BLOCK_SIZE]
    if buffer:
        yield bytes(buffer)


def hash_stream(stream: BinaryIO, read_size: int = DEFAULT_READ_SIZE) -> str:
    """Compute the qetag of a binary stream.

    Args:
        stream: Readable binary stream positioned at the start of the content.
        read_size: Number of bytes requested per read. Any positive value
            produces the same fingerprint.

    Returns:
        Unpadded URL-safe base64 fingerprint.

    Raises:
        ValueError: If read_size is not positive.
    """
    if read_size <= 0:
        raise ValueError(f"read_size must be positive, got {read_size}")

    block_digests: list[bytes] = []
    for block in _iter_blocks(stream, read_size):
        block_digests.append(hashlib.sha1(block).digest())

    if len(block_digests) <= 1:
        # Empty content hashes like an empty single block
        digest = block_digests[0] if block_digests else hashlib.sha1(b"").digest()
        return urlsafe_b64encode(bytes([SINGLE_BLOCK_PREFIX]) + digest, padding=False)

    digest = hashlib.sha1(b"".join(block_digests)).digest()
    return urlsafe_b64encode(bytes([MULTI_BLOCK_PREFIX]) + digest, padding=False)


def qetag_file(path: Path | str, read_size: int = DEFAULT_READ_SIZE) -> str:
    """Compute the qetag of a file on disk.

    Args:
        path: Path to the file.
        read_size: Bytes requested per read.

    Returns:
        Unpadded URL-safe base64 fingerprint.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    with open(path, "rb") as f:
        return hash_stream(f, read_size=read_size)


def qetag_bytes(data: bytes) -> str:
    """Compute the qetag of an in-memory byte string."""
    if len(data) <= BLOCK_SIZE:
        digest = hashlib.sha1(data).digest()
        return urlsafe_b64encode(bytes([SINGLE_BLOCK_PREFIX]) + digest, padding=False)

    digests = b"".join(
        hashlib.sha1(data[offset : offset + BLOCK_SIZE]).digest()
        for offset in range(0, len(data), BLOCK_SIZE)
    )
    digest = hashlib.sha1(digests).digest()
    return urlsafe_b64encode(bytes([MULTI_BLOCK_PREFIX]) + digest, padding=False)
