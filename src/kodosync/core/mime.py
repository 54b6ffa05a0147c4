"""MIME type guessing for uploaded files.

Text types carry an explicit utf-8 charset so that the CDN serves them with
the right encoding.
"""

from __future__ import annotations

import mimetypes
from pathlib import Path

DEFAULT_MIME_TYPE = "application/octet-stream"

# Static-site extensions whose system mapping is missing or inconsistent
MIME_OVERRIDES: dict[str, str] = {
    ".html": "text/html; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".xml": "application/xml; charset=utf-8",
    ".txt": "text/plain; charset=utf-8",
    ".map": "application/json; charset=utf-8",
    ".webmanifest": "application/manifest+json; charset=utf-8",
    ".svg": "image/svg+xml",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".ico": "image/x-icon",
    ".woff2": "font/woff2",
    ".woff": "font/woff",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".eot": "application/vnd.ms-fontobject",
    ".wasm": "application/wasm",
    ".pdf": "application/pdf",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".m4a": "audio/mp4",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
}


def guess_mime_type(path: Path | str) -> str:
    """Guess the Content-Type for a file from its extension.

    Args:
        path: File path or name.

    Returns:
        MIME type string, application/octet-stream if unknown.
    """
    suffix = Path(path).suffix.lower()
    if suffix in MIME_OVERRIDES:
        return MIME_OVERRIDES[suffix]
    guessed, _ = mimetypes.guess_type(f"file{suffix}") if suffix else (None, None)
    return guessed or DEFAULT_MIME_TYPE
