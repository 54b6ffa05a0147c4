"""Request signing for the Kodo API.

This module provides:
- Credentials: access/secret key pair
- sign: HMAC-SHA1 signature in URL-safe base64
- management_authorization: "QBox" header for rs/rsf calls
- upload_token: signed put policy for form uploads
- encode_entry: EncodedEntryURI for "bucket:key"
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from urllib.parse import urlsplit

from kodosync.core.hashing import urlsafe_b64encode

UPLOAD_TOKEN_TTL = 3600  # seconds
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class Credentials:
    """Kodo access key pair."""

    access_key: str
    secret_key: str

    def __repr__(self) -> str:
        return f"Credentials(access_key={self.access_key!r}, secret_key='***')"

    def sign(self, data: bytes) -> str:
        """Sign data with the secret key.

        Args:
            data: Bytes to sign.

        Returns:
            URL-safe base64 HMAC-SHA1 signature.
        """
        digest = hmac.new(self.secret_key.encode("utf-8"), data, hashlib.sha1).digest()
        return urlsafe_b64encode(digest)

    def token(self, data: bytes) -> str:
        """Return "access_key:signature" for data."""
        return f"{self.access_key}:{self.sign(data)}"


def encode_entry(bucket: str, key: str) -> str:
    """Encode "bucket:key" for use in a management URL path."""
    return urlsafe_b64encode(f"{bucket}:{key}".encode())


def management_authorization(
    credentials: Credentials,
    url: str,
    body: bytes = b"",
    content_type: str | None = FORM_CONTENT_TYPE,
) -> str:
    """Build the Authorization header for an rs/rsf request.

    The signed string is the path, the query (if any), a newline, and the
    body when it is form encoded.

    Args:
        credentials: Access key pair.
        url: Full request URL.
        body: Request body.
        content_type: Request Content-Type.

    Returns:
        Header value "QBox <access_key>:<signature>".
    """
    parts = urlsplit(url)
    data = parts.path
    if parts.query:
        data += "?" + parts.query
    signing = data.encode("utf-8") + b"\n"
    if body and content_type == FORM_CONTENT_TYPE:
        signing += body
    return f"QBox {credentials.token(signing)}"


def upload_token(
    credentials: Credentials,
    bucket: str,
    key: str,
    expires: int = UPLOAD_TOKEN_TTL,
    now: float | None = None,
) -> str:
    """Create an upload token allowing a single overwrite of bucket:key.

    Args:
        credentials: Access key pair.
        bucket: Target bucket.
        key: Target key.
        expires: Token lifetime in seconds.
        now: Current unix time (for testing).

    Returns:
        Token "access_key:signature:encoded_policy".
    """
    issued = time.time() if now is None else now
    policy = {"scope": f"{bucket}:{key}", "deadline": int(issued) + expires}
    encoded_policy = urlsafe_b64encode(
        json.dumps(policy, separators=(",", ":")).encode("utf-8")
    )
    return f"{credentials.token(encoded_policy.encode('ascii'))}:{encoded_policy}"
