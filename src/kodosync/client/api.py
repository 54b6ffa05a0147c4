"""Object storage client for the Kodo API.

This module provides:
- RemoteStore: abstract interface the sync engine talks to (stat, list, upload)
- ListPage: one page of a prefix listing
- RegionHosts / ZONE_HOSTS: API endpoints per region
- KodoClient: httpx implementation against Qiniu Kodo
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx

from kodosync.client.auth import (
    FORM_CONTENT_TYPE,
    Credentials,
    encode_entry,
    management_authorization,
    upload_token,
)
from kodosync.core.config import AUTO_ZONE, DEFAULT_TIMEOUT, SyncConfig
from kodosync.core.errors import ConfigError, RegionError, TransientNetworkError
from kodosync.core.types import RemoteObject
from kodosync.sync.retry import REGION_RETRY, RetryPolicy

logger = logging.getLogger(__name__)

# Status returned by stat when the key does not exist
STATUS_NOT_FOUND = 612

DEFAULT_LIST_LIMIT = 1000
UC_HOST = "uc.qiniuapi.com"


@dataclass
class ListPage:
    """One page of a prefix listing.

    Attributes:
        items: Raw item dictionaries ({"key", "hash", "fsize", ...}).
        marker: Continuation marker, None on the last page.
    """

    items: list[dict[str, Any]] = field(default_factory=list)
    marker: str | None = None


class RemoteStore(ABC):
    """Abstract interface for the remote object store."""

    @abstractmethod
    def stat(self, bucket: str, key: str) -> RemoteObject | None:
        """Look up a single key.

        Returns:
            The remote object, or None if the key does not exist.

        Raises:
            TransientNetworkError: On any other failure.
        """

    @abstractmethod
    def list_prefix(
        self,
        bucket: str,
        prefix: str,
        marker: str | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> ListPage:
        """Fetch one page of keys under prefix.

        Raises:
            TransientNetworkError: If the page could not be fetched.
        """

    @abstractmethod
    def upload(self, bucket: str, key: str, path: Path, mime_type: str) -> dict[str, Any]:
        """Upload a local file to bucket:key, overwriting any existing object.

        Raises:
            TransientNetworkError: If the upload did not return a 2xx status.
        """

    def close(self) -> None:
        """Release network resources."""


@dataclass(frozen=True)
class RegionHosts:
    """API hosts for one region (without scheme)."""

    up: str
    rs: str
    rsf: str


ZONE_HOSTS: dict[str, RegionHosts] = {
    "z0": RegionHosts(up="up-z0.qiniup.com", rs="rs-z0.qiniuapi.com", rsf="rsf-z0.qiniuapi.com"),
    "z1": RegionHosts(up="up-z1.qiniup.com", rs="rs-z1.qiniuapi.com", rsf="rsf-z1.qiniuapi.com"),
    "z2": RegionHosts(up="up-z2.qiniup.com", rs="rs-z2.qiniuapi.com", rsf="rsf-z2.qiniuapi.com"),
    "na0": RegionHosts(up="up-na0.qiniup.com", rs="rs-na0.qiniuapi.com", rsf="rsf-na0.qiniuapi.com"),
    "as0": RegionHosts(up="up-as0.qiniup.com", rs="rs-as0.qiniuapi.com", rsf="rsf-as0.qiniuapi.com"),
}


def _error_message(response: httpx.Response) -> str:
    """Extract a readable error from a response body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text or response.reason_phrase


def _first_domain(entry: Any) -> str | None:
    if isinstance(entry, dict):
        domains = entry.get("domains")
        if isinstance(domains, list) and domains:
            return str(domains[0])
    return None


class KodoClient(RemoteStore):
    """HTTP client for the Kodo management and upload APIs.

    A single httpx.Client is shared by all worker threads.

    Usage:
        with KodoClient.from_config(config) as client:
            obj = client.stat(config.bucket, "index.html")
    """

    def __init__(
        self,
        credentials: Credentials,
        hosts: RegionHosts | None = None,
        use_https: bool = False,
        timeout: float | None = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the client.

        Args:
            credentials: Access key pair.
            hosts: Region hosts; resolve_hosts() must be called when None.
            use_https: Use https endpoints.
            timeout: Request timeout in seconds, None disables it.
        """
        self._credentials = credentials
        self._hosts = hosts
        self._scheme = "https" if use_https else "http"
        self._client = httpx.Client(timeout=timeout)

    @classmethod
    def from_config(cls, config: SyncConfig, retry: RetryPolicy = REGION_RETRY) -> KodoClient:
        """Create a client for config, resolving region hosts when zone is auto.

        Raises:
            ConfigError: If the zone is not supported.
            RegionError: If automatic region lookup fails after retries.
        """
        if config.zone == AUTO_ZONE:
            hosts = None
        elif config.zone in ZONE_HOSTS:
            hosts = ZONE_HOSTS[config.zone]
        else:
            raise ConfigError(f"Unknown QINIU_ZONE: {config.zone}")

        client = cls(
            Credentials(config.access_key, config.secret_key),
            hosts=hosts,
            use_https=config.use_https,
            timeout=config.timeout,
        )
        if hosts is None:
            try:
                client.resolve_hosts(config.bucket, retry=retry)
            except RegionError:
                client.close()
                raise
        return client

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> KodoClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    @property
    def hosts(self) -> RegionHosts:
        """Resolved region hosts."""
        if self._hosts is None:
            raise RegionError("Region hosts have not been resolved")
        return self._hosts

    def _url(self, host: str, path: str) -> str:
        return f"{self._scheme}://{host}{path}"

    def _send(self, operation: str, request: httpx.Request) -> httpx.Response:
        """Send a request, turning transport errors into TransientNetworkError."""
        try:
            return self._client.send(request)
        except httpx.HTTPError as e:
            raise TransientNetworkError(f"{operation} failed (unknown): {e}") from e

    def _management_request(self, operation: str, url: str) -> httpx.Response:
        """POST an empty form to an rs/rsf endpoint with QBox authorization."""
        headers = {
            "Content-Type": FORM_CONTENT_TYPE,
            "Authorization": management_authorization(self._credentials, url),
        }
        request = self._client.build_request("POST", url, headers=headers)
        return self._send(operation, request)

    # === Region ===

    def query_region(self, bucket: str) -> RegionHosts:
        """Ask the UC service which hosts serve bucket.

        Raises:
            TransientNetworkError: On request failure or an unusable answer.
        """
        url = self._url(UC_HOST, "/v4/query")
        request = self._client.build_request(
            "GET",
            url,
            params={"ak": self._credentials.access_key, "bucket": bucket},
        )
        response = self._send("region query", request)
        if not response.is_success:
            raise TransientNetworkError(
                f"region query failed ({response.status_code}): {_error_message(response)}",
                response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise TransientNetworkError(f"region query failed: invalid response: {e}") from e
        hosts = body.get("hosts") if isinstance(body, dict) else None
        if not isinstance(hosts, list) or not hosts or not isinstance(hosts[0], dict):
            raise TransientNetworkError("region query failed: no hosts returned")
        entry = hosts[0]
        up, rs, rsf = (_first_domain(entry.get(name)) for name in ("up", "rs", "rsf"))
        if not (up and rs and rsf):
            raise TransientNetworkError("region query failed: incomplete host list")
        return RegionHosts(up=up, rs=rs, rsf=rsf)

    def resolve_hosts(self, bucket: str, retry: RetryPolicy = REGION_RETRY) -> RegionHosts:
        """Resolve and cache the region hosts for bucket.

        Raises:
            RegionError: If the lookup still fails after retries.
        """
        try:
            self._hosts = retry.call(lambda: self.query_region(bucket))
        except TransientNetworkError as e:
            raise RegionError(f"Could not resolve region for bucket {bucket}: {e}") from e
        logger.debug(f"Resolved region hosts: {self._hosts}")
        return self._hosts

    # === RemoteStore ===

    def stat(self, bucket: str, key: str) -> RemoteObject | None:
        """Look up a single key."""
        url = self._url(self.hosts.rs, f"/stat/{encode_entry(bucket, key)}")
        response = self._management_request("stat", url)
        if response.status_code == STATUS_NOT_FOUND:
            return None
        if not response.is_success:
            raise TransientNetworkError(
                f"stat failed ({response.status_code}): {_error_message(response)}",
                response.status_code,
            )
        return RemoteObject.from_dict(key, response.json())

    def list_prefix(
        self,
        bucket: str,
        prefix: str,
        marker: str | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> ListPage:
        """Fetch one page of keys under prefix."""
        params: dict[str, str] = {"bucket": bucket, "prefix": prefix, "limit": str(limit)}
        if marker:
            params["marker"] = marker
        url = str(httpx.URL(self._url(self.hosts.rsf, "/list"), params=params))
        response = self._management_request("listPrefix", url)
        if not response.is_success:
            raise TransientNetworkError(
                f"listPrefix failed ({response.status_code}): {_error_message(response)}",
                response.status_code,
            )

        body = response.json()
        items = body.get("items")
        next_marker = body.get("marker")
        return ListPage(
            items=items if isinstance(items, list) else [],
            marker=next_marker if isinstance(next_marker, str) and next_marker else None,
        )

    def upload(self, bucket: str, key: str, path: Path, mime_type: str) -> dict[str, Any]:
        """Upload a local file with a form POST."""
        token = upload_token(self._credentials, bucket, key)
        url = self._url(self.hosts.up, "/")
        with open(path, "rb") as f:
            request = self._client.build_request(
                "POST",
                url,
                data={"token": token, "key": key},
                files={"file": (Path(path).name, f, mime_type)},
            )
            response = self._send("upload", request)

        if not response.is_success:
            raise TransientNetworkError(
                f"upload failed ({response.status_code}): {_error_message(response)}",
                response.status_code,
            )
        try:
            result: dict[str, Any] = response.json()
        except ValueError:
            result = {}
        return result
