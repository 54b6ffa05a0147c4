"""Configuration for a kodosync run.

SyncConfig is a plain dataclass handed to the orchestrator and the Kodo
client. It is usually built from environment variables with from_env(); the
CLI overrides individual fields from its options.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from kodosync.core.errors import ConfigError

DEFAULT_CONCURRENCY = 8
DEFAULT_TIMEOUT = 30.0  # seconds
DEFAULT_LOCAL_ROOT = "out"

AUTO_ZONE = "auto"
SUPPORTED_ZONES = ("z0", "z1", "z2", "na0", "as0")


def default_hash_workers() -> int:
    """Default size of the hashing pool."""
    return max(1, min(4, os.cpu_count() or 1))


def normalize_prefix(raw: str | None) -> str:
    """Normalize a key prefix to ``dir/sub`` form (no leading/trailing slash).

    Args:
        raw: Prefix as configured, e.g. "/demo/" or "/".

    Returns:
        Normalized prefix, empty string for no prefix.
    """
    value = (raw or "").strip()
    if not value or value == "/":
        return ""
    if value.startswith("/"):
        value = value[1:]
    return value.rstrip("/")


def key_prefix_for(raw: str | None) -> str:
    """Return the prefix prepended to relative paths ("" or "prefix/")."""
    prefix = normalize_prefix(raw)
    return f"{prefix}/" if prefix else ""


def parse_zone(raw: str | None) -> str:
    """Validate a zone name, returning "auto" when unset."""
    value = (raw or "").strip().lower()
    if not value or value == AUTO_ZONE:
        return AUTO_ZONE
    if value not in SUPPORTED_ZONES:
        raise ConfigError(f"Unknown QINIU_ZONE: {value}")
    return value


def _require(env: Mapping[str, str], name: str) -> str:
    value = env.get(name)
    if value is None or not str(value).strip():
        raise ConfigError(f"Missing env: {name}")
    return str(value).strip()


def _flag(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    return str(raw).strip() == "1"


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    try:
        value = int(str(env.get(name) or "").strip())
    except ValueError:
        return default
    if value == 0:
        return default
    return max(1, value)


def _timeout(env: Mapping[str, str]) -> float | None:
    raw = str(env.get("QINIU_TIMEOUT") or "").strip()
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid QINIU_TIMEOUT: {raw}") from e
    return value if value > 0 else None


@dataclass
class SyncConfig:
    """Settings for one sync run.

    Attributes:
        access_key: Kodo access key.
        secret_key: Kodo secret key.
        bucket: Target bucket name.
        local_root: Directory whose files are uploaded.
        key_prefix: Prefix prepended to every key ("" or ending with "/").
        concurrency: Maximum concurrent file tasks.
        hash_workers: Size of the dedicated hashing pool.
        force_upload: Upload every file without comparing.
        dry_run: Plan and log only, no upload calls.
        zone: "auto" or one of SUPPORTED_ZONES.
        use_https: Use https endpoints.
        timeout: Per-request timeout in seconds, None for no timeout.
    """

    access_key: str
    secret_key: str
    bucket: str
    local_root: Path = Path(DEFAULT_LOCAL_ROOT)
    key_prefix: str = ""
    concurrency: int = DEFAULT_CONCURRENCY
    hash_workers: int = 0
    force_upload: bool = False
    dry_run: bool = False
    zone: str = AUTO_ZONE
    use_https: bool = False
    timeout: float | None = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        """Validate and normalize fields."""
        for name in ("access_key", "secret_key", "bucket"):
            if not getattr(self, name):
                raise ConfigError(f"Missing required setting: {name}")
        self.local_root = Path(self.local_root)
        self.key_prefix = key_prefix_for(self.key_prefix)
        self.zone = parse_zone(self.zone)
        if self.concurrency < 1:
            raise ConfigError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.hash_workers < 1:
            self.hash_workers = default_hash_workers()

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str] | None = None,
        local_root: Path | str | None = None,
    ) -> SyncConfig:
        """Build a configuration from environment variables.

        Args:
            env: Environment mapping, defaults to os.environ.
            local_root: Local directory, defaults to ./out.

        Returns:
            Validated configuration.

        Raises:
            ConfigError: If credentials or bucket are missing, or a value is invalid.
        """
        if env is None:
            env = os.environ

        access_key = _require(env, "QINIU_ACCESS_KEY")
        secret_key = _require(env, "QINIU_SECRET_KEY")
        bucket = _require(env, "QINIU_BUCKET")

        raw_prefix = env.get("QINIU_KEY_PREFIX") or env.get("NEXT_PUBLIC_BASE_PATH")

        return cls(
            access_key=access_key,
            secret_key=secret_key,
            bucket=bucket,
            local_root=Path(local_root) if local_root else Path.cwd() / DEFAULT_LOCAL_ROOT,
            key_prefix=raw_prefix or "",
            concurrency=_positive_int(env, "QINIU_THREAD_COUNT", DEFAULT_CONCURRENCY),
            hash_workers=_positive_int(env, "QINIU_HASH_WORKERS", default_hash_workers()),
            force_upload=_flag(env, "QINIU_FORCE_UPLOAD"),
            dry_run=_flag(env, "QINIU_DRY_RUN"),
            zone=parse_zone(env.get("QINIU_ZONE")),
            use_https=_flag(env, "QINIU_USE_HTTPS_DOMAIN"),
            timeout=_timeout(env),
        )

    @property
    def scheme(self) -> str:
        """URL scheme for API endpoints."""
        return "https" if self.use_https else "http"
