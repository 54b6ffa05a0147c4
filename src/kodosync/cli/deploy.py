"""Deploy command for kodosync CLI.

Commands:
- deploy: Upload changed files from a local directory to the bucket
"""

from __future__ import annotations

import dataclasses
import logging
import sys
from pathlib import Path

import click

from kodosync.core.config import DEFAULT_LOCAL_ROOT, SUPPORTED_ZONES, SyncConfig
from kodosync.core.errors import ConfigError, KodoSyncError

logger = logging.getLogger(__name__)


@click.command()
@click.argument("out_dir", required=False, type=click.Path(path_type=Path))
@click.option("--force", is_flag=True, help="Upload every file, even unchanged ones.")
@click.option("--dry-run", is_flag=True, help="Only print the upload plan.")
@click.option("--concurrency", "-j", type=click.IntRange(min=1), help="Concurrent file tasks.")
@click.option("--prefix", help="Key prefix (overrides QINIU_KEY_PREFIX).")
@click.option(
    "--zone",
    type=click.Choice(["auto", *SUPPORTED_ZONES], case_sensitive=False),
    help="Bucket region (overrides QINIU_ZONE).",
)
def deploy(
    out_dir: Path | None,
    force: bool,
    dry_run: bool,
    concurrency: int | None,
    prefix: str | None,
    zone: str | None,
) -> None:
    """Upload OUT_DIR (default: ./out) to the Kodo bucket.

    Credentials and bucket come from QINIU_ACCESS_KEY, QINIU_SECRET_KEY and
    QINIU_BUCKET. Only files whose size or content fingerprint differs from
    the remote copy are uploaded.
    """
    from kodosync.client.api import KodoClient
    from kodosync.sync.orchestrator import SyncOrchestrator

    local_root = out_dir or Path.cwd() / DEFAULT_LOCAL_ROOT
    if not local_root.is_dir():
        click.echo(f"Error: {local_root} not found. Build the site first.", err=True)
        sys.exit(1)

    try:
        config = SyncConfig.from_env(local_root=local_root)
        overrides: dict[str, object] = {}
        if force:
            overrides["force_upload"] = True
        if dry_run:
            overrides["dry_run"] = True
        if concurrency is not None:
            overrides["concurrency"] = concurrency
        if prefix is not None:
            overrides["key_prefix"] = prefix
        if zone is not None:
            overrides["zone"] = zone
        if overrides:
            config = dataclasses.replace(config, **overrides)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        store = KodoClient.from_config(config)
        try:
            result = SyncOrchestrator(config, store).run()
        finally:
            store.close()
    except KodoSyncError as e:
        logger.debug("Sync aborted", exc_info=True)
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if result.failures:
        click.echo(click.style("\nFailed:", fg="red"), err=True)
        for failure in result.failures:
            click.echo(f"  ✗ {failure.key}: {failure.error}", err=True)

    sys.exit(result.exit_code(config.dry_run))
