"""Command-line interface for kodosync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- deploy: Upload changed files to the bucket
- hash: Print content fingerprints of local files
"""

from __future__ import annotations

import logging
import sys

import click

from kodosync.cli.deploy import deploy
from kodosync.cli.hash import hash_files

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False) -> None:
    """Send kodosync logs to stdout.

    Args:
        verbose: Log at DEBUG instead of INFO.
    """
    package_logger = logging.getLogger("kodosync")
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(stdout_handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)


@click.group()
@click.version_option(package_name="kodosync")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """kodosync - incremental static site upload to Kodo object storage."""
    setup_logging(verbose)


cli.add_command(deploy)
cli.add_command(hash_files)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = ["cli", "main", "setup_logging"]
