"""Hash command for kodosync CLI.

Commands:
- hash: Print the content fingerprint of local files
"""

from __future__ import annotations

from pathlib import Path

import click

from kodosync.core.hashing import qetag_file


@click.command(name="hash")
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def hash_files(files: tuple[Path, ...]) -> None:
    """Print the Kodo fingerprint (qetag) of each FILE."""
    for path in files:
        click.echo(f"{qetag_file(path)}  {path}")
