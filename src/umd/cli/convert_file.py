"""CLI convert-file command.

The single-file converter spawned by the process manager in subprocess
mode. Exit status 0 means the sidecar was written.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from umd.cli.exit_codes import ExitCode
from umd.converters import ConversionError, convert_file

logger = logging.getLogger(__name__)


@click.command("convert-file")
@click.argument("path", type=click.Path(path_type=Path))
def convert_file_command(path: Path) -> None:
    """Convert one file and write PATH.md next to it."""
    try:
        output = convert_file(path)
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(ExitCode.TARGET_NOT_FOUND)
    except ConversionError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(ExitCode.CONVERSION_FAILED)
    click.echo(f"Saved markdown to {output}")
