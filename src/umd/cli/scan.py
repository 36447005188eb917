"""CLI scan command."""

from __future__ import annotations

import json
import logging
import os
import sys

import click

from umd.cli.exit_codes import ExitCode
from umd.core.formatting import format_file_size
from umd.exclusions import ExclusionService
from umd.scanner import (
    DiscoveredFile,
    FileDiscovery,
    ScanError,
    ScanOptions,
    ScanPathNotFoundError,
    ScanResult,
)

logger = logging.getLogger(__name__)

# Files listed per section unless --all is given
LIST_LIMIT = 20
RULE = "-" * 50


def parse_extensions(value: str | None) -> list[str] | None:
    """Split a comma-separated extension list (``pdf, .DOCX``)."""
    if not value:
        return None
    return [e.strip().lower().lstrip(".") for e in value.split(",") if e.strip()]


def run_scan(
    directory: str,
    exclusions: ExclusionService,
    *,
    recursive: bool,
    max_depth: int | None,
    extensions: list[str] | None,
) -> ScanResult:
    """Scan directory with the exclusion rules in effect for it.

    Exits the process with TARGET_NOT_FOUND or GENERAL_ERROR on failure.
    """
    root = os.path.abspath(directory)
    options = ScanOptions(
        recursive=recursive,
        max_depth=max_depth,
        extensions=extensions,
        rules=exclusions.get_rules_for_scope(root),
    )
    try:
        return FileDiscovery(options).scan(root)
    except ScanPathNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(ExitCode.TARGET_NOT_FOUND)
    except ScanError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(ExitCode.GENERAL_ERROR)


def _print_summary(result: ScanResult) -> None:
    click.echo("\nScan Summary")
    click.echo(RULE)
    click.echo(f"  Directories scanned: {result.directories_scanned:,}")
    click.echo(f"  Total files scanned: {result.total_scanned:,}")
    click.echo(f"  Convertible files:   {len(result.files):,}")
    click.echo(f"  Already converted:   {len(result.converted):,}")
    click.echo(f"  Pending:             {len(result.pending):,}")
    if result.excluded:
        click.echo(f"  Excluded:            {len(result.excluded):,}")
    if result.errors:
        click.echo(f"  Errors:              {len(result.errors):,}")
    click.echo("")


def _print_file_list(
    files: tuple[DiscoveredFile, ...], title: str, root: str, show_all: bool
) -> None:
    if not files:
        return
    click.echo(title)
    click.echo(RULE)
    shown = files if show_all else files[:LIST_LIMIT]
    for file in shown:
        marker = "done" if file.has_markdown else "todo"
        relative = os.path.relpath(file.path, root)
        click.echo(
            f"  [{marker}] [{file.extension.upper()}] {relative} "
            f"({format_file_size(file.size)})"
        )
    if len(files) > len(shown):
        click.echo(f"  ... and {len(files) - len(shown)} more files")
    click.echo("")


@click.command("scan")
@click.argument("directory", type=click.Path(file_okay=False))
@click.option(
    "--recursive/--no-recursive",
    default=True,
    help="Descend into subdirectories (default: recursive).",
)
@click.option(
    "--max-depth",
    "-d",
    type=click.IntRange(min=0),
    default=None,
    help="Maximum recursion depth (root is 0).",
)
@click.option(
    "--extensions",
    "-e",
    default=None,
    help="Comma-separated extensions to include (e.g. pdf,docx).",
)
@click.option("--pending-only", is_flag=True, help="Only list files pending conversion.")
@click.option("--converted-only", is_flag=True, help="Only list converted files.")
@click.option(
    "--all", "-a", "show_all", is_flag=True, help="List every file, not just the first 20."
)
@click.option("--json", "as_json", is_flag=True, help="Output the full result as JSON.")
@click.pass_context
def scan_command(
    ctx: click.Context,
    directory: str,
    recursive: bool,
    max_depth: int | None,
    extensions: str | None,
    pending_only: bool,
    converted_only: bool,
    show_all: bool,
    as_json: bool,
) -> None:
    """Find convertible files and report which still need markdown.

    Examples:

    \b
        umd scan ~/Documents
        umd scan ./reports --no-recursive -e pdf,docx
        umd scan ./reports --json
    """
    from umd.cli import get_cli_config

    config = get_cli_config(ctx)
    result = run_scan(
        directory,
        ExclusionService(config.exclusions_path),
        recursive=recursive,
        max_depth=max_depth,
        extensions=parse_extensions(extensions),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    _print_summary(result)
    root = result.root_path
    if converted_only:
        _print_file_list(result.converted, "Already Converted:", root, show_all)
    else:
        _print_file_list(result.pending, "Pending Conversion:", root, show_all)
        if result.converted and not pending_only:
            click.echo(
                f"{len(result.converted)} file(s) already converted "
                "(use --converted-only to list them)\n"
            )

    for error in result.errors:
        click.echo(f"Warning: {error}", err=True)
