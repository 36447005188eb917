"""CLI convert command: scan a directory, then batch-convert it."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import os
import secrets
import string
import sys
import time

import click

from umd.cli.exit_codes import ExitCode
from umd.cli.scan import RULE, parse_extensions, run_scan
from umd.exclusions import ExclusionService
from umd.jobs import ConversionResult, ConversionStateStore, ProcessManager

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    digits = []
    while True:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
        if value == 0:
            return "".join(reversed(digits))


def generate_job_id() -> str:
    """Return a batch id like ``batch-m1x2y3z4-k9a0b1``."""
    timestamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"batch-{timestamp}-{suffix}"


async def _run_batch(
    manager: ProcessManager,
    files: list[str],
    job_id: str,
    *,
    concurrency: int,
    skip_converted: bool,
) -> list[ConversionResult]:
    def on_progress(done: int, total: int) -> None:
        click.echo(f"  Progress: {done}/{total} files converted...")

    try:
        return await manager.convert_batch(
            files,
            job_id,
            concurrency=concurrency,
            skip_converted=skip_converted,
            on_progress=on_progress,
        )
    except asyncio.CancelledError:
        manager.cancel_all()
        raise


@click.command("convert")
@click.argument("directory", type=click.Path(file_okay=False))
@click.option(
    "--concurrency",
    "-c",
    type=click.IntRange(min=1),
    default=None,
    help="Number of simultaneous conversions (default: from config, 3).",
)
@click.option(
    "--include-converted",
    is_flag=True,
    help="Re-convert files that already have markdown.",
)
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
@click.option("--dry-run", is_flag=True, help="List what would be converted and exit.")
@click.option(
    "--agent",
    is_flag=True,
    help="Convert with the headless agent instead of the built-in converter.",
)
@click.pass_context
def convert_command(
    ctx: click.Context,
    directory: str,
    concurrency: int | None,
    include_converted: bool,
    recursive: bool,
    max_depth: int | None,
    extensions: str | None,
    dry_run: bool,
    agent: bool,
) -> None:
    """Convert every pending file under DIRECTORY to markdown.

    Examples:

    \b
        umd convert ~/Documents
        umd convert ./scans -c 5 -e pdf
        umd convert ./slides --dry-run
    """
    from umd.cli import get_cli_config

    config = get_cli_config(ctx)
    click.echo("Scanning for files...")
    result = run_scan(
        directory,
        ExclusionService(config.exclusions_path),
        recursive=recursive,
        max_depth=max_depth,
        extensions=parse_extensions(extensions),
    )
    click.echo(f"Found {len(result.files)} files ({len(result.pending)} pending)")

    selected = result.files if include_converted else result.pending
    files = [f.path for f in selected]
    if not files:
        click.echo("\nNo files to convert. All files are already converted.")
        return

    if dry_run:
        click.echo("\nDry run - would convert these files:")
        click.echo(RULE)
        for path in files:
            click.echo(f"  {path}")
        click.echo(f"\nTotal: {len(files)} files")
        return

    conversion = config.conversion
    if agent:
        conversion = dataclasses.replace(conversion, mode="agent")
    workers = concurrency or conversion.concurrency

    state = ConversionStateStore(config.state_path)
    manager = ProcessManager(state, conversion)
    job_id = generate_job_id()
    state.create_batch(job_id, os.path.abspath(directory))

    click.echo(f"\nStarting batch conversion (Job ID: {job_id})")
    click.echo(f"  Concurrency: {workers}")
    click.echo(f"  Files: {len(files)}")
    click.echo(RULE)

    start = time.monotonic()
    try:
        results = asyncio.run(
            _run_batch(
                manager,
                files,
                job_id,
                concurrency=workers,
                skip_converted=not include_converted,
            )
        )
    except KeyboardInterrupt:
        click.echo("\nConversion interrupted.", err=True)
        sys.exit(ExitCode.INTERRUPTED)

    succeeded = [r for r in results if r.success]
    failed = [r for r in results if not r.success]
    click.echo("\nBatch Conversion Complete")
    click.echo(RULE)
    click.echo(f"  Succeeded: {len(succeeded)}")
    click.echo(f"  Failed:    {len(failed)}")
    click.echo(f"  Duration:  {time.monotonic() - start:.1f}s")

    if failed:
        click.echo("\nFailed files:")
        for r in failed:
            click.echo(f"  - {r.file_path}")
            if r.error:
                click.echo(f"    Error: {r.error[:100]}")

    click.echo(f"\nState saved for job: {job_id}")
    if failed:
        sys.exit(ExitCode.CONVERSION_FAILED)
