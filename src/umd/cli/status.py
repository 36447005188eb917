"""CLI status command: show batch conversion progress."""

from __future__ import annotations

import json
import logging
import sys

import click

from umd.cli.exit_codes import ExitCode
from umd.cli.scan import RULE
from umd.core.formatting import format_duration
from umd.jobs import BatchState, ConversionStateStore, ConversionStatus

logger = logging.getLogger(__name__)

_STATUS_MARKERS = {
    ConversionStatus.PENDING: "[ ]",
    ConversionStatus.IN_PROGRESS: "[~]",
    ConversionStatus.COMPLETED: "[+]",
    ConversionStatus.FAILED: "[x]",
    ConversionStatus.SKIPPED: "[-]",
}


def _print_job_list(state: ConversionStateStore, batches: list[BatchState]) -> None:
    click.echo("Batch Jobs")
    click.echo(RULE)
    for batch in batches:
        stats = state.get_batch_stats(batch.job_id)
        finished = stats.completed + stats.failed + stats.skipped
        click.echo(
            f"  {batch.job_id}  {batch.created_at:%Y-%m-%d %H:%M:%S}  "
            f"{finished}/{stats.total} done, {stats.failed} failed  {batch.root_path}"
        )


def _print_batch(
    state: ConversionStateStore,
    batch: BatchState,
    *,
    failed_only: bool,
    show_logs: bool,
) -> None:
    stats = state.get_batch_stats(batch.job_id)
    percent = (stats.completed / stats.total * 100) if stats.total else 0.0

    click.echo(f"Job: {batch.job_id}")
    click.echo(f"Root: {batch.root_path}")
    click.echo(f"Created: {batch.created_at:%Y-%m-%d %H:%M:%S}")
    click.echo(RULE)
    click.echo(f"  Total:       {stats.total}")
    click.echo(f"  Completed:   {stats.completed}")
    click.echo(f"  Failed:      {stats.failed}")
    click.echo(f"  In progress: {stats.in_progress}")
    click.echo(f"  Pending:     {stats.pending}")
    if stats.skipped:
        click.echo(f"  Skipped:     {stats.skipped}")
    click.echo(f"  Progress:    {percent:.1f}%")
    click.echo("")

    records = batch.record_list()
    if failed_only:
        records = [r for r in records if r.status is ConversionStatus.FAILED]
        if not records:
            click.echo("No failed files.")
            return

    click.echo("Files:")
    for record in records:
        marker = _STATUS_MARKERS[record.status]
        duration = f" ({format_duration(record.duration)})" if record.duration else ""
        click.echo(f"  {marker} {record.file_path}{duration}")
        if record.error:
            click.echo(f"      Error: {record.error}")
        if show_logs:
            for label, text in (("stdout", record.stdout), ("stderr", record.stderr)):
                if text:
                    click.echo(f"      --- {label} ---")
                    for line in text.rstrip().splitlines():
                        click.echo(f"      {line}")


@click.command("status")
@click.argument("job_id", required=False)
@click.option("--all", "-a", "show_all", is_flag=True, help="List every batch job.")
@click.option("--failed-only", is_flag=True, help="Only show failed files.")
@click.option("--logs", "show_logs", is_flag=True, help="Include captured process output.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status_command(
    ctx: click.Context,
    job_id: str | None,
    show_all: bool,
    failed_only: bool,
    show_logs: bool,
    as_json: bool,
) -> None:
    """Show the state of a batch job (default: the most recent one).

    Examples:

    \b
        umd status
        umd status batch-m1x2y3z4-k9a0b1 --failed-only
        umd status --all --json
    """
    from umd.cli import get_cli_config

    state = ConversionStateStore(get_cli_config(ctx).state_path)
    batches = state.get_all_batches()

    if not batches:
        if as_json:
            click.echo(json.dumps({"jobs": []}, indent=2))
        else:
            click.echo("No batch jobs found.")
        return

    if show_all:
        if as_json:
            payload = [
                {**b.to_dict(), "stats": state.get_batch_stats(b.job_id).to_dict()}
                for b in batches
            ]
            click.echo(json.dumps({"jobs": payload}, indent=2))
        else:
            _print_job_list(state, batches)
        return

    if job_id is None:
        batch = batches[0]
    else:
        batch = state.get_batch(job_id)
        if batch is None:
            click.echo(f"Error: Job not found: {job_id}", err=True)
            click.echo("\nAvailable jobs:", err=True)
            for b in batches:
                click.echo(f"  {b.job_id}", err=True)
            sys.exit(ExitCode.TARGET_NOT_FOUND)

    if as_json:
        payload = {
            **batch.to_dict(),
            "stats": state.get_batch_stats(batch.job_id).to_dict(),
        }
        if failed_only:
            payload["records"] = {
                path: record
                for path, record in payload["records"].items()
                if record["status"] == ConversionStatus.FAILED.value
            }
        click.echo(json.dumps(payload, indent=2))
        return

    _print_batch(state, batch, failed_only=failed_only, show_logs=show_logs)
