"""CLI module for the markdown conversion orchestrator."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

import click

from umd.config import ConfigError, UMDConfig, get_config
from umd.logging import configure_logging

logger = logging.getLogger(__name__)

_logging_configured: bool = False


def _configure_logging(
    config: UMDConfig,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """Configure logging from config with CLI overrides applied."""
    global _logging_configured
    if _logging_configured:
        return

    overrides: dict[str, object] = {}
    if log_level:
        overrides["level"] = log_level
    if log_file:
        overrides["file"] = log_file
    if log_json:
        overrides["format"] = "json"
    configure_logging(dataclasses.replace(config.logging, **overrides))
    _logging_configured = True


def get_cli_config(ctx: click.Context) -> UMDConfig:
    """Return the configuration loaded by the main group."""
    config = ctx.obj.get("config") if ctx.obj else None
    if config is None:
        config = get_config()
    return config


@click.group()
@click.version_option(package_name="umd-orchestrator")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.pass_context
def main(
    ctx: click.Context,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """Batch-convert images, PDFs and Office documents to markdown."""
    ctx.ensure_object(dict)

    # Preserve a config passed in by tests
    if "config" not in ctx.obj:
        try:
            ctx.obj["config"] = get_config()
        except ConfigError as e:
            raise click.ClickException(str(e)) from e

    # serve configures its own logging from --config
    if ctx.invoked_subcommand != "serve":
        _configure_logging(ctx.obj["config"], log_level, log_file, log_json)


# Defer import to avoid circular dependency
def _register_commands() -> None:
    from umd.cli.convert import convert_command
    from umd.cli.convert_file import convert_file_command
    from umd.cli.scan import scan_command
    from umd.cli.serve import serve_command
    from umd.cli.status import status_command

    main.add_command(scan_command)
    main.add_command(convert_command)
    main.add_command(status_command)
    main.add_command(convert_file_command)
    main.add_command(serve_command)


_register_commands()
