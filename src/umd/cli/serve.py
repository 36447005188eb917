"""CLI serve command: run the HTTP orchestration server."""

from __future__ import annotations

import asyncio
import dataclasses
import errno
import logging
import os
import sys
from pathlib import Path

import click

from umd.cli.exit_codes import ExitCode
from umd.config import ConfigError, UMDConfig, get_config
from umd.logging import configure_logging

logger = logging.getLogger(__name__)


def _configure_server_logging(
    config: UMDConfig, log_level: str | None, log_format: str | None
) -> None:
    """Configure logging for server mode; stderr is always included."""
    overrides: dict[str, object] = {"include_stderr": True}
    if log_level:
        overrides["level"] = log_level
    if log_format:
        overrides["format"] = log_format
    configure_logging(dataclasses.replace(config.logging, **overrides))


async def run_server(config: UMDConfig, host: str, port: int) -> int:
    """Run the server until SIGTERM or SIGINT.

    Args:
        config: Effective configuration.
        host: Address to bind to.
        port: Port to bind to.

    Returns:
        Exit code (0 for clean shutdown, non-zero for errors).
    """
    from aiohttp import web

    from umd.server.app import create_app
    from umd.server.lifecycle import ServerLifecycle
    from umd.server.signals import remove_signal_handlers, setup_signal_handlers

    lifecycle = ServerLifecycle(shutdown_timeout=config.server.shutdown_timeout)
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    setup_signal_handlers(loop, lifecycle, shutdown_event)

    app = create_app(config, lifecycle=lifecycle)
    runner = web.AppRunner(app, shutdown_timeout=config.server.shutdown_timeout)
    await runner.setup()

    try:
        site = web.TCPSite(runner, host, port)
        await site.start()

        logger.info(
            "Orchestrator server started on http://%s:%d (PID %d)",
            host,
            port,
            os.getpid(),
        )
        logger.info("Health endpoint: http://%s:%d/api/health", host, port)
        logger.info("Event stream: http://%s:%d/api/events", host, port)
        logger.info("Press Ctrl+C or send SIGTERM to stop")

        await shutdown_event.wait()
        logger.info(
            "Shutdown initiated, waiting up to %.1fs for cleanup",
            config.server.shutdown_timeout,
        )
    except OSError as e:
        if e.errno == errno.EADDRINUSE:
            logger.error("Port %d is already in use", port)
            return ExitCode.GENERAL_ERROR
        if e.errno == errno.EADDRNOTAVAIL:
            logger.error("Cannot bind to address %s", host)
            return ExitCode.GENERAL_ERROR
        logger.error("Server error: %s", e)
        return ExitCode.GENERAL_ERROR
    finally:
        remove_signal_handlers(loop)
        await runner.cleanup()
        logger.info("Orchestrator server stopped")

    return ExitCode.SUCCESS


@click.command("serve")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to configuration file (default: ~/.umd/config.toml).",
)
@click.option("--host", type=str, default=None, help="Address to bind to (default: 127.0.0.1).")
@click.option("--port", "-p", type=int, default=None, help="Port to bind to (default: 3000).")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default=None,
    help="Log format: text or json (default: text).",
)
@click.pass_context
def serve_command(
    ctx: click.Context,
    config_path: Path | None,
    host: str | None,
    port: int | None,
    log_level: str | None,
    log_format: str | None,
) -> None:
    """Run the HTTP orchestration server.

    Exposes scan, conversion, exclusion and event-stream endpoints under
    /api. Handles graceful shutdown on SIGTERM or SIGINT (Ctrl+C): running
    conversions are cancelled and stream clients disconnected.

    Configuration precedence (highest to lowest):
      1. CLI flags (--host, --port, --log-level, --log-format)
      2. Environment variables (UMD_*)
      3. Config file (--config or ~/.umd/config.toml)
      4. Default values

    \b
    Examples:
        umd serve
        umd serve --port 8080
        umd serve --host 0.0.0.0 --log-format json
    """
    from umd.cli import get_cli_config

    if config_path is not None:
        try:
            config = get_config(config_path=config_path, strict=True)
        except ConfigError as e:
            raise click.ClickException(str(e)) from e
    else:
        config = get_cli_config(ctx)

    _configure_server_logging(config, log_level, log_format)

    server_host = host if host is not None else config.server.host
    server_port = port if port is not None else config.server.port

    if not 1 <= server_port <= 65535:
        logger.error("Port must be 1-65535, got %d", server_port)
        sys.exit(ExitCode.INVALID_ARGUMENTS)

    if server_port < 1024:
        logger.warning("Port %d is privileged and may require root", server_port)

    logger.info(
        "Starting orchestrator server (host=%s, port=%d, data_dir=%s)",
        server_host,
        server_port,
        config.data_dir,
    )

    try:
        exit_code = asyncio.run(run_server(config, server_host, server_port))
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted before server started")
        sys.exit(ExitCode.INTERRUPTED)
