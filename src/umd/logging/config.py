"""Logging setup for the server, the CLI and converter child processes.

Every process logs through the root logger. Lines emitted by a batch worker
carry the job and worker tags bound in :mod:`umd.logging.context`.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from umd.logging.context import WorkerContextFilter
from umd.logging.handlers import JSONFormatter, TextFormatter

if TYPE_CHECKING:
    from umd.config.models import LoggingConfig

_LEVEL_MAP: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

TEXT_FORMAT = (
    "%(asctime)s - %(job_tag)s%(worker_tag)s%(name)s - %(levelname)s - %(message)s"
)
TEXT_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"

# Per-request and per-page INFO lines that bury conversion progress
QUIET_LOGGERS: tuple[str, ...] = ("aiohttp.access", "pdfminer")


def _build_formatter(config: LoggingConfig) -> logging.Formatter:
    if config.format.casefold() == "json":
        return JSONFormatter()
    return TextFormatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT)


def _open_log_file(config: LoggingConfig) -> RotatingFileHandler | None:
    """Open the rotating log file, or return None when it cannot be opened."""
    if not config.file:
        return None
    file_path = Path(config.file).expanduser()
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(
            file_path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        sys.stderr.write(f"Warning: Could not open log file {config.file}: {e}\n")
        return None


def configure_logging(config: LoggingConfig) -> None:
    """Install handlers on the root logger according to config.

    Replaces any existing root handlers. When a log file is configured but
    cannot be opened, output falls back to stderr with a warning. Below
    debug level the loggers in QUIET_LOGGERS only report warnings.

    Args:
        config: Logging configuration.
    """
    level = _LEVEL_MAP.get(config.level.casefold(), logging.INFO)
    formatter = _build_formatter(config)
    context_filter = WorkerContextFilter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handlers: list[logging.Handler] = []
    file_handler = _open_log_file(config)
    if file_handler is not None:
        handlers.append(file_handler)
    if config.include_stderr or file_handler is None:
        handlers.append(logging.StreamHandler(sys.stderr))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)

    quiet_level = logging.WARNING if level > logging.DEBUG else logging.NOTSET
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
