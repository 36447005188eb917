"""Structured logging for the orchestrator.

Text or JSON output, optional rotating log file, and per-worker context
tags for concurrent batch conversions.
"""

from umd.logging.config import configure_logging
from umd.logging.context import (
    WorkerContextFilter,
    clear_worker_context,
    get_job_context,
    get_worker_context,
    set_worker_context,
    worker_context,
)
from umd.logging.handlers import JSONFormatter, TextFormatter

__all__ = [
    "JSONFormatter",
    "TextFormatter",
    "WorkerContextFilter",
    "clear_worker_context",
    "configure_logging",
    "get_job_context",
    "get_worker_context",
    "set_worker_context",
    "worker_context",
]
