"""Worker context for structured logging.

Batch workers run as asyncio tasks, each with its own copy of the current
context. Binding the job, worker and file here lets every log line emitted
while a file is being converted carry that identity without threading it
through each call.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_job_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_id", default=None
)
_worker_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "worker_id", default=None
)
_file_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "file_id", default=None
)
_file_path: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "file_path", default=None
)


def set_worker_context(
    worker_id: str,
    file_id: str | None = None,
    file_path: str | None = None,
    job_id: str | None = None,
) -> None:
    """Set the current worker context.

    Args:
        worker_id: Worker identifier within the batch (e.g., "01").
        file_id: File identifier by discovery order (e.g., "F003").
        file_path: Path of the file being converted.
        job_id: Batch the worker belongs to.
    """
    _worker_id.set(worker_id)
    _file_id.set(file_id)
    _file_path.set(file_path)
    _job_id.set(job_id)


def clear_worker_context() -> None:
    """Clear the current worker context."""
    _worker_id.set(None)
    _file_id.set(None)
    _file_path.set(None)
    _job_id.set(None)


@contextmanager
def worker_context(
    worker_id: str,
    file_id: str | None = None,
    file_path: str | None = None,
    job_id: str | None = None,
) -> Generator[None, None, None]:
    """Bind worker context for the duration of a block.

    The previous values are restored on exit, so nested use is safe.

    Example:
        with worker_context("01", "F003", "/docs/report.pdf", "job-1a2b3c4d"):
            logger.info("Converting")  # Tagged [W01:F003]
    """
    previous = get_worker_context()
    previous_job = _job_id.get()
    try:
        set_worker_context(worker_id, file_id, file_path, job_id)
        yield
    finally:
        _worker_id.set(previous[0])
        _file_id.set(previous[1])
        _file_path.set(previous[2])
        _job_id.set(previous_job)


def get_worker_context() -> tuple[str | None, str | None, str | None]:
    """Get current worker context.

    Returns:
        Tuple of (worker_id, file_id, file_path), any may be None.
    """
    return _worker_id.get(), _file_id.get(), _file_path.get()


def get_job_context() -> str | None:
    """Get the job id bound to the current context, if any."""
    return _job_id.get()


class WorkerContextFilter(logging.Filter):
    """Logging filter that injects worker context into log records.

    Adds job_id, worker_id, file_id and file_path attributes for the JSON
    formatter, plus a compact worker_tag like ``[W01:F003] `` for text
    output.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        worker_id, file_id, file_path = get_worker_context()

        record.job_id = _job_id.get()
        record.worker_id = worker_id
        record.file_id = file_id
        record.file_path = file_path

        if worker_id:
            if file_id:
                record.worker_tag = f"[W{worker_id}:{file_id}] "
            else:
                record.worker_tag = f"[W{worker_id}] "
        else:
            record.worker_tag = ""

        return True
