"""Log formatters that surface batch conversion context.

Records pass through WorkerContextFilter first, which binds the job, worker
and file a batch worker is handling. The formatters here render that
binding so log lines from concurrent conversions can be told apart.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord carries, plus those set while formatting
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}

# Set by WorkerContextFilter and TextFormatter
CONVERSION_FIELDS: tuple[str, ...] = ("job_id", "worker_id", "file_id", "file_path")
_FILTER_ATTRS: frozenset[str] = frozenset(CONVERSION_FIELDS) | {
    "worker_tag",
    "job_tag",
}


def conversion_fields(record: logging.LogRecord) -> dict[str, str]:
    """Return the batch context bound to a record, skipping unset fields."""
    fields = {}
    for name in CONVERSION_FIELDS:
        value = getattr(record, name, None)
        if value:
            fields[name] = value
    return fields


class TextFormatter(logging.Formatter):
    """Plain text lines prefixed with the job id of the batch, if any.

    Example::

        2026-01-05T10:00:00+0000 - [job-1a2b] [W01:F003] umd.jobs.process - INFO - ...
    """

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "worker_tag"):
            record.worker_tag = ""
        job_id = getattr(record, "job_id", None)
        record.job_tag = f"[{job_id}] " if job_id else ""
        return super().format(record)


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line.

    Each entry has:
    - timestamp: ISO-8601 UTC
    - level: Log level name
    - message: Rendered message
    - logger: Logger name (omitted for root)
    - conversion: job_id, worker_id, file_id and file_path of the batch
      worker that logged the line
    - context: Anything passed via ``extra=``
    - exception: Formatted traceback, when present
    """

    def format(self, record: logging.LogRecord) -> str:
        record_time = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_entry: dict[str, Any] = {
            "timestamp": record_time.isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }

        if record.name and record.name != "root":
            log_entry["logger"] = record.name

        conversion = conversion_fields(record)
        if conversion:
            log_entry["conversion"] = conversion

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
            and key not in _FILTER_ATTRS
            and not key.startswith("_")
        }
        if context:
            log_entry["context"] = context

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)
