"""Batch conversion jobs: state ledger, records, and process management."""

from umd.jobs.exceptions import (
    BatchNotFoundError,
    ConversionStateError,
    FileNotInBatchError,
)
from umd.jobs.models import (
    TERMINAL_STATUSES,
    BatchState,
    BatchStats,
    ConversionRecord,
    ConversionResult,
    ConversionStatus,
)
from umd.jobs.process import ProcessManager
from umd.jobs.state import ConversionStateStore

__all__ = [
    "TERMINAL_STATUSES",
    "BatchNotFoundError",
    "BatchState",
    "BatchStats",
    "ConversionRecord",
    "ConversionResult",
    "ConversionStateError",
    "ConversionStateStore",
    "ConversionStatus",
    "FileNotInBatchError",
    "ProcessManager",
]
