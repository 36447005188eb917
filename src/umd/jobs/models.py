"""Data models for batch conversion jobs.

Durations are in seconds. ``to_dict`` produces the camelCase shape used by
``orchestrator-state.json`` and the HTTP API.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from umd.core.datetime_utils import parse_iso_timestamp, to_iso, utc_now


class ConversionStatus(Enum):
    """Status of one file within a batch.

    Transitions:
        pending → in-progress
        pending → completed | failed | skipped
        in-progress → completed | failed | skipped

    Terminal states: completed, failed, skipped
    """

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: frozenset[ConversionStatus] = frozenset(
    {ConversionStatus.COMPLETED, ConversionStatus.FAILED, ConversionStatus.SKIPPED}
)


def _parse_optional_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return parse_iso_timestamp(value)


@dataclass
class ConversionRecord:
    """One file's conversion lifecycle within a batch."""

    file_path: str
    status: ConversionStatus = ConversionStatus.PENDING
    file_index: int = 0
    """Position of the file in the batch, in registration order."""

    started_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None
    output_path: str | None = None
    stdout: str | None = None
    stderr: str | None = None
    duration: float | None = None

    def copy(self) -> ConversionRecord:
        return dataclasses.replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "filePath": self.file_path,
            "fileIndex": self.file_index,
            "status": self.status.value,
            "startedAt": to_iso(self.started_at),
            "completedAt": to_iso(self.completed_at),
            "error": self.error,
            "outputPath": self.output_path,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "duration": self.duration,
        }

    def to_summary(self) -> dict[str, Any]:
        """Status view without captured output."""
        return {
            "path": self.file_path,
            "fileIndex": self.file_index,
            "status": self.status.value,
            "startedAt": to_iso(self.started_at),
            "completedAt": to_iso(self.completed_at),
            "duration": self.duration,
            "error": self.error,
            "outputPath": self.output_path,
        }

    def to_log_dict(self) -> dict[str, Any]:
        """Captured output view for log endpoints."""
        return {
            "filePath": self.file_path,
            "fileIndex": self.file_index,
            "status": self.status.value,
            "stdout": self.stdout or "",
            "stderr": self.stderr or "",
            "error": self.error,
            "duration": self.duration,
            "startedAt": to_iso(self.started_at),
            "completedAt": to_iso(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversionRecord:
        duration = data.get("duration")
        return cls(
            file_path=data["filePath"],
            status=ConversionStatus(data.get("status", "pending")),
            file_index=int(data.get("fileIndex", 0)),
            started_at=_parse_optional_timestamp(data.get("startedAt")),
            completed_at=_parse_optional_timestamp(data.get("completedAt")),
            error=data.get("error"),
            output_path=data.get("outputPath"),
            stdout=data.get("stdout"),
            stderr=data.get("stderr"),
            duration=float(duration) if duration is not None else None,
        )


@dataclass
class BatchState:
    """A batch job and its per-file records, keyed by path in file order."""

    job_id: str
    root_path: str
    created_at: datetime = field(default_factory=utc_now)
    records: dict[str, ConversionRecord] = field(default_factory=dict)

    def snapshot(self) -> BatchState:
        """Copy that is safe to read while workers keep updating the original."""
        return BatchState(
            job_id=self.job_id,
            root_path=self.root_path,
            created_at=self.created_at,
            records={path: record.copy() for path, record in self.records.items()},
        )

    def record_list(self) -> list[ConversionRecord]:
        return list(self.records.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "jobId": self.job_id,
            "createdAt": self.created_at.isoformat(),
            "rootPath": self.root_path,
            "records": {path: r.to_dict() for path, r in self.records.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BatchState:
        records = {
            path: ConversionRecord.from_dict(raw)
            for path, raw in (data.get("records") or {}).items()
        }
        return cls(
            job_id=data["jobId"],
            root_path=data.get("rootPath", ""),
            created_at=parse_iso_timestamp(data["createdAt"]),
            records=records,
        )


@dataclass(frozen=True)
class BatchStats:
    """Per-status record counts for one batch."""

    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def finished(self) -> bool:
        """True when no record is pending or in progress."""
        return self.pending == 0 and self.in_progress == 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "pending": self.pending,
            "inProgress": self.in_progress,
            "completed": self.completed,
            "failed": self.failed,
            "skipped": self.skipped,
        }

    @classmethod
    def from_records(cls, records: list[ConversionRecord]) -> BatchStats:
        counts = {status: 0 for status in ConversionStatus}
        for record in records:
            counts[record.status] += 1
        return cls(
            total=len(records),
            pending=counts[ConversionStatus.PENDING],
            in_progress=counts[ConversionStatus.IN_PROGRESS],
            completed=counts[ConversionStatus.COMPLETED],
            failed=counts[ConversionStatus.FAILED],
            skipped=counts[ConversionStatus.SKIPPED],
        )


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of converting a single file."""

    file_path: str
    success: bool
    output_path: str | None = None
    error: str | None = None
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0
    """Wall-clock seconds from dispatch to process exit."""

    spawned: bool = True
    """False when the file was rejected before any process was started."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "filePath": self.file_path,
            "success": self.success,
            "outputPath": self.output_path,
            "error": self.error,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "duration": self.duration,
        }
