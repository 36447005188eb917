"""Persistent ledger of batch jobs and per-file conversion records.

The in-memory map is the source of truth; ``orchestrator-state.json`` is a
best-effort mirror rewritten in full after every mutation. Each file in a
batch is owned by one worker at a time, so contention is only on the
top-level maps, which a single re-entrant lock serializes. Readers receive
snapshots, never the live objects.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from umd.core.datetime_utils import utc_now
from umd.core.json_utils import load_json_file, write_json_file
from umd.jobs.exceptions import BatchNotFoundError, FileNotInBatchError
from umd.jobs.models import BatchState, BatchStats, ConversionRecord, ConversionStatus

logger = logging.getLogger(__name__)


class ConversionStateStore:
    """JSON-file-backed store of BatchState objects keyed by job id."""

    def __init__(self, path: Path) -> None:
        """Load the ledger from path.

        A missing file starts empty. A corrupt file is logged and also
        starts empty; it is overwritten on the next mutation.
        """
        self._path = path
        self._lock = threading.RLock()
        self._batches: dict[str, BatchState] = self._load()

    def _load(self) -> dict[str, BatchState]:
        result = load_json_file(self._path, context="conversion state")
        if not result.success:
            logger.error("Failed to load conversion state: %s", result.error)
            return {}
        if result.value is None:
            return {}
        if not isinstance(result.value, dict):
            logger.error(
                "Failed to load conversion state: %s does not hold an object",
                self._path,
            )
            return {}

        batches: dict[str, BatchState] = {}
        for job_id, raw in result.value.items():
            try:
                batches[job_id] = BatchState.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed batch %s in state file: %s", job_id, e)
        logger.info("Loaded %d batch(es) from state", len(batches))
        return batches

    def _save(self) -> None:
        """Rewrite the ledger. Caller holds the lock."""
        payload = {job_id: batch.to_dict() for job_id, batch in self._batches.items()}
        try:
            write_json_file(self._path, payload)
        except OSError as e:
            logger.error("Failed to save conversion state to %s: %s", self._path, e)

    def _require_batch(self, job_id: str, operation: str) -> BatchState:
        batch = self._batches.get(job_id)
        if batch is None:
            raise BatchNotFoundError(job_id, operation)
        return batch

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def create_batch(self, job_id: str, root_path: str) -> BatchState:
        """Register a new, empty batch.

        The caller supplies a fresh id; an existing batch with the same id
        is left untouched and returned.
        """
        with self._lock:
            existing = self._batches.get(job_id)
            if existing is not None:
                logger.warning("Batch %s already exists, not recreating", job_id)
                return existing.snapshot()
            batch = BatchState(job_id=job_id, root_path=root_path)
            self._batches[job_id] = batch
            self._save()
            logger.debug("Created batch %s for %s", job_id, root_path)
            return batch.snapshot()

    def get_batch(self, job_id: str) -> BatchState | None:
        with self._lock:
            batch = self._batches.get(job_id)
            return batch.snapshot() if batch is not None else None

    def get_all_batches(self) -> list[BatchState]:
        """Return every batch, newest first."""
        with self._lock:
            batches = [batch.snapshot() for batch in self._batches.values()]
        return sorted(batches, key=lambda b: b.created_at, reverse=True)

    def get_batch_stats(self, job_id: str) -> BatchStats:
        """Count records per status.

        Raises:
            BatchNotFoundError: If job_id is unknown.
        """
        with self._lock:
            batch = self._require_batch(job_id, "get stats for")
            return BatchStats.from_records(batch.record_list())

    def clear_batch(self, job_id: str) -> bool:
        """Delete a batch. Returns False if it did not exist."""
        with self._lock:
            if self._batches.pop(job_id, None) is None:
                return False
            self._save()
            return True

    def clear_all(self) -> None:
        with self._lock:
            self._batches.clear()
            self._save()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def add_file(self, job_id: str, file_path: str) -> ConversionRecord:
        """Register a file as pending in a batch.

        Re-adding a path resets its record to pending in place.

        Raises:
            BatchNotFoundError: If job_id is unknown.
        """
        return self.add_files(job_id, [file_path])[0]

    def add_files(self, job_id: str, file_paths: list[str]) -> list[ConversionRecord]:
        """Register several files with a single ledger write.

        Raises:
            BatchNotFoundError: If job_id is unknown.
        """
        with self._lock:
            batch = self._require_batch(job_id, "add files to")
            added = []
            for file_path in file_paths:
                existing = batch.records.get(file_path)
                index = existing.file_index if existing else len(batch.records)
                record = ConversionRecord(file_path=file_path, file_index=index)
                batch.records[file_path] = record
                added.append(record.copy())
            self._save()
            return added

    def get_record(self, job_id: str, file_path: str) -> ConversionRecord:
        """Return a copy of one record.

        Raises:
            BatchNotFoundError: If job_id is unknown.
            FileNotInBatchError: If the file is not part of the batch.
        """
        with self._lock:
            batch = self._require_batch(job_id, "read record from")
            record = batch.records.get(file_path)
            if record is None:
                raise FileNotInBatchError(job_id, file_path)
            return record.copy()

    def update_status(
        self,
        job_id: str,
        file_path: str,
        status: ConversionStatus,
        *,
        error: str | None = None,
        output_path: str | None = None,
        stdout: str | None = None,
        stderr: str | None = None,
        duration: float | None = None,
    ) -> ConversionRecord:
        """Move a record to a new status and merge detail fields.

        ``started_at`` is stamped on entering in-progress and
        ``completed_at`` on entering a terminal status. Detail fields that
        are None or empty leave the stored value alone. A record already in
        a terminal status is never changed; the request is logged and the
        current record returned.

        Raises:
            BatchNotFoundError: If job_id is unknown.
            FileNotInBatchError: If the file is not part of the batch.
        """
        with self._lock:
            batch = self._require_batch(job_id, "update")
            record = batch.records.get(file_path)
            if record is None:
                raise FileNotInBatchError(job_id, file_path)

            if not _is_allowed_transition(record.status, status):
                logger.debug(
                    "Ignoring %s -> %s for %s in batch %s",
                    record.status.value,
                    status.value,
                    file_path,
                    job_id,
                )
                return record.copy()

            record.status = status
            if status is ConversionStatus.IN_PROGRESS:
                record.started_at = utc_now()
            elif status.is_terminal:
                record.completed_at = utc_now()

            if error:
                record.error = error
            if output_path:
                record.output_path = output_path
            if stdout:
                record.stdout = stdout
            if stderr:
                record.stderr = stderr
            if duration is not None:
                record.duration = duration

            self._save()
            return record.copy()


def _is_allowed_transition(current: ConversionStatus, new: ConversionStatus) -> bool:
    if current.is_terminal:
        return False
    if current is ConversionStatus.IN_PROGRESS:
        return new.is_terminal
    # pending may move anywhere except back to pending
    return new is not ConversionStatus.PENDING
