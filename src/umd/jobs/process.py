"""Bounded-concurrency conversion of files in child processes.

Every file of a batch runs in its own child process. A batch is served by
``concurrency`` worker tasks pulling from a shared queue, so at most that
many children are alive per batch. Each worker binds a logging context
(``[W01:F003]``) while it handles a file.

Queues and children are tracked per job, so one batch can be cancelled
without disturbing the others. Cancellation clears the job's pending queue
and sends SIGTERM to its children, escalating to SIGKILL once the grace
period lapses.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import time
from collections import deque
from collections.abc import Awaitable, Callable, Sequence

from umd.config.models import ConversionConfig
from umd.converters.commands import (
    Invocation,
    build_agent_invocation,
    build_subprocess_invocation,
)
from umd.core.paths import common_parent
from umd.jobs.exceptions import ConversionStateError
from umd.jobs.models import ConversionRecord, ConversionResult, ConversionStatus
from umd.jobs.state import ConversionStateStore
from umd.logging.context import worker_context
from umd.scanner.discovery import is_converted

logger = logging.getLogger(__name__)

StartCallback = Callable[[str], Awaitable[None] | None]
CompleteCallback = Callable[[ConversionResult], Awaitable[None] | None]
ProgressCallback = Callable[[int, int], Awaitable[None] | None]

AGENT_MODE = "agent"


class ProcessManager:
    """Runs conversions in child processes and records them in the state store."""

    def __init__(self, state: ConversionStateStore, config: ConversionConfig) -> None:
        self._state = state
        self._config = config
        # child process -> owning job id (None for standalone conversions)
        self._processes: dict[asyncio.subprocess.Process, str | None] = {}
        self._queues: dict[str, deque[str]] = {}
        self._escalations: set[asyncio.Task[None]] = set()

    @property
    def config(self) -> ConversionConfig:
        return self._config

    @property
    def active_count(self) -> int:
        """Number of child processes currently alive."""
        return len(self._processes)

    def check_file_size(self, file_path: str) -> str | None:
        """Return an error message if the file exceeds the size ceiling."""
        try:
            size = os.path.getsize(file_path)
        except OSError as e:
            return f"Cannot read file: {e}"
        if size > self._config.max_file_size_bytes:
            size_mb = size / (1024 * 1024)
            return (
                f"File size ({size_mb:.1f}MB) exceeds maximum allowed size of "
                f"{self._config.max_file_size_mb:g}MB"
            )
        return None

    def build_invocation(self, file_path: str, cwd: str | None = None) -> Invocation:
        if self._config.mode == AGENT_MODE:
            return build_agent_invocation(self._config, file_path, cwd)
        return build_subprocess_invocation(self._config, file_path)

    async def convert_file(
        self, file_path: str, *, cwd: str | None = None, job_id: str | None = None
    ) -> ConversionResult:
        """Convert one file in a child process.

        Files over the size ceiling are rejected without spawning. A zero
        exit status counts as success with output at ``<file>.md``.
        """
        size_error = self.check_file_size(file_path)
        if size_error is not None:
            logger.warning("Skipping %s: %s", file_path, size_error)
            return ConversionResult(
                file_path=file_path, success=False, error=size_error, spawned=False
            )

        invocation = self.build_invocation(file_path, cwd)
        start = time.monotonic()
        logger.debug("Spawning: %s", invocation.display)

        try:
            process = await asyncio.create_subprocess_exec(
                *invocation.argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=invocation.cwd,
                env=invocation.env,
            )
        except OSError as e:
            message = f"Failed to start converter '{invocation.argv[0]}': {e}"
            if self._config.mode == AGENT_MODE:
                message += (
                    f". Ensure '{self._config.agent_command}' is installed and on PATH"
                )
            logger.error(message)
            return ConversionResult(
                file_path=file_path,
                success=False,
                error=message,
                stdout=invocation.header,
                duration=time.monotonic() - start,
            )

        self._processes[process] = job_id
        timed_out = False
        try:
            try:
                stdout_bytes, stderr_bytes = await asyncio.wait_for(
                    process.communicate(), timeout=self._config.file_timeout
                )
            except TimeoutError:
                timed_out = True
                _send_signal(process, signal.SIGKILL)
                stdout_bytes, stderr_bytes = await process.communicate()
        finally:
            self._processes.pop(process, None)

        duration = time.monotonic() - start
        stdout = invocation.header + stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        returncode = process.returncode

        if timed_out:
            error = f"Conversion timed out after {self._config.file_timeout:g}s"
            logger.error("%s: %s", file_path, error)
            return ConversionResult(
                file_path=file_path,
                success=False,
                error=error,
                stdout=stdout,
                stderr=stderr,
                duration=duration,
            )

        if returncode == 0:
            logger.info("Converted %s in %.1fs", file_path, duration)
            return ConversionResult(
                file_path=file_path,
                success=True,
                output_path=file_path + ".md",
                stdout=stdout,
                stderr=stderr,
                duration=duration,
            )

        error = (
            stderr.strip()
            or stdout_bytes.decode("utf-8", errors="replace").strip()
            or f"Process exited with code {returncode}"
        )
        logger.warning("Conversion failed for %s (exit %s)", file_path, returncode)
        return ConversionResult(
            file_path=file_path,
            success=False,
            error=error,
            stdout=stdout,
            stderr=stderr,
            duration=duration,
        )

    async def convert_batch(
        self,
        files: Sequence[str],
        job_id: str,
        *,
        concurrency: int | None = None,
        skip_converted: bool = True,
        on_start: StartCallback | None = None,
        on_complete: CompleteCallback | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> list[ConversionResult]:
        """Convert files under a registered batch.

        Files that already have a sidecar are dropped first unless
        skip_converted is False. The remaining files are registered as
        pending, then processed by at most ``concurrency`` workers.

        Returns:
            Results in completion order. Files drained by a cancellation have
            no result.

        Raises:
            BatchNotFoundError: If job_id has not been created.
        """
        todo = [f for f in files if not (skip_converted and is_converted(f))]
        if len(todo) < len(files):
            logger.info(
                "Skipping %d already converted file(s)", len(files) - len(todo)
            )
        if not todo:
            return []

        records = self._state.add_files(job_id, todo)
        indexes = {record.file_path: record.file_index for record in records}
        limit = max(1, concurrency or self._config.concurrency)
        cwd = common_parent(todo) if self._config.mode == AGENT_MODE else None

        queue: deque[str] = deque(todo)
        self._queues[job_id] = queue
        results: list[ConversionResult] = []
        total = len(todo)

        async def worker(number: int) -> None:
            while queue:
                file_path = queue.popleft()
                index = indexes.get(file_path, 0)
                with worker_context(
                    f"{number:02d}", f"F{index + 1:03d}", file_path, job_id
                ):
                    try:
                        result = await self._process_one(
                            job_id, file_path, cwd, on_start, on_complete
                        )
                    except Exception as e:
                        logger.exception("Unexpected error converting %s", file_path)
                        result = ConversionResult(
                            file_path=file_path,
                            success=False,
                            error=f"Unexpected error: {e}",
                        )
                        self._record(job_id, result)
                results.append(result)
                await _notify(on_progress, len(results), total)

        workers = min(limit, total)
        logger.info(
            "Batch %s: converting %d file(s) with %d worker(s)", job_id, total, workers
        )
        try:
            await asyncio.gather(*(worker(n) for n in range(1, workers + 1)))
        finally:
            if self._queues.get(job_id) is queue:
                del self._queues[job_id]
        return results

    async def _process_one(
        self,
        job_id: str,
        file_path: str,
        cwd: str | None,
        on_start: StartCallback | None,
        on_complete: CompleteCallback | None,
    ) -> ConversionResult:
        size_error = self.check_file_size(file_path)
        if size_error is not None:
            result = ConversionResult(
                file_path=file_path, success=False, error=size_error, spawned=False
            )
            self._record(job_id, result)
            await _notify(on_complete, result)
            return result

        try:
            self._state.update_status(job_id, file_path, ConversionStatus.IN_PROGRESS)
        except ConversionStateError as e:
            logger.error("Cannot mark %s in progress: %s", file_path, e)
        await _notify(on_start, file_path)

        result = await self.convert_file(file_path, cwd=cwd, job_id=job_id)
        self._record(job_id, result)
        await _notify(on_complete, result)
        return result

    def _record(self, job_id: str, result: ConversionResult) -> ConversionRecord | None:
        status = ConversionStatus.COMPLETED if result.success else ConversionStatus.FAILED
        try:
            return self._state.update_status(
                job_id,
                result.file_path,
                status,
                error=result.error,
                output_path=result.output_path,
                stdout=result.stdout,
                stderr=result.stderr,
                duration=result.duration,
            )
        except ConversionStateError as e:
            logger.error("Cannot record result for %s: %s", result.file_path, e)
            return None

    def _drain(self, job_id: str) -> list[str]:
        queue = self._queues.get(job_id)
        if queue is None:
            return []
        drained = list(queue)
        queue.clear()
        return drained

    def _job_processes(self, job_id: str) -> list[asyncio.subprocess.Process]:
        return [p for p, owner in self._processes.items() if owner == job_id]

    def _terminate(self, processes: list[asyncio.subprocess.Process]) -> None:
        """SIGTERM processes now; SIGKILL survivors after the grace period."""
        for process in processes:
            _send_signal(process, signal.SIGTERM)
        if processes:
            task = asyncio.get_running_loop().create_task(self._escalate(processes))
            self._escalations.add(task)
            task.add_done_callback(self._escalations.discard)

    def cancel(self, job_id: str) -> int:
        """Stop one batch, leaving other running batches untouched.

        The job's queued files are dropped (their records stay ``pending``
        for the caller to resolve) and its children receive SIGTERM.

        Returns:
            Number of child processes signalled.
        """
        drained = self._drain(job_id)
        processes = self._job_processes(job_id)
        self._terminate(processes)
        logger.info(
            "Cancelled batch %s: %d process(es) signalled, %d queued file(s) dropped",
            job_id,
            len(processes),
            len(drained),
        )
        return len(processes)

    def cancel_all(self) -> int:
        """Stop every running batch and standalone conversion.

        Returns:
            Number of child processes signalled.
        """
        drained = sum(len(self._drain(job_id)) for job_id in list(self._queues))
        processes = list(self._processes)
        self._terminate(processes)
        logger.info(
            "Cancelled conversions: %d process(es) signalled, %d queued file(s) dropped",
            len(processes),
            drained,
        )
        return len(processes)

    async def _escalate(self, processes: list[asyncio.subprocess.Process]) -> None:
        await asyncio.sleep(self._config.cancel_grace_period)
        for process in processes:
            if process.returncode is None:
                logger.warning("Process %d ignored SIGTERM, killing", process.pid)
                _send_signal(process, signal.SIGKILL)

    async def shutdown(self) -> None:
        """Cancel everything and wait for pending escalations."""
        self.cancel_all()
        if self._escalations:
            await asyncio.gather(*self._escalations, return_exceptions=True)


def _send_signal(process: asyncio.subprocess.Process, sig: int) -> None:
    if process.returncode is not None:
        return
    try:
        process.send_signal(sig)
    except ProcessLookupError:
        logger.debug("Process %d already exited", process.pid)


async def _notify(
    callback: Callable[..., Awaitable[None] | None] | None, *args
) -> None:
    """Invoke a batch callback. A failing callback is logged, never raised."""
    if callback is None:
        return
    try:
        value = callback(*args)
        if value is not None:
            await value
    except Exception:
        logger.exception("Batch callback %r failed", callback)
