"""API handlers for batch conversions.

Endpoints:
    POST /api/convert - Start a batch conversion (runs in the background)
    GET /api/convert/status/{job_id} - Batch stats and per-file records
    GET /api/convert/logs/{job_id}/file?path= - Captured output by file path
    GET /api/convert/logs/{job_id}/{file_index} - Captured output by index
    POST /api/convert/cancel/{job_id} - Cancel running conversions
    GET /api/convert/jobs - List batches, newest first
    DELETE /api/convert/jobs/{job_id} - Delete a batch record
"""

from __future__ import annotations

import asyncio
import logging
import os
import uuid

from aiohttp import web

from umd.core.paths import normalize_input_path
from umd.events import EventBus, EventType
from umd.jobs import (
    BatchState,
    ConversionResult,
    ConversionStateError,
    ConversionStateStore,
    ConversionStatus,
)
from umd.server.api.errors import (
    INVALID_PARAMETER,
    NOT_FOUND,
    api_error,
    job_not_found,
)
from umd.server.api.models import ConvertRequest, parse_body
from umd.server.middleware import (
    CONVERT_LOGS_ALLOWED_PARAMS,
    shutdown_check,
    validate_query_params,
)

logger = logging.getLogger(__name__)

CANCELLED_ERROR = "Cancelled by user"


def new_job_id() -> str:
    return f"job-{uuid.uuid4().hex[:8]}"


def validate_files(
    paths: list[str], request: web.Request
) -> tuple[list[str], list[str]]:
    """Split requested paths into usable absolute paths and error messages."""
    exclusions = request.app["exclusions"]
    valid: list[str] = []
    errors: list[str] = []
    for file_path in paths:
        resolved = os.path.abspath(file_path)
        if not os.path.exists(resolved):
            errors.append(f"File not found: {file_path}")
        elif exclusions.is_excluded(resolved):
            errors.append(f"File is excluded: {file_path}")
        elif not os.path.isfile(resolved):
            errors.append(f"Not a file: {file_path}")
        else:
            valid.append(resolved)
    return valid, errors


async def run_batch(
    app: web.Application,
    job_id: str,
    files: list[str],
    *,
    concurrency: int | None,
    skip_converted: bool,
) -> None:
    """Drive one batch to completion, publishing progress events."""
    bus: EventBus = app["event_bus"]
    state: ConversionStateStore = app["state"]
    scan_cache = app["scan_cache"]
    cancelled: set[str] = app["cancelled_jobs"]

    def on_start(file_path: str) -> None:
        bus.publish(
            EventType.CONVERSION_PROGRESS,
            {"jobId": job_id, "filePath": file_path, "status": "started"},
        )

    def on_complete(result: ConversionResult) -> None:
        bus.publish(
            EventType.CONVERSION_PROGRESS,
            {
                "jobId": job_id,
                "filePath": result.file_path,
                "status": "completed" if result.success else "failed",
                "error": result.error,
                "duration": result.duration,
            },
        )
        bus.publish(
            EventType.FILE_LOG_UPDATE,
            {
                "jobId": job_id,
                "filePath": result.file_path,
                "stdout": result.stdout,
                "stderr": result.stderr,
            },
        )
        scan_cache.invalidate_for_file(result.file_path)

    def on_progress(completed: int, total: int) -> None:
        bus.publish(
            EventType.CONVERSION_PROGRESS,
            {
                "jobId": job_id,
                "completed": completed,
                "total": total,
                "percentComplete": round(completed / total * 100),
            },
        )

    try:
        if job_id in cancelled:
            # Cancelled before any file was queued
            return
        try:
            await app["process_manager"].convert_batch(
                files,
                job_id,
                concurrency=concurrency,
                skip_converted=skip_converted,
                on_start=on_start,
                on_complete=on_complete,
                on_progress=on_progress,
            )
        except asyncio.CancelledError:
            logger.info("Batch %s interrupted by shutdown", job_id)
            raise
        except Exception as e:
            logger.exception("Batch conversion error for %s", job_id)
            bus.publish(
                EventType.ERROR,
                {"jobId": job_id, "error": str(e), "operation": "convert"},
            )
            return
        # The cancel handler publishes the final stats of a cancelled batch
        if job_id not in cancelled:
            _publish_complete(bus, state, job_id)
    finally:
        cancelled.discard(job_id)


def _publish_complete(bus: EventBus, state: ConversionStateStore, job_id: str) -> None:
    try:
        stats = state.get_batch_stats(job_id)
    except ConversionStateError:
        # Deleted while running
        return
    bus.publish(
        EventType.CONVERSION_COMPLETE, {"jobId": job_id, "stats": stats.to_dict()}
    )


def _batch_task_name(job_id: str) -> str:
    return f"batch-{job_id}"


def _is_running(app: web.Application, job_id: str) -> bool:
    name = _batch_task_name(job_id)
    return any(task.get_name() == name for task in app["conversion_tasks"])


@shutdown_check
async def convert_handler(request: web.Request) -> web.Response:
    """Handle POST /api/convert - start a batch and return immediately.

    Returns:
        202 with the job id. Paths that cannot be converted are reported in
        ``validationErrors``; if none remain the request fails with 400.
    """
    body = await parse_body(request, ConvertRequest)
    if isinstance(body, web.Response):
        return body

    files, errors = await asyncio.to_thread(validate_files, body.files, request)
    if not files:
        return web.json_response(
            {"error": "No valid files to convert", "validationErrors": errors},
            status=400,
        )

    app = request.app
    job_id = new_job_id()
    app["state"].create_batch(job_id, os.path.dirname(files[0]))

    app["event_bus"].publish(
        EventType.CONVERSION_START,
        {"jobId": job_id, "totalFiles": len(files), "files": files},
    )

    task = asyncio.create_task(
        run_batch(
            app,
            job_id,
            files,
            concurrency=body.concurrency,
            skip_converted=body.skip_converted,
        ),
        name=_batch_task_name(job_id),
    )
    tasks: set[asyncio.Task[None]] = app["conversion_tasks"]
    tasks.add(task)
    task.add_done_callback(tasks.discard)

    payload: dict[str, object] = {
        "jobId": job_id,
        "message": "Conversion started",
        "totalFiles": len(files),
    }
    if errors:
        payload["validationErrors"] = errors
    return web.json_response(payload, status=202)


def _get_batch(request: web.Request) -> BatchState | web.Response:
    job_id = request.match_info["job_id"]
    batch = request.app["state"].get_batch(job_id)
    if batch is None:
        return job_not_found(job_id)
    return batch


async def convert_status_handler(request: web.Request) -> web.Response:
    """Handle GET /api/convert/status/{job_id}."""
    batch = _get_batch(request)
    if isinstance(batch, web.Response):
        return batch
    stats = request.app["state"].get_batch_stats(batch.job_id)
    return web.json_response(
        {
            "jobId": batch.job_id,
            "rootPath": batch.root_path,
            "createdAt": batch.created_at.isoformat(),
            "stats": stats.to_dict(),
            "files": [r.to_summary() for r in batch.record_list()],
        }
    )


async def convert_logs_by_index_handler(request: web.Request) -> web.Response:
    """Handle GET /api/convert/logs/{job_id}/{file_index}."""
    batch = _get_batch(request)
    if isinstance(batch, web.Response):
        return batch

    records = batch.record_list()
    try:
        index = int(request.match_info["file_index"])
    except ValueError:
        return api_error("Invalid file index", code=INVALID_PARAMETER)

    record = next((r for r in records if r.file_index == index), None)
    if record is None:
        return api_error(
            "File index out of range",
            code=NOT_FOUND,
            status=404,
            totalFiles=len(records),
        )
    return web.json_response(record.to_log_dict())


@validate_query_params(CONVERT_LOGS_ALLOWED_PARAMS)
async def convert_logs_by_path_handler(request: web.Request) -> web.Response:
    """Handle GET /api/convert/logs/{job_id}/file?path=.

    The path is matched exactly, then after normalization, then by suffix.
    """
    file_path = normalize_input_path(request.query.get("path", ""))
    if not file_path:
        return api_error("File path is required", code=INVALID_PARAMETER)

    batch = _get_batch(request)
    if isinstance(batch, web.Response):
        return batch

    normalized = os.path.normpath(file_path)
    record = batch.records.get(file_path) or batch.records.get(normalized)
    if record is None:
        for key, candidate in batch.records.items():
            if key.endswith(normalized) or normalized.endswith(key):
                record = candidate
                break

    if record is None:
        return api_error(
            "File not found in job",
            code=NOT_FOUND,
            status=404,
            availableFiles=list(batch.records),
        )
    return web.json_response(record.to_log_dict())


async def convert_cancel_handler(request: web.Request) -> web.Response:
    """Handle POST /api/convert/cancel/{job_id}.

    Stops this batch's conversions (other batches keep running), then
    fails whatever the batch had not finished so it reaches a terminal
    state.
    """
    batch = _get_batch(request)
    if isinstance(batch, web.Response):
        return batch

    app = request.app
    state: ConversionStateStore = app["state"]
    job_id = batch.job_id
    if _is_running(app, job_id):
        app["cancelled_jobs"].add(job_id)
    signalled = app["process_manager"].cancel(job_id)

    for record in batch.record_list():
        if not record.status.is_terminal:
            state.update_status(
                job_id, record.file_path, ConversionStatus.FAILED, error=CANCELLED_ERROR
            )
    logger.info("Cancelled batch %s (%d process(es) signalled)", job_id, signalled)

    stats = state.get_batch_stats(job_id)
    app["event_bus"].publish(
        EventType.CONVERSION_COMPLETE,
        {"jobId": job_id, "cancelled": True, "stats": stats.to_dict()},
    )
    return web.json_response(
        {"success": True, "message": "Conversion cancelled", "jobId": job_id}
    )


async def convert_jobs_handler(request: web.Request) -> web.Response:
    """Handle GET /api/convert/jobs."""
    state: ConversionStateStore = request.app["state"]
    jobs = []
    for batch in state.get_all_batches():
        jobs.append(
            {
                "jobId": batch.job_id,
                "rootPath": batch.root_path,
                "createdAt": batch.created_at.isoformat(),
                "stats": state.get_batch_stats(batch.job_id).to_dict(),
            }
        )
    return web.json_response({"jobs": jobs})


async def convert_job_delete_handler(request: web.Request) -> web.Response:
    """Handle DELETE /api/convert/jobs/{job_id}."""
    job_id = request.match_info["job_id"]
    if not request.app["state"].clear_batch(job_id):
        return job_not_found(job_id)
    return web.json_response(
        {"success": True, "message": "Job deleted", "jobId": job_id}
    )


def get_convert_routes() -> list[tuple[str, str, object]]:
    """Return convert route definitions as (method, path_suffix, handler) tuples.

    The by-path log route is listed before the by-index one so ``file`` is
    never read as an index.
    """
    return [
        ("POST", "/convert", convert_handler),
        ("GET", "/convert/status/{job_id}", convert_status_handler),
        ("GET", "/convert/logs/{job_id}/file", convert_logs_by_path_handler),
        ("GET", "/convert/logs/{job_id}/{file_index}", convert_logs_by_index_handler),
        ("POST", "/convert/cancel/{job_id}", convert_cancel_handler),
        ("GET", "/convert/jobs", convert_jobs_handler),
        ("DELETE", "/convert/jobs/{job_id}", convert_job_delete_handler),
    ]
