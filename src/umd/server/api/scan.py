"""API handlers for directory scans and the scan cache.

Endpoints:
    POST /api/scan - Scan a directory and cache the result
    GET /api/scan/result - Get a cached scan, or list all cached scans
    DELETE /api/scan/cache - Invalidate one cached scan or clear all
"""

from __future__ import annotations

import asyncio
import logging
import os

from aiohttp import web

from umd.core.paths import normalize_input_path
from umd.events import EventType
from umd.scanner import FileDiscovery, ScanError, ScanOptions
from umd.server.api.errors import INTERNAL_ERROR, NOT_FOUND, api_error, domain_error
from umd.server.api.models import ScanRequest, parse_body
from umd.server.middleware import (
    SCAN_ALLOWED_PARAMS,
    shutdown_check,
    validate_query_params,
)

logger = logging.getLogger(__name__)


@shutdown_check
async def scan_handler(request: web.Request) -> web.Response:
    """Handle POST /api/scan - run discovery on a directory.

    Always performs a fresh walk; the cache only serves later reads.
    Exclusion rules for the root's scope are applied during the walk.
    """
    body = await parse_body(request, ScanRequest)
    if isinstance(body, web.Response):
        return body

    app = request.app
    bus = app["event_bus"]
    exclusions = app["exclusions"]
    root_path = os.path.abspath(body.root_path)

    bus.publish(EventType.SCAN_START, {"rootPath": root_path})

    def on_progress(directories: int, files: int) -> None:
        bus.publish(
            EventType.SCAN_PROGRESS,
            {
                "rootPath": root_path,
                "directoriesScanned": directories,
                "filesFound": files,
            },
        )

    options = ScanOptions(
        recursive=body.recursive,
        extensions=body.extensions,
        max_depth=body.max_depth,
        exclude_dirs=body.exclude_dirs,
        rules=exclusions.get_rules_for_scope(root_path),
        progress=on_progress,
    )

    try:
        result = await asyncio.to_thread(FileDiscovery(options).scan, root_path)
    except ScanError as e:
        logger.warning("Scan failed: %s", e)
        bus.publish(EventType.ERROR, {"error": str(e), "operation": "scan"})
        return domain_error(e)
    except OSError as e:
        logger.error("Scan failed: %s", e)
        bus.publish(EventType.ERROR, {"error": str(e), "operation": "scan"})
        return api_error(str(e), code=INTERNAL_ERROR, status=500)

    app["scan_cache"].set(root_path, result)

    bus.publish(
        EventType.SCAN_COMPLETE,
        {
            "rootPath": root_path,
            "totalFiles": len(result.files),
            "pendingFiles": len(result.pending),
            "convertedFiles": len(result.converted),
        },
    )
    return web.json_response({**result.to_dict(), "fromCache": False})


@validate_query_params(SCAN_ALLOWED_PARAMS)
async def scan_result_handler(request: web.Request) -> web.Response:
    """Handle GET /api/scan/result.

    Query parameters:
        rootPath: Directory whose cached scan to return. Without it, a
            summary of every cached scan is returned.
    """
    cache = request.app["scan_cache"]
    root_path = normalize_input_path(request.query.get("rootPath", ""))

    if root_path:
        cached = cache.get(os.path.abspath(root_path))
        if cached is None:
            return api_error(
                "No cached scan for this path", code=NOT_FOUND, status=404
            )
        return web.json_response(
            {
                **cached.result.to_dict(),
                "fromCache": True,
                "cachedAt": cached.scanned_at.isoformat(),
                "expiresAt": cached.expires_at.isoformat(),
            }
        )

    return web.json_response(
        {
            "caches": [c.summary() for c in cache.get_all_cached()],
            "stats": cache.get_stats(),
        }
    )


@validate_query_params(SCAN_ALLOWED_PARAMS)
async def scan_cache_delete_handler(request: web.Request) -> web.Response:
    """Handle DELETE /api/scan/cache - drop one cached scan or all of them."""
    cache = request.app["scan_cache"]
    root_path = normalize_input_path(request.query.get("rootPath", ""))

    if root_path:
        invalidated = cache.invalidate(os.path.abspath(root_path))
        return web.json_response(
            {
                "success": invalidated,
                "message": (
                    "Cache invalidated" if invalidated else "No cache found for this path"
                ),
            }
        )

    cache.clear_all()
    return web.json_response({"success": True, "message": "All caches cleared"})


def get_scan_routes() -> list[tuple[str, str, object]]:
    """Return scan route definitions as (method, path_suffix, handler) tuples."""
    return [
        ("POST", "/scan", scan_handler),
        ("GET", "/scan/result", scan_result_handler),
        ("DELETE", "/scan/cache", scan_cache_delete_handler),
    ]
