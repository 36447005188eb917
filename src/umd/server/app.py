"""HTTP application for the orchestration server.

Builds the aiohttp Application that exposes scans, conversions, exclusion
rules and the event stream, and owns the lifetime of the shared services.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass

from aiohttp import web

from umd import __version__
from umd.config.models import UMDConfig
from umd.events import EventBus
from umd.exclusions import ExclusionService
from umd.jobs import ConversionStateStore, ProcessManager
from umd.scanner import ScanCache
from umd.server.api import setup_api_routes
from umd.server.lifecycle import ServerLifecycle
from umd.server.middleware import api_not_found_middleware

logger = logging.getLogger(__name__)

# Seconds to wait for running batches to notice cancellation on cleanup
BATCH_STOP_TIMEOUT = 10.0


@dataclass
class HealthStatus:
    """Health check response payload."""

    status: str
    """Overall status: 'healthy' or 'shutting_down'."""

    version: str
    uptime_seconds: float
    active_conversions: int = 0
    """Child processes currently running."""

    running_batches: int = 0
    event_subscribers: int = 0
    shutting_down: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def create_app(
    config: UMDConfig,
    *,
    exclusions: ExclusionService | None = None,
    scan_cache: ScanCache | None = None,
    state: ConversionStateStore | None = None,
    process_manager: ProcessManager | None = None,
    event_bus: EventBus | None = None,
    lifecycle: ServerLifecycle | None = None,
) -> web.Application:
    """Create and configure the aiohttp Application.

    Services not supplied are built from config, persisting under its data
    directory.

    Args:
        config: Resolved configuration.
        exclusions: Exclusion rule store.
        scan_cache: Scan result cache.
        state: Conversion state ledger.
        process_manager: Conversion process manager.
        event_bus: Event bus feeding the SSE stream.
        lifecycle: Shutdown coordinator (set by the serve command).

    Returns:
        Configured aiohttp Application instance.
    """
    app = web.Application(middlewares=[api_not_found_middleware])

    if state is None:
        state = ConversionStateStore(config.state_path)

    app["config"] = config
    app["lifecycle"] = lifecycle
    app["exclusions"] = exclusions or ExclusionService(config.exclusions_path)
    app["scan_cache"] = scan_cache or ScanCache(
        config.scan_cache_path, ttl=config.scan.cache_ttl
    )
    app["state"] = state
    app["process_manager"] = process_manager or ProcessManager(
        state, config.conversion
    )
    app["event_bus"] = event_bus or EventBus()
    app["conversion_tasks"] = set()
    app["cancelled_jobs"] = set()

    app.router.add_get("/api/health", health_handler)
    setup_api_routes(app)

    app.on_startup.append(_on_startup)
    app.on_cleanup.append(_stop_conversions)
    app.on_cleanup.append(_close_event_bus)
    return app


async def _on_startup(app: web.Application) -> None:
    """Bind the event bus to the serving loop and drop stale cache entries."""
    app["event_bus"].bind()
    removed = app["scan_cache"].clean_expired()
    if removed:
        logger.debug("Evicted %d expired scan cache entries on startup", removed)


async def _stop_conversions(app: web.Application) -> None:
    """Cancel running batches and terminate their child processes."""
    tasks: set[asyncio.Task[None]] = set(app["conversion_tasks"])
    manager: ProcessManager = app["process_manager"]
    if not tasks and manager.active_count == 0:
        return

    logger.info("Stopping %d running batch(es)", len(tasks))
    manager.cancel_all()
    for task in tasks:
        task.cancel()
    if tasks:
        _, pending = await asyncio.wait(tasks, timeout=BATCH_STOP_TIMEOUT)
        if pending:
            logger.warning("%d batch(es) did not stop in time", len(pending))
    await manager.shutdown()


async def _close_event_bus(app: web.Application) -> None:
    app["event_bus"].close()
    logger.debug("Closed event bus")


async def health_handler(request: web.Request) -> web.Response:
    """Handle GET /api/health.

    Returns:
        200 with HealthStatus while serving, 503 once shutdown has begun.
    """
    lifecycle: ServerLifecycle | None = request.app.get("lifecycle")
    shutting_down = lifecycle.is_shutting_down if lifecycle else False
    uptime = lifecycle.uptime_seconds if lifecycle else 0.0

    health = HealthStatus(
        status="shutting_down" if shutting_down else "healthy",
        version=__version__,
        uptime_seconds=round(uptime, 1),
        active_conversions=request.app["process_manager"].active_count,
        running_batches=len(request.app["conversion_tasks"]),
        event_subscribers=request.app["event_bus"].subscriber_count,
        shutting_down=shutting_down,
    )
    return web.json_response(health.to_dict(), status=503 if shutting_down else 200)
