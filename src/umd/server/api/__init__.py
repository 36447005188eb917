"""JSON API route modules.

Each module handles one domain:

- scan.py: Directory scans and the scan cache
- convert.py: Batch conversions, status, logs and cancellation
- exclusions.py: Exclusion rule management
- events.py: Server-Sent Events (SSE) for real-time updates

All endpoints live under ``/api``.
"""

from aiohttp import web

from umd.server.api.convert import get_convert_routes
from umd.server.api.events import get_events_routes
from umd.server.api.exclusions import get_exclusion_routes
from umd.server.api.scan import get_scan_routes

__all__ = [
    "API_PREFIX",
    "setup_api_routes",
]

API_PREFIX = "/api"

_ROUTE_GETTERS = [
    get_scan_routes,
    get_convert_routes,
    get_exclusion_routes,
    get_events_routes,
]


def setup_api_routes(app: web.Application) -> None:
    """Register all API routes with the application.

    Args:
        app: aiohttp Application to configure.
    """
    for get_routes in _ROUTE_GETTERS:
        for method, suffix, handler in get_routes():
            app.router.add_route(method, f"{API_PREFIX}{suffix}", handler)
