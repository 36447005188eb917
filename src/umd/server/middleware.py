"""API middleware for request validation and shutdown handling.

Usage:
    from umd.server.middleware import validate_query_params, SCAN_ALLOWED_PARAMS

    @validate_query_params(SCAN_ALLOWED_PARAMS)
    async def scan_result_handler(request: web.Request) -> web.Response:
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from functools import wraps

from aiohttp import web

from umd.server.api.errors import (
    NOT_FOUND,
    SHUTTING_DOWN,
    UNKNOWN_PARAMETERS,
    api_error,
)

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def validate_query_params(
    allowed_params: frozenset[str],
    *,
    strict: bool = False,
) -> Callable[[Handler], Handler]:
    """Decorator to validate query parameters against an allowlist.

    Args:
        allowed_params: Set of allowed parameter names.
        strict: If True, reject requests with unknown params (400).
                If False, log warning and ignore unknown params.
    """

    def decorator(handler: Handler) -> Handler:
        @wraps(handler)
        async def wrapper(request: web.Request) -> web.StreamResponse:
            unknown = set(request.query.keys()) - allowed_params
            if unknown:
                if strict:
                    return api_error(
                        f"Unknown query parameters: {sorted(unknown)}",
                        code=UNKNOWN_PARAMETERS,
                    )
                logger.warning(
                    "Ignoring unknown query params in %s: %s",
                    request.path,
                    sorted(unknown),
                )
            return await handler(request)

        return wrapper

    return decorator


def shutdown_check(handler: Handler) -> Handler:
    """Decorator that returns 503 once the server is shutting down."""

    @wraps(handler)
    async def wrapper(request: web.Request) -> web.StreamResponse:
        lifecycle = request.app.get("lifecycle")
        if lifecycle is not None and lifecycle.is_shutting_down:
            return api_error(
                "Service is shutting down", code=SHUTTING_DOWN, status=503
            )
        return await handler(request)

    return wrapper


@web.middleware
async def api_not_found_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    """Render unknown ``/api`` paths with the standard error body."""
    try:
        return await handler(request)
    except web.HTTPNotFound:
        if request.path.startswith("/api"):
            return api_error(
                f"Not found: {request.method} {request.path}",
                code=NOT_FOUND,
                status=404,
            )
        raise


# Allowed query parameters per endpoint group

SCAN_ALLOWED_PARAMS = frozenset({"rootPath"})

CONVERT_LOGS_ALLOWED_PARAMS = frozenset({"path"})

EXCLUSIONS_ALLOWED_PARAMS = frozenset({"scope"})

EXCLUSIONS_CLEAR_ALLOWED_PARAMS = frozenset({"confirm"})
