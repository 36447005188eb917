"""Server-Sent Events (SSE) API handlers.

Streams every event published on the app's EventBus to connected clients.

Endpoints:
    GET /api/events - SSE stream of scan and conversion events
    POST /api/events/test - Publish a test event
    GET /api/events/clients - Number of connected stream clients
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from aiohttp import web

from umd.events import EventBus
from umd.server.api.errors import SERVICE_UNAVAILABLE, api_error
from umd.server.api.models import EmitEventRequest, parse_body

logger = logging.getLogger(__name__)

# SSE configuration
SSE_HEARTBEAT_INTERVAL = 30.0  # seconds
SSE_WRITE_TIMEOUT = 5.0  # seconds - timeout for writing to slow clients
DEFAULT_MAX_SSE_CONNECTIONS = 100


async def _write(
    response: web.StreamResponse, text: str, timeout: float = SSE_WRITE_TIMEOUT
) -> bool:
    """Write raw SSE text.

    Returns:
        True if the write succeeded, False if the client is gone or too slow.
    """
    try:
        await asyncio.wait_for(response.write(text.encode("utf-8")), timeout=timeout)
        return True
    except TimeoutError:
        logger.warning("SSE write timeout - slow client")
        return False
    except (ConnectionResetError, ConnectionAbortedError, BrokenPipeError):
        logger.debug("SSE client disconnected")
        return False


async def _write_sse_event(
    response: web.StreamResponse,
    event_type: str,
    data: dict[str, Any],
    timeout: float = SSE_WRITE_TIMEOUT,
) -> bool:
    """Write one ``event:``/``data:`` frame."""
    frame = f"event: {event_type}\ndata: {json.dumps(data)}\n\n"
    return await _write(response, frame, timeout)


def _max_connections(app: web.Application) -> int:
    config = app.get("config")
    if config is None:
        return DEFAULT_MAX_SSE_CONNECTIONS
    return config.server.max_sse_connections


async def sse_events_handler(request: web.Request) -> web.StreamResponse:
    """Handle GET /api/events - SSE stream of server events.

    Sends a ``connected`` event, then one frame per published event and a
    ``:heartbeat`` comment after every quiet interval.
    """
    app = request.app
    bus: EventBus = app["event_bus"]
    client_ip = request.remote or "unknown"

    limit = _max_connections(app)
    if bus.subscriber_count >= limit:
        logger.warning(
            "SSE connection limit reached (%d), rejecting client=%s", limit, client_ip
        )
        resp = api_error(
            "Service temporarily unavailable - too many connections",
            code=SERVICE_UNAVAILABLE,
            status=503,
        )
        resp.headers["Retry-After"] = "10"
        return resp

    response = web.StreamResponse(
        status=200,
        headers={
            "Content-Type": "text/event-stream",
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
    await response.prepare(request)

    subscription = bus.subscribe()
    heartbeat = app.get("sse_heartbeat_interval", SSE_HEARTBEAT_INTERVAL)
    logger.debug(
        "SSE connection established client=%s (total: %d)",
        client_ip,
        bus.subscriber_count,
    )

    try:
        if not await _write_sse_event(
            response, "connected", {"message": "Connected to event stream"}
        ):
            return response

        while True:
            try:
                event = await asyncio.wait_for(subscription.get(), timeout=heartbeat)
            except TimeoutError:
                if not await _write(response, ":heartbeat\n\n"):
                    break
                continue

            if event is None:
                # Bus closed during shutdown
                break
            if not await _write_sse_event(response, event.type, event.to_payload()):
                break
    except asyncio.CancelledError:
        logger.debug("SSE connection cancelled client=%s", client_ip)
        raise
    finally:
        subscription.close()
        logger.debug(
            "SSE connection closed client=%s (remaining: %d)",
            client_ip,
            bus.subscriber_count,
        )

    return response


async def events_test_handler(request: web.Request) -> web.Response:
    """Handle POST /api/events/test - publish a caller-supplied event.

    Body (optional): ``{"type": "test", "data": {...}}``.
    """
    body = await parse_body(request, EmitEventRequest, allow_empty=True)
    if isinstance(body, web.Response):
        return body
    request.app["event_bus"].publish(body.type, body.data)
    return web.json_response({"success": True, "message": "Test event emitted"})


async def events_clients_handler(request: web.Request) -> web.Response:
    """Handle GET /api/events/clients."""
    return web.json_response(
        {"connectedClients": request.app["event_bus"].subscriber_count}
    )


def get_events_routes() -> list[tuple[str, str, object]]:
    """Return SSE event route definitions as (method, path_suffix, handler) tuples."""
    return [
        ("GET", "/events", sse_events_handler),
        ("POST", "/events/test", events_test_handler),
        ("GET", "/events/clients", events_clients_handler),
    ]
