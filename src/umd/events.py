"""In-process publish/subscribe for scan and conversion progress.

Producers call :meth:`EventBus.publish` from any thread. Every subscriber
gets its own bounded queue; when a slow subscriber falls behind, its oldest
events are dropped so publishers never block.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from umd.core.datetime_utils import to_iso, utc_now

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1000


class EventType(Enum):
    """Event types carried by the bus."""

    SCAN_START = "scan-start"
    SCAN_PROGRESS = "scan-progress"
    SCAN_COMPLETE = "scan-complete"
    CONVERSION_START = "conversion-start"
    CONVERSION_PROGRESS = "conversion-progress"
    CONVERSION_COMPLETE = "conversion-complete"
    FILE_LOG_UPDATE = "file-log-update"
    ERROR = "error"


@dataclass(frozen=True)
class ServerEvent:
    """A single published event."""

    type: str
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=utc_now)

    def to_payload(self) -> dict[str, Any]:
        """Event data tagged with its type and timestamp, as sent to stream clients."""
        return {"type": self.type, **self.data, "timestamp": to_iso(self.timestamp)}


class Subscription:
    """One subscriber's view of the bus.

    Iterate with ``async for``; iteration ends when the subscription or the
    bus is closed.
    """

    def __init__(self, bus: EventBus, maxsize: int) -> None:
        self._bus = bus
        self._queue: asyncio.Queue[ServerEvent | None] = asyncio.Queue(maxsize)
        self.dropped = 0
        self.closed = False

    def _offer(self, event: ServerEvent | None) -> bool:
        """Enqueue without blocking. Runs on the loop thread.

        Returns:
            True if an older event was dropped to make room.
        """
        if self.closed and event is not None:
            return False
        dropped = False
        while True:
            try:
                self._queue.put_nowait(event)
                return dropped
            except asyncio.QueueFull:
                self._queue.get_nowait()
                self.dropped += 1
                dropped = True

    async def get(self) -> ServerEvent | None:
        """Wait for the next event; None once closed."""
        if self.closed and self._queue.empty():
            return None
        return await self._queue.get()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._bus._unsubscribe(self)
        self._offer(None)

    def __aiter__(self) -> AsyncIterator[ServerEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ServerEvent]:
        while True:
            event = await self.get()
            if event is None:
                return
            yield event


class EventBus:
    """Fan-out of ServerEvents to subscribers on one event loop."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        *,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self._loop = loop
        self._queue_size = queue_size
        self._subscribers: set[Subscription] = set()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def bind(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Attach the bus to loop (default: the running loop).

        Publishes from other threads before the first bind are discarded.
        """
        self._loop = loop or asyncio.get_running_loop()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self.bind()
        return self._loop

    def subscribe(self) -> Subscription:
        """Register a subscriber. Must be called on the bus's event loop."""
        self._get_loop()
        subscription = Subscription(self, self._queue_size)
        if self._closed:
            subscription.close()
            return subscription
        with self._lock:
            self._subscribers.add(subscription)
        logger.debug("Event subscriber added (total: %d)", self.subscriber_count)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscribers.discard(subscription)

    def publish(self, event_type: EventType | str, data: dict[str, Any]) -> ServerEvent:
        """Deliver an event to every current subscriber.

        Safe to call from worker threads; delivery is handed to the bus's
        loop in that case. Events published with no subscribers are
        discarded.
        """
        name = event_type.value if isinstance(event_type, EventType) else event_type
        event = ServerEvent(type=name, data=dict(data))
        with self._lock:
            subscribers = list(self._subscribers)
        if not subscribers or self._loop is None:
            return event

        if _on_loop(self._loop):
            self._deliver(subscribers, event)
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._deliver, subscribers, event)
        return event

    def _deliver(self, subscribers: list[Subscription], event: ServerEvent) -> None:
        for subscription in subscribers:
            if subscription._offer(event) and subscription.dropped % 100 == 1:
                logger.warning(
                    "Slow event subscriber, %d event(s) dropped", subscription.dropped
                )

    def close(self) -> None:
        """End every subscription. Later publishes are discarded."""
        self._closed = True
        with self._lock:
            subscribers = list(self._subscribers)
        for subscription in subscribers:
            subscription.close()


def _on_loop(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False
