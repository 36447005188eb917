"""Server lifecycle management.

Tracks startup time and coordinates graceful shutdown between the HTTP
server, open event streams and running conversions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from umd.core.datetime_utils import utc_now


@dataclass
class ShutdownState:
    """Tracks shutdown progress for graceful termination."""

    initiated: datetime | None = None
    """UTC timestamp when shutdown was initiated, None if not shutting down."""

    timeout_deadline: datetime | None = None
    """UTC timestamp after which remaining work is abandoned."""

    @property
    def is_shutting_down(self) -> bool:
        return self.initiated is not None

    @property
    def is_timed_out(self) -> bool:
        if self.timeout_deadline is None:
            return False
        return utc_now() >= self.timeout_deadline


@dataclass
class ServerLifecycle:
    """Startup and shutdown state shared by request handlers."""

    shutdown_timeout: float = 30.0
    """Seconds to wait for graceful shutdown."""

    start_time: datetime = field(default_factory=utc_now)

    shutdown_state: ShutdownState = field(default_factory=ShutdownState)

    @property
    def uptime_seconds(self) -> float:
        return (utc_now() - self.start_time).total_seconds()

    @property
    def is_shutting_down(self) -> bool:
        return self.shutdown_state.is_shutting_down

    def initiate_shutdown(self) -> None:
        """Begin graceful shutdown. Idempotent."""
        if self.shutdown_state.initiated is not None:
            return
        now = utc_now()
        self.shutdown_state.initiated = now
        self.shutdown_state.timeout_deadline = now + timedelta(
            seconds=self.shutdown_timeout
        )
