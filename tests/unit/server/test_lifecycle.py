"""Unit tests for server lifecycle management."""

from datetime import datetime, timedelta, timezone

from umd.server.lifecycle import ServerLifecycle, ShutdownState


class TestShutdownState:
    """Tests for ShutdownState dataclass."""

    def test_default_state_not_shutting_down(self) -> None:
        """Default state should not be shutting down."""
        state = ShutdownState()
        assert state.initiated is None
        assert state.timeout_deadline is None
        assert not state.is_shutting_down
        assert not state.is_timed_out

    def test_is_shutting_down_when_initiated_set(self) -> None:
        state = ShutdownState(initiated=datetime.now(timezone.utc))
        assert state.is_shutting_down

    def test_is_timed_out_before_deadline(self) -> None:
        future = datetime.now(timezone.utc) + timedelta(hours=1)
        assert not ShutdownState(timeout_deadline=future).is_timed_out

    def test_is_timed_out_after_deadline(self) -> None:
        past = datetime.now(timezone.utc) - timedelta(seconds=1)
        assert ShutdownState(timeout_deadline=past).is_timed_out


class TestServerLifecycle:
    """Tests for ServerLifecycle class."""

    def test_default_state(self) -> None:
        """Default state should have sensible defaults."""
        lifecycle = ServerLifecycle()
        assert lifecycle.shutdown_timeout == 30.0
        assert not lifecycle.is_shutting_down
        assert 0 <= lifecycle.uptime_seconds < 1.0

    def test_initiate_shutdown_sets_deadline(self) -> None:
        lifecycle = ServerLifecycle(shutdown_timeout=10.0)
        lifecycle.initiate_shutdown()

        state = lifecycle.shutdown_state
        assert lifecycle.is_shutting_down
        assert state.timeout_deadline - state.initiated == timedelta(seconds=10)

    def test_initiate_shutdown_idempotent(self) -> None:
        """Calling initiate_shutdown twice keeps the first timestamp."""
        lifecycle = ServerLifecycle()
        lifecycle.initiate_shutdown()
        first = lifecycle.shutdown_state.initiated
        lifecycle.initiate_shutdown()
        assert lifecycle.shutdown_state.initiated == first
