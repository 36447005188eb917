"""Unit tests for signal handler setup."""

import asyncio
import os
import signal

import pytest

from umd.server.lifecycle import ServerLifecycle
from umd.server.signals import remove_signal_handlers, setup_signal_handlers


class TestSignalHandlers:
    """Tests for shutdown signal registration."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("sig", [signal.SIGTERM, signal.SIGINT])
    async def test_signal_starts_shutdown(self, sig) -> None:
        """A shutdown signal marks the lifecycle and sets the event."""
        loop = asyncio.get_running_loop()
        lifecycle = ServerLifecycle()
        shutdown_event = asyncio.Event()

        setup_signal_handlers(loop, lifecycle, shutdown_event)
        try:
            os.kill(os.getpid(), sig)
            await asyncio.wait_for(shutdown_event.wait(), timeout=2.0)
        finally:
            remove_signal_handlers(loop)

        assert lifecycle.is_shutting_down

    @pytest.mark.asyncio
    async def test_remove_without_setup(self) -> None:
        """Removing handlers that were never installed is harmless."""
        remove_signal_handlers(asyncio.get_running_loop())

    def test_registration_failure_is_logged(self, caplog) -> None:
        """A loop that rejects handlers only produces warnings."""

        class RejectingLoop:
            def add_signal_handler(self, *args):
                raise NotImplementedError

        setup_signal_handlers(RejectingLoop(), ServerLifecycle(), asyncio.Event())
        assert "Failed to register handler for SIGTERM" in caplog.text
