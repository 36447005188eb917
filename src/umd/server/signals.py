"""Signal handler setup for the HTTP server.

SIGTERM (from a service manager) and SIGINT (Ctrl+C) both start a graceful
shutdown.
"""

import asyncio
import contextlib
import logging
import signal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from umd.server.lifecycle import ServerLifecycle

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def setup_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    lifecycle: "ServerLifecycle",
    shutdown_event: asyncio.Event,
) -> None:
    """Register shutdown handlers on the running loop.

    Args:
        loop: The asyncio event loop to register handlers on.
        lifecycle: ServerLifecycle instance for shutdown coordination.
        shutdown_event: Event to set when shutdown is initiated.
    """

    def handle_shutdown_signal(sig: signal.Signals) -> None:
        logger.info("Received %s, initiating graceful shutdown", sig.name)
        lifecycle.initiate_shutdown()
        shutdown_event.set()

    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, handle_shutdown_signal, sig)
            logger.debug("Registered handler for %s", sig.name)
        except (ValueError, RuntimeError, NotImplementedError) as e:
            # ValueError: not in main thread
            # NotImplementedError: platform without add_signal_handler
            logger.warning("Failed to register handler for %s: %s", sig.name, e)


def remove_signal_handlers(loop: asyncio.AbstractEventLoop) -> None:
    """Remove the handlers installed by setup_signal_handlers."""
    for sig in SHUTDOWN_SIGNALS:
        with contextlib.suppress(ValueError, RuntimeError, NotImplementedError):
            loop.remove_signal_handler(sig)
            logger.debug("Removed handler for %s", sig.name)
