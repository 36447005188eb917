"""HTTP orchestration server."""

from umd.server.app import create_app
from umd.server.lifecycle import ServerLifecycle, ShutdownState

__all__ = ["ServerLifecycle", "ShutdownState", "create_app"]
