"""Fixtures for HTTP API integration tests."""

from __future__ import annotations

import pytest

from umd.config import UMDConfig
from umd.server import ServerLifecycle, create_app


@pytest.fixture
def lifecycle() -> ServerLifecycle:
    return ServerLifecycle(shutdown_timeout=5.0)


@pytest.fixture
def app(config: UMDConfig, lifecycle: ServerLifecycle):
    """Application backed by services persisting under the test data dir."""
    application = create_app(config, lifecycle=lifecycle)
    application["sse_heartbeat_interval"] = 0.2
    return application


@pytest.fixture
async def client(aiohttp_client, app):
    return await aiohttp_client(app)
