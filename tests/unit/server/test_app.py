"""Tests for application assembly and the health endpoint."""

import pytest

from umd.config import UMDConfig
from umd.server import ServerLifecycle, create_app


@pytest.fixture
def lifecycle() -> ServerLifecycle:
    return ServerLifecycle()


@pytest.fixture
def app(config: UMDConfig, lifecycle: ServerLifecycle):
    return create_app(config, lifecycle=lifecycle)


class TestCreateApp:
    """Tests for create_app."""

    def test_services_registered(self, app, config: UMDConfig):
        for key in (
            "config",
            "lifecycle",
            "exclusions",
            "scan_cache",
            "state",
            "process_manager",
            "event_bus",
        ):
            assert app[key] is not None
        assert app["conversion_tasks"] == set()
        assert app["cancelled_jobs"] == set()
        assert app["config"] is config

    def test_state_shared_with_process_manager(self, app):
        assert app["process_manager"]._state is app["state"]

    def test_api_routes_registered(self, app):
        paths = {resource.canonical for resource in app.router.resources()}
        assert "/api/health" in paths
        assert "/api/scan" in paths
        assert "/api/convert/status/{job_id}" in paths
        assert "/api/exclusions/{rule_id}" in paths
        assert "/api/events" in paths


class TestHealth:
    """Tests for GET /api/health."""

    @pytest.mark.asyncio
    async def test_healthy(self, aiohttp_client, app):
        client = await aiohttp_client(app)
        resp = await client.get("/api/health")
        assert resp.status == 200
        data = await resp.json()
        assert data["status"] == "healthy"
        assert data["shutting_down"] is False
        assert data["active_conversions"] == 0
        assert data["running_batches"] == 0
        assert data["version"]

    @pytest.mark.asyncio
    async def test_shutting_down(self, aiohttp_client, app, lifecycle):
        client = await aiohttp_client(app)
        lifecycle.initiate_shutdown()
        resp = await client.get("/api/health")
        assert resp.status == 503
        assert (await resp.json())["status"] == "shutting_down"


class TestNotFound:
    """Tests for the /api not-found middleware."""

    @pytest.mark.asyncio
    async def test_unknown_api_path_is_json(self, aiohttp_client, app):
        client = await aiohttp_client(app)
        resp = await client.get("/api/nothing-here")
        assert resp.status == 404
        data = await resp.json()
        assert data["code"] == "NOT_FOUND"
        assert data["error"] == "Not found: GET /api/nothing-here"

    @pytest.mark.asyncio
    async def test_other_paths_untouched(self, aiohttp_client, app):
        client = await aiohttp_client(app)
        resp = await client.get("/elsewhere")
        assert resp.status == 404
        assert resp.content_type != "application/json"


class TestShutdownCheck:
    """Tests for rejecting new work during shutdown."""

    @pytest.mark.asyncio
    async def test_scan_rejected(self, aiohttp_client, app, lifecycle, doc_tree):
        client = await aiohttp_client(app)
        lifecycle.initiate_shutdown()
        resp = await client.post("/api/scan", json={"rootPath": str(doc_tree)})
        assert resp.status == 503
        assert (await resp.json())["code"] == "SHUTTING_DOWN"

    @pytest.mark.asyncio
    async def test_convert_rejected(self, aiohttp_client, app, lifecycle, doc_tree):
        client = await aiohttp_client(app)
        lifecycle.initiate_shutdown()
        resp = await client.post(
            "/api/convert", json={"files": [str(doc_tree / "report.pdf")]}
        )
        assert resp.status == 503
