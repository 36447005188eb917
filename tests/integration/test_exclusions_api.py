"""Integration tests for the exclusion rule endpoints."""

from __future__ import annotations

import pytest

pytestmark = pytest.mark.integration


async def create_rule(client, pattern: str, rule_type: str, scope: str | None = None) -> dict:
    body = {"pattern": pattern, "type": rule_type}
    if scope is not None:
        body["scope"] = scope
    resp = await client.post("/api/exclusions", json=body)
    assert resp.status == 201, await resp.text()
    return await resp.json()


class TestRuleCrud:
    """Tests for creating, reading, updating and deleting rules."""

    async def test_create_and_get(self, client):
        rule = await create_rule(client, "**/*.tmp", "pattern")

        assert rule["scope"] == "global"
        assert rule["type"] == "pattern"
        assert rule["id"]
        assert rule["createdAt"]

        resp = await client.get(f"/api/exclusions/{rule['id']}")
        assert (await resp.json()) == rule

    async def test_list_with_scope(self, client):
        global_rule = await create_rule(client, "**/*.tmp", "pattern")
        scoped = await create_rule(client, "/docs/private", "directory", scope="/docs")
        await create_rule(client, "/other/x.pdf", "file", scope="/other")

        resp = await client.get("/api/exclusions")
        assert (await resp.json())["total"] == 3

        resp = await client.get("/api/exclusions", params={"scope": "/docs"})
        data = await resp.json()
        assert [r["id"] for r in data["rules"]] == [global_rule["id"], scoped["id"]]

    async def test_invalid_type(self, client):
        resp = await client.post("/api/exclusions", json={"pattern": "x", "type": "regex"})
        assert resp.status == 400
        assert (await resp.json())["code"] == "VALIDATION_FAILED"

    async def test_blank_pattern(self, client):
        resp = await client.post("/api/exclusions", json={"pattern": "", "type": "pattern"})
        assert resp.status == 400
        assert (await resp.json())["code"] == "VALIDATION_FAILED"

    async def test_update(self, client):
        rule = await create_rule(client, "/docs/a.pdf", "file")

        resp = await client.put(
            f"/api/exclusions/{rule['id']}", json={"pattern": "/docs/b.pdf"}
        )

        assert resp.status == 200
        updated = await resp.json()
        assert updated["pattern"] == "/docs/b.pdf"
        assert updated["type"] == "file"
        assert updated["createdAt"] == rule["createdAt"]

    async def test_update_unknown(self, client):
        resp = await client.put("/api/exclusions/nope", json={"pattern": "/x"})
        assert resp.status == 404
        data = await resp.json()
        assert data["error"] == "Rule not found"
        assert data["ruleId"] == "nope"

    async def test_delete(self, client):
        rule = await create_rule(client, "/docs/a.pdf", "file")

        resp = await client.delete(f"/api/exclusions/{rule['id']}")
        assert (await resp.json())["success"] is True

        resp = await client.delete(f"/api/exclusions/{rule['id']}")
        assert resp.status == 404
        resp = await client.get(f"/api/exclusions/{rule['id']}")
        assert resp.status == 404


class TestCheck:
    """Tests for POST /api/exclusions/check."""

    async def test_excluded_path(self, client):
        rule = await create_rule(client, "/docs/private", "directory", scope="/docs")

        resp = await client.post(
            "/api/exclusions/check",
            json={"path": "/docs/private/q1.pdf", "scope": "/docs"},
        )

        data = await resp.json()
        assert data["excluded"] is True
        assert data["rule"]["id"] == rule["id"]
        assert data["reason"] == (
            "Matched custom directory rule: /docs/private (scope: /docs)"
        )

    async def test_scope_not_applied_elsewhere(self, client):
        await create_rule(client, "/docs/private", "directory", scope="/docs")

        resp = await client.post(
            "/api/exclusions/check", json={"path": "/docs/private/q1.pdf"}
        )

        data = await resp.json()
        assert data["excluded"] is False
        assert data["scope"] == "global"
        assert "rule" not in data


class TestImportExport:
    """Tests for bulk import, export and clear."""

    async def test_export(self, client):
        rule = await create_rule(client, "**/*.tmp", "pattern")

        resp = await client.get("/api/exclusions/export")

        assert resp.headers["Content-Disposition"] == (
            'attachment; filename="exclusions.json"'
        )
        assert await resp.json() == [rule]

    async def test_import_skips_duplicates_and_invalid(self, client):
        existing = await create_rule(client, "**/*.tmp", "pattern")

        resp = await client.post(
            "/api/exclusions/import",
            json={
                "rules": [
                    existing,
                    {"id": "r-new", "pattern": "/docs/a.pdf", "type": "file"},
                    {"id": "r-bad", "pattern": "/docs/b.pdf", "type": "regex"},
                    {"pattern": "/docs/no-id.pdf", "type": "file"},
                ]
            },
        )

        data = await resp.json()
        assert data == {"success": True, "imported": 1, "skipped": 3, "total": 2}

    async def test_import_replace(self, client):
        await create_rule(client, "**/*.tmp", "pattern")

        resp = await client.post(
            "/api/exclusions/import",
            json={
                "rules": [{"id": "r-1", "pattern": "/docs/a.pdf", "type": "file"}],
                "replace": True,
            },
        )

        assert (await resp.json())["total"] == 1
        resp = await client.get("/api/exclusions")
        assert [r["id"] for r in (await resp.json())["rules"]] == ["r-1"]

    async def test_clear_requires_confirmation(self, client):
        await create_rule(client, "**/*.tmp", "pattern")

        resp = await client.delete("/api/exclusions")
        assert resp.status == 400
        assert (await resp.json())["code"] == "CONFIRMATION_REQUIRED"

        resp = await client.delete("/api/exclusions", params={"confirm": "true"})
        data = await resp.json()
        assert data["removed"] == 1

        resp = await client.get("/api/exclusions")
        assert (await resp.json())["rules"] == []

    async def test_rules_persist(self, client, config):
        from umd.exclusions import ExclusionService

        rule = await create_rule(client, "**/*.tmp", "pattern")
        reloaded = ExclusionService(config.exclusions_path)
        assert reloaded.get_rule(rule["id"]) is not None
