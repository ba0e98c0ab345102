"""Integration tests for health, project and export routes."""

from __future__ import annotations

import httpx

from backend.main import app
from studio.kernel.workspace import DEFAULT_SCREEN_ID


class TestHealth:
    async def test_health(self, async_client):
        """GET /health → 200."""
        res = await async_client.get("/health")
        assert res.status_code == 200
        assert res.json() == {"status": "ok"}


class TestProject:
    async def test_get_project(self, async_client):
        """GET /api/project → default project, state and status."""
        res = await async_client.get("/api/project")
        assert res.status_code == 200
        data = res.json()
        assert data["activeScreenId"] == DEFAULT_SCREEN_ID
        assert data["state"] == {"name": "React", "counter": 0}
        assert data["project"]["screens"][0]["name"] == "MainScreen"
        assert data["historyIndex"] == 0
        assert data["historyLength"] == 1
        assert data["status"] == {"message": "Snapshot saved", "type": "ok"}

    async def test_workspace_not_ready(self):
        """Requests before startup → 503."""
        app.state.workspace = None
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
            res = await client.get("/api/project")
        assert res.status_code == 503


class TestExport:
    async def test_export(self, async_client):
        """GET /api/export → screens, state and per-screen files."""
        await async_client.put(
            f"/api/screens/{DEFAULT_SCREEN_ID}",
            json={"compose": "render(() => Text('x'))", "companion": "fun Main() {}"},
        )
        res = await async_client.get("/api/export")
        assert res.status_code == 200
        data = res.json()
        assert data["screens"] == [{"id": DEFAULT_SCREEN_ID, "name": "MainScreen"}]
        assert data["files"] == {
            "screens/MainScreen.dsl.js": "render(() => Text('x'))",
            "screens/MainScreen.kt": "fun Main() {}",
        }
        assert "exportedAt" in data
