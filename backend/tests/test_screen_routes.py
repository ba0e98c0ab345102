"""Integration tests for /api/screens."""

from __future__ import annotations

from studio.kernel.workspace import DEFAULT_SCREEN_ID


class TestCreateScreen:
    async def test_create(self, async_client):
        """POST /api/screens → 201 with the new screen, now active."""
        res = await async_client.post("/api/screens", json={"name": "Settings"})
        assert res.status_code == 201
        screen = res.json()
        assert screen["name"] == "Settings"
        assert screen["id"].startswith("s_")
        assert "This is Settings" in screen["compose"]

        project = (await async_client.get("/api/project")).json()
        assert project["activeScreenId"] == screen["id"]
        assert project["historyLength"] == 2

    async def test_default_name(self, async_client):
        """POST /api/screens {} → Screen<N+1>."""
        res = await async_client.post("/api/screens", json={})
        assert res.status_code == 201
        assert res.json()["name"] == "Screen2"

    async def test_extra_fields_rejected(self, async_client):
        """POST /api/screens with unknown field → 422."""
        res = await async_client.post("/api/screens", json={"name": "x", "color": "red"})
        assert res.status_code == 422


class TestSaveScreen:
    async def test_save(self, async_client, workspace):
        """PUT /api/screens/{id} → source and companion saved."""
        res = await async_client.put(
            f"/api/screens/{DEFAULT_SCREEN_ID}",
            json={"compose": "render(() => Text('saved'))", "companion": "fun Main() {}"},
        )
        assert res.status_code == 200
        assert res.json()["compose"] == "render(() => Text('saved'))"
        assert workspace.project.files[f"{DEFAULT_SCREEN_ID}_kotlin"] == "fun Main() {}"
        assert workspace.status.message == "Project saved!"

    async def test_save_unknown(self, async_client):
        """PUT /api/screens/{missing} → 404."""
        res = await async_client.put("/api/screens/s_missing", json={"compose": "x"})
        assert res.status_code == 404


class TestSelectScreen:
    async def test_select(self, async_client):
        """POST /api/screens/{id}/select → active pointer moves, no snapshot."""
        await async_client.post("/api/screens", json={"name": "Other"})
        res = await async_client.post(f"/api/screens/{DEFAULT_SCREEN_ID}/select")
        assert res.status_code == 200
        data = res.json()
        assert data["activeScreenId"] == DEFAULT_SCREEN_ID
        assert data["historyLength"] == 2

    async def test_select_unknown(self, async_client):
        """POST /api/screens/{missing}/select → 404."""
        res = await async_client.post("/api/screens/s_missing/select")
        assert res.status_code == 404


class TestDeleteScreen:
    async def test_delete(self, async_client):
        """DELETE /api/screens/{id} → screen gone, pointer moved."""
        created = (await async_client.post("/api/screens", json={"name": "Temp"})).json()
        res = await async_client.delete(f"/api/screens/{created['id']}")
        assert res.status_code == 200
        data = res.json()
        assert data["activeScreenId"] == DEFAULT_SCREEN_ID
        assert [s["id"] for s in data["project"]["screens"]] == [DEFAULT_SCREEN_ID]

    async def test_delete_unknown(self, async_client):
        """DELETE /api/screens/{missing} → 404."""
        res = await async_client.delete("/api/screens/s_missing")
        assert res.status_code == 404
