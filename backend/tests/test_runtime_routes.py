"""Integration tests for state, actions, render, interact and render-mode routes."""

from __future__ import annotations

import re
import sys
import types

import pytest

from studio.kernel.host import HostText, get_container
from studio.kernel.workspace import DEFAULT_SCREEN_ID


class EchoRenderer:
    async def render_into(self, serialized_state, target_id):
        get_container(target_id).append_child(HostText(serialized_state))


@pytest.fixture
def renderer_module(monkeypatch):
    module = types.ModuleType("studio_test_renderers")
    module.echo = EchoRenderer
    monkeypatch.setitem(sys.modules, "studio_test_renderers", module)
    return module


class TestState:
    async def test_replace_state(self, async_client):
        """PUT /api/state → document replaced, snapshot taken."""
        res = await async_client.put("/api/state", json={"state": {"todos": []}})
        assert res.status_code == 200
        data = res.json()
        assert data["state"] == {"todos": []}
        assert data["historyLength"] == 2

    async def test_state_must_be_object(self, async_client):
        """PUT /api/state with a list → 422."""
        res = await async_client.put("/api/state", json={"state": [1, 2]})
        assert res.status_code == 422


class TestActions:
    async def test_run_action(self, async_client):
        """POST /api/actions → changed state."""
        res = await async_client.post("/api/actions", json={"action": "counter = counter + 5"})
        assert res.status_code == 200
        data = res.json()
        assert data["changed"] is True
        assert data["errors"] == []
        assert data["state"]["counter"] == 5

    async def test_partial_failure(self, async_client):
        """POST /api/actions with a bad statement → 200 with errors listed."""
        res = await async_client.post("/api/actions", json={"action": "x = 1; y = "})
        data = res.json()
        assert res.status_code == 200
        assert data["changed"] is True
        assert data["state"]["x"] == 1
        assert len(data["errors"]) == 1

    async def test_non_finite_math_is_not_fatal(self, async_client, workspace):
        """POST /api/actions with NaN-producing math → 200, stored as null."""
        res = await async_client.post("/api/actions", json={"action": "x = 1; y = Math.floor(state.missing)"})
        assert res.status_code == 200
        data = res.json()
        assert data["errors"] == []
        assert data["state"]["x"] == 1
        assert data["state"]["y"] is None
        assert workspace.state["y"] is None

    async def test_deeply_nested_expression_is_reported(self, async_client):
        """POST /api/actions with runaway nesting → 200 with a RangeError listed."""
        rhs = "(" * 3000 + "1" + ")" * 3000
        res = await async_client.post("/api/actions", json={"action": f"x = 1; y = {rhs}"})
        assert res.status_code == 200
        data = res.json()
        assert data["state"]["x"] == 1
        assert data["errors"][0]["message"] == "RangeError: Maximum call stack size exceeded"
        assert data["errors"][0]["statement"] == "y ="
        assert data["status"]["type"] == "error"

    async def test_empty_action(self, async_client):
        """POST /api/actions with "" → unchanged."""
        res = await async_client.post("/api/actions", json={"action": ""})
        assert res.json()["changed"] is False


class TestRenderAndInteract:
    async def test_render(self, async_client):
        """GET /api/render → HTML of the active screen."""
        res = await async_client.get("/api/render")
        assert res.status_code == 200
        data = res.json()
        assert data["ok"] is True
        assert data["mode"] == "builtin"
        assert "Hello, React!" in data["html"]
        assert data["error"] is None

    async def test_click_round_trip(self, async_client):
        """Render → POST /api/interact on the button → counter increments."""
        html = (await async_client.get("/api/render")).json()["html"]
        element_id = re.search(r'data-on-click="([^"]+)"', html).group(1)

        res = await async_client.post("/api/interact", json={"elementId": element_id, "event": "click"})
        assert res.status_code == 200
        data = res.json()
        assert data["handled"] is True
        assert data["state"]["counter"] == 1

        html = (await async_client.get("/api/render")).json()["html"]
        assert "Clicks: 1" in html

    async def test_interact_unknown_element(self, async_client):
        """POST /api/interact with unknown element → 404."""
        await async_client.get("/api/render")
        res = await async_client.post("/api/interact", json={"elementId": "nope"})
        assert res.status_code == 404

    async def test_render_error(self, async_client):
        """GET /api/render with a broken screen → ok=false, error box HTML."""
        await async_client.put(
            f"/api/screens/{DEFAULT_SCREEN_ID}",
            json={"compose": "render(() => Text(() => nope))"},
        )
        data = (await async_client.get("/api/render")).json()
        assert data["ok"] is False
        assert data["error"]["message"] == "ReferenceError: nope is not defined"
        assert "DSL Runtime Error:" in data["html"]


class TestRenderMode:
    async def test_external_without_renderer(self, async_client):
        """PUT /api/render-mode external with nothing loaded → 409, mode unchanged."""
        res = await async_client.put("/api/render-mode", json={"mode": "external"})
        assert res.status_code == 409
        data = (await async_client.get("/api/render")).json()
        assert data["mode"] == "builtin"

    async def test_invalid_reference(self, async_client):
        """PUT /api/render-mode with an unimportable renderer → 409."""
        res = await async_client.put(
            "/api/render-mode",
            json={"mode": "external", "renderer": "no_such_module_xyz:renderer"},
        )
        assert res.status_code == 409

    async def test_external_renderer(self, async_client, renderer_module):
        """PUT /api/render-mode with a loadable renderer → external rendering."""
        res = await async_client.put(
            "/api/render-mode",
            json={"mode": "external", "renderer": "studio_test_renderers:echo"},
        )
        assert res.status_code == 200
        assert res.json()["mode"] == "external"

        data = (await async_client.get("/api/render")).json()
        assert data["ok"] is True
        assert data["mode"] == "external"
        assert "counter" in data["html"]

        res = await async_client.put("/api/render-mode", json={"mode": "builtin"})
        assert res.json()["mode"] == "builtin"

    async def test_unknown_mode(self, async_client):
        """PUT /api/render-mode with an unknown mode → 422."""
        res = await async_client.put("/api/render-mode", json={"mode": "holographic"})
        assert res.status_code == 422
