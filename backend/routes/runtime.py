"""
Runtime routes — state document, actions, preview rendering, interactions.

The preview container lives in the process; GET /api/render returns its HTML.
Interactive elements carry `data-on-<event>="<element id>"`, which the client
posts back to /api/interact.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from backend.models.studio import (
    ActionErrorResponse,
    ActionRequest,
    ActionResponse,
    InteractRequest,
    InteractResponse,
    ProjectResponse,
    RenderErrorResponse,
    RenderModeRequest,
    RenderModeResponse,
    RenderResponse,
    SetStateRequest,
    StatusResponse,
)
from backend.routes.project import project_response
from backend.session import get_lock, get_workspace
from studio.kernel.preview import load_external_renderer
from studio.kernel.types import EvalError, RendererUnavailableError
from studio.kernel.workspace import Workspace

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["runtime"])


@router.put("/state", status_code=200)
async def set_state(
    req: SetStateRequest,
    workspace: Workspace = Depends(get_workspace),
    lock: asyncio.Lock = Depends(get_lock),
) -> ProjectResponse:
    """Replace the state document wholesale and snapshot."""
    async with lock:
        workspace.set_state(req.state)
    return project_response(workspace)


@router.post("/actions", status_code=200)
async def run_action(
    req: ActionRequest,
    workspace: Workspace = Depends(get_workspace),
    lock: asyncio.Lock = Depends(get_lock),
) -> ActionResponse:
    """
    Apply an action string. Statement failures are reported in `errors`;
    the request itself still succeeds.
    """
    async with lock:
        result = workspace.execute_action(req.action)
    return ActionResponse(
        changed=result.changed,
        errors=[ActionErrorResponse(**e.to_dict()) for e in result.errors],
        state=workspace.state,
        status=StatusResponse.from_status(workspace.status),
    )


@router.get("/render", status_code=200)
async def render(
    workspace: Workspace = Depends(get_workspace),
    lock: asyncio.Lock = Depends(get_lock),
) -> RenderResponse:
    """Render the active screen with the selected renderer."""
    async with lock:
        outcome = await workspace.render()
        html = workspace.preview.container.to_html()

    error = None
    if isinstance(outcome.error, EvalError):
        error = RenderErrorResponse(**outcome.error.to_dict())
    elif outcome.error is not None:
        error = RenderErrorResponse(message=outcome.error.message)
    return RenderResponse(ok=outcome.ok, mode=outcome.mode, html=html, logs=outcome.logs, error=error)


@router.post("/interact", status_code=200)
async def interact(
    req: InteractRequest,
    workspace: Workspace = Depends(get_workspace),
    lock: asyncio.Lock = Depends(get_lock),
) -> InteractResponse:
    """Route a click (or other event) to the last render's listener."""
    async with lock:
        if workspace.preview.container.find(req.elementId) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Element not found.")
        try:
            handled = workspace.interact(req.elementId, req.event)
        except Exception as exc:
            logger.exception("Interaction %s on %s failed", req.event, req.elementId)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Interaction failed."
            ) from exc
    return InteractResponse(
        handled=handled,
        state=workspace.state,
        status=StatusResponse.from_status(workspace.status),
    )


@router.put("/render-mode", status_code=200)
async def set_render_mode(
    req: RenderModeRequest,
    workspace: Workspace = Depends(get_workspace),
    lock: asyncio.Lock = Depends(get_lock),
) -> RenderModeResponse:
    """
    Select the built-in or the external renderer. A missing or invalid
    external renderer is a 409; there is no fallback.
    """
    async with lock:
        try:
            renderer = load_external_renderer(req.renderer) if req.renderer and req.mode == "external" else None
            workspace.set_render_mode(req.mode, renderer)
        except RendererUnavailableError as exc:
            logger.warning("Render mode %s rejected: %s", req.mode, exc.message)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message) from exc
    return RenderModeResponse(
        mode=workspace.preview.mode.value,
        status=StatusResponse.from_status(workspace.status),
    )
