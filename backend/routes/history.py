"""History routes — snapshot, undo, redo."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends

from backend.models.studio import HistoryResponse, StatusResponse
from backend.session import get_lock, get_workspace
from studio.kernel.types import HistoryOutcome
from studio.kernel.workspace import Workspace

router = APIRouter(prefix="/api/history", tags=["history"])


def _history_response(workspace: Workspace, outcome: HistoryOutcome) -> HistoryResponse:
    return HistoryResponse(
        ok=outcome.ok,
        message=outcome.message,
        historyIndex=workspace.history.cursor,
        historyLength=len(workspace.history),
        persisted=outcome.persistence_error is None,
        status=StatusResponse.from_status(workspace.status),
    )


@router.post("/snapshot", status_code=200)
async def snapshot(
    workspace: Workspace = Depends(get_workspace),
    lock: asyncio.Lock = Depends(get_lock),
) -> HistoryResponse:
    async with lock:
        outcome = workspace.snapshot()
    return _history_response(workspace, outcome)


@router.post("/undo", status_code=200)
async def undo(
    workspace: Workspace = Depends(get_workspace),
    lock: asyncio.Lock = Depends(get_lock),
) -> HistoryResponse:
    """Step back one snapshot. "Nothing to undo" is a normal outcome, not an error."""
    async with lock:
        outcome = workspace.undo()
    return _history_response(workspace, outcome)


@router.post("/redo", status_code=200)
async def redo(
    workspace: Workspace = Depends(get_workspace),
    lock: asyncio.Lock = Depends(get_lock),
) -> HistoryResponse:
    async with lock:
        outcome = workspace.redo()
    return _history_response(workspace, outcome)
