"""Screen routes — create, save, select, delete."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, status

from backend.models.studio import (
    CreateScreenRequest,
    ProjectResponse,
    SaveScreenRequest,
    ScreenResponse,
)
from backend.routes.project import project_response
from backend.session import get_lock, get_workspace
from studio.kernel.types import Screen, ScreenNotFound
from studio.kernel.workspace import Workspace

router = APIRouter(prefix="/api/screens", tags=["screens"])


def _screen_response(screen: Screen) -> ScreenResponse:
    return ScreenResponse(**screen.to_dict())


def _not_found(exc: ScreenNotFound) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Screen not found: {exc.message}")


@router.post("", status_code=201)
async def create_screen(
    req: CreateScreenRequest,
    workspace: Workspace = Depends(get_workspace),
    lock: asyncio.Lock = Depends(get_lock),
) -> ScreenResponse:
    """Add a screen from the template. It becomes the active screen."""
    async with lock:
        screen = workspace.new_screen(req.name)
    return _screen_response(screen)


@router.put("/{screen_id}", status_code=200)
async def save_screen(
    screen_id: str,
    req: SaveScreenRequest,
    workspace: Workspace = Depends(get_workspace),
    lock: asyncio.Lock = Depends(get_lock),
) -> ScreenResponse:
    """Save DSL source (and the companion source, when sent) and snapshot."""
    async with lock:
        try:
            screen = workspace.save_screen(screen_id, req.compose, req.companion)
        except ScreenNotFound as exc:
            raise _not_found(exc) from exc
    return _screen_response(screen)


@router.post("/{screen_id}/select", status_code=200)
async def select_screen(
    screen_id: str,
    workspace: Workspace = Depends(get_workspace),
    lock: asyncio.Lock = Depends(get_lock),
) -> ProjectResponse:
    async with lock:
        try:
            workspace.select_screen(screen_id)
        except ScreenNotFound as exc:
            raise _not_found(exc) from exc
    return project_response(workspace)


@router.delete("/{screen_id}", status_code=200)
async def delete_screen(
    screen_id: str,
    workspace: Workspace = Depends(get_workspace),
    lock: asyncio.Lock = Depends(get_lock),
) -> ProjectResponse:
    """Remove a screen. The active pointer moves to a remaining screen."""
    async with lock:
        try:
            workspace.delete_screen(screen_id)
        except ScreenNotFound as exc:
            raise _not_found(exc) from exc
    return project_response(workspace)
