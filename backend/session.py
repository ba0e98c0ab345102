"""
Workspace session — one workspace per process.

Built at startup by the app lifespan and stored on app.state. Routes receive
it through FastAPI dependencies. Mutating routes hold the session lock so an
action and its snapshot are never interleaved with another request.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import HTTPException, Request, status

from backend.config import Settings
from studio.kernel.history import FileStorage, MemoryStorage, StudioStorage
from studio.kernel.preview import Preview, load_external_renderer
from studio.kernel.types import RendererUnavailableError
from studio.kernel.workspace import Workspace

logger = logging.getLogger(__name__)


def build_storage(config: Settings) -> StudioStorage:
    if config.USE_MEMORY_STORAGE:
        logger.info("Using in-memory project storage")
        return MemoryStorage()
    logger.info("Using file storage at %s", config.STORAGE_DIR)
    return FileStorage(config.STORAGE_DIR)


def open_workspace(config: Settings, storage: StudioStorage | None = None) -> Workspace:
    """Open the workspace and preload the configured external renderer, if any."""
    preview = Preview(timeout=config.RENDER_TIMEOUT, max_depth=config.MAX_CALL_DEPTH)
    workspace = Workspace.open(
        storage if storage is not None else build_storage(config),
        key=config.STORAGE_KEY,
        preview=preview,
        max_depth=config.MAX_CALL_DEPTH,
    )
    if config.EXTERNAL_RENDERER:
        try:
            preview.external = load_external_renderer(config.EXTERNAL_RENDERER)
        except RendererUnavailableError as exc:
            # Preloading is optional; selecting the mode later reports the problem
            logger.warning("External renderer not loaded: %s", exc.message)
    return workspace


def get_workspace(request: Request) -> Workspace:
    workspace = getattr(request.app.state, "workspace", None)
    if workspace is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Workspace not ready.")
    return workspace


def get_lock(request: Request) -> asyncio.Lock:
    lock = getattr(request.app.state, "workspace_lock", None)
    if lock is None:
        lock = asyncio.Lock()
        request.app.state.workspace_lock = lock
    return lock
