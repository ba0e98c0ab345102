"""
Compose Studio FastAPI application.

Entry point for the API server.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.config import settings
from backend.routes import history as history_routes
from backend.routes import project as project_routes
from backend.routes import runtime as runtime_routes
from backend.routes import screens as screen_routes
from backend.session import open_workspace

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Handles startup logic:
    - Configure logging
    - Open the workspace (load persisted history or the default project)
    """
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app.state.workspace = open_workspace(settings)
    app.state.workspace_lock = asyncio.Lock()
    logger.info("Workspace opened (%s)", app.state.workspace.status.message)

    yield

    logger.info("Workspace closed")


app = FastAPI(
    title="Compose Studio",
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# Register routes
app.include_router(project_routes.router)
app.include_router(screen_routes.router)
app.include_router(runtime_routes.router)
app.include_router(history_routes.router)


@app.get("/health")
async def health():
    """Health check endpoint for uptime monitoring."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "backend.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
