"""Project routes — whole-project read and export."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from backend.models.studio import ProjectResponse, StatusResponse
from backend.session import get_workspace
from studio.kernel.workspace import Workspace

router = APIRouter(prefix="/api", tags=["project"])


def project_response(workspace: Workspace) -> ProjectResponse:
    return ProjectResponse(
        project=workspace.project.to_dict(),
        state=workspace.state,
        activeScreenId=workspace.active_screen_id,
        status=StatusResponse.from_status(workspace.status),
        historyIndex=workspace.history.cursor,
        historyLength=len(workspace.history),
    )


@router.get("/project", status_code=200)
async def get_project(workspace: Workspace = Depends(get_workspace)) -> ProjectResponse:
    """Current project, state document, active screen and status."""
    return project_response(workspace)


@router.get("/export", status_code=200)
async def export_project(workspace: Workspace = Depends(get_workspace)) -> dict[str, Any]:
    """
    Read-only bundle for export collaborators: screen list, state document
    and one file per screen source (plus companion source when present).
    """
    return workspace.export_payload()
