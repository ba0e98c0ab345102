"""
Pydantic models for Compose Studio.

All request/response shapes defined here. No imports from routes.
"""

from backend.models.studio import (
    ActionRequest,
    ActionResponse,
    CreateScreenRequest,
    HistoryResponse,
    InteractRequest,
    ProjectResponse,
    RenderModeRequest,
    RenderResponse,
    SaveScreenRequest,
    SetStateRequest,
)

__all__ = [
    # Screen models
    "CreateScreenRequest",
    "SaveScreenRequest",
    "ProjectResponse",
    # Runtime models
    "SetStateRequest",
    "ActionRequest",
    "ActionResponse",
    "RenderResponse",
    "InteractRequest",
    "RenderModeRequest",
    # History models
    "HistoryResponse",
]
