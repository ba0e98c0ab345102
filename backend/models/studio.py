"""Request/response models for the studio API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from studio.kernel.types import Status


class StatusResponse(BaseModel):
    """Operator-visible status line."""

    message: str
    type: Literal["ok", "warn", "error", "info"]

    @classmethod
    def from_status(cls, status: Status) -> StatusResponse:
        return cls(message=status.message, type=status.type)


# ── screens ─────────────────────────────────────────────────────────────────


class CreateScreenRequest(BaseModel):
    """What the client sends to add a screen."""

    model_config = {"extra": "forbid"}

    name: str = Field(default="", max_length=200)


class SaveScreenRequest(BaseModel):
    """What the client sends to save an editor buffer."""

    model_config = {"extra": "forbid"}

    compose: str
    companion: str | None = None


class ScreenResponse(BaseModel):
    id: str
    name: str
    compose: str
    createdAt: int


class ProjectResponse(BaseModel):
    """Everything the shell needs to draw itself."""

    project: dict[str, Any]
    state: dict[str, Any]
    activeScreenId: str | None
    status: StatusResponse
    historyIndex: int
    historyLength: int


# ── runtime ─────────────────────────────────────────────────────────────────


class SetStateRequest(BaseModel):
    """What the client sends to replace the state document."""

    model_config = {"extra": "forbid"}

    state: dict[str, Any]


class ActionRequest(BaseModel):
    """What the client sends to run an action string."""

    model_config = {"extra": "forbid"}

    action: str = Field(max_length=10000)


class ActionErrorResponse(BaseModel):
    statement: str
    message: str


class ActionResponse(BaseModel):
    changed: bool
    errors: list[ActionErrorResponse]
    state: dict[str, Any]
    status: StatusResponse


class RenderErrorResponse(BaseModel):
    message: str
    trace: str | None = None
    line: int | None = None
    column: int | None = None


class RenderResponse(BaseModel):
    """What GET /api/render returns."""

    ok: bool
    mode: Literal["builtin", "external"]
    html: str
    logs: list[str]
    error: RenderErrorResponse | None = None


class InteractRequest(BaseModel):
    """A host interaction routed back by element id."""

    model_config = {"extra": "forbid"}

    elementId: str = Field(min_length=1)
    event: str = Field(default="click", pattern=r"^[a-z]+$")


class InteractResponse(BaseModel):
    handled: bool
    state: dict[str, Any]
    status: StatusResponse


class RenderModeRequest(BaseModel):
    """Explicit operator switch between renderers."""

    model_config = {"extra": "forbid"}

    mode: Literal["builtin", "external"]
    renderer: str | None = None  # "package.module:attribute"


class RenderModeResponse(BaseModel):
    mode: Literal["builtin", "external"]
    status: StatusResponse


# ── history ─────────────────────────────────────────────────────────────────


class HistoryResponse(BaseModel):
    """Outcome of snapshot/undo/redo."""

    ok: bool
    message: str
    historyIndex: int
    historyLength: int
    persisted: bool
    status: StatusResponse
