"""
Compose Studio Kernel — Shared Types

Data classes used across the sandbox, action interpreter, render adapter,
history store, and workspace. These are the contracts that bind the kernel
together.

Serialized shapes use the camelCase keys the browser shell reads and writes
(`createdAt`, `activeScreenId`, `historyIndex`).
"""

from __future__ import annotations

import copy
import time
from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

STATUS_TYPES: set[str] = {"ok", "warn", "error", "info"}

# Auxiliary project files are keyed "<screen_id>_<kind>"
COMPANION_KIND = "kotlin"


def companion_key(screen_id: str, kind: str = COMPANION_KIND) -> str:
    return f"{screen_id}_{kind}"


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class StudioError(Exception):
    """Base class for every error the kernel reports."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ScriptError(StudioError):
    """
    An error thrown while running DSL or action source.
    `name` mirrors the script-level error kind (TypeError, ReferenceError, ...).
    """

    def __init__(
        self,
        name: str,
        message: str,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        super().__init__(message)
        self.name = name
        self.line = line
        self.column = column
        self.frames: list[str] = []

    @property
    def stack(self) -> str:
        lines = [f"{self.name}: {self.message}"]
        if self.line is not None:
            lines.append(f"    at <source> ({self.line}:{self.column})")
        lines.extend(f"    {frame}" for frame in self.frames)
        return "\n".join(lines)

    def __str__(self) -> str:
        return f"{self.name}: {self.message}"


class EvalError(StudioError):
    """DSL source failed to produce a node tree. Aborts that render."""

    def __init__(
        self,
        message: str,
        trace: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        super().__init__(message)
        self.trace = trace
        self.line = line
        self.column = column

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "trace": self.trace,
            "line": self.line,
            "column": self.column,
        }


class ItemRenderError(StudioError):
    """A single list item's builder failed. Replaced by a placeholder node."""

    def __init__(self, index: int, message: str) -> None:
        super().__init__(message)
        self.index = index


class ActionError(StudioError):
    """A single assignment statement failed. The rest of the batch still runs."""

    def __init__(self, statement: str, message: str) -> None:
        super().__init__(message)
        self.statement = statement

    def to_dict(self) -> dict[str, Any]:
        return {"statement": self.statement, "message": self.message}


class PersistenceError(StudioError):
    """Durable storage read/write failed. In-memory state stays authoritative."""

    pass


class RendererUnavailableError(StudioError):
    """External renderer missing or misbehaving. Never falls back silently."""

    pass


class ScreenNotFound(StudioError):
    """Screen id does not exist in the project."""

    pass


# ---------------------------------------------------------------------------
# Project data
# ---------------------------------------------------------------------------


@dataclass
class Screen:
    """One authored screen. Its `compose` field holds the DSL source."""

    id: str
    name: str
    compose: str
    created_at: int = field(default_factory=now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "compose": self.compose,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Screen:
        return cls(
            id=str(d["id"]),
            name=str(d.get("name", "")),
            compose=str(d.get("compose", "")),
            created_at=int(d.get("createdAt", 0)),
        )


@dataclass
class Project:
    """Ordered screens (display order) plus opaque auxiliary files."""

    screens: list[Screen] = field(default_factory=list)
    files: dict[str, str] = field(default_factory=dict)

    def find_screen(self, screen_id: str | None) -> Screen | None:
        for screen in self.screens:
            if screen.id == screen_id:
                return screen
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "screens": [s.to_dict() for s in self.screens],
            "files": dict(self.files),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Project:
        files = d.get("files", {})
        if not isinstance(files, dict):
            raise TypeError("project files must be a mapping")
        return cls(
            screens=[Screen.from_dict(s) for s in d.get("screens", [])],
            files={str(k): str(v) for k, v in files.items()},
        )


@dataclass
class Snapshot:
    """
    Deep-copied capture of Project + state document + active screen pointer.
    Immutable once stored: the history hands out copies, never the stored value.
    """

    project: Project
    state: dict[str, Any]
    active_screen_id: str | None = None

    def copy(self) -> Snapshot:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project": self.project.to_dict(),
            "state": copy.deepcopy(self.state),
            "activeScreenId": self.active_screen_id,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Snapshot:
        state = d.get("state", {})
        if not isinstance(state, dict):
            raise TypeError("snapshot state must be a mapping")
        active = d.get("activeScreenId")
        return cls(
            project=Project.from_dict(d["project"]),
            state=state,
            active_screen_id=str(active) if active is not None else None,
        )


# ---------------------------------------------------------------------------
# Node tree
# ---------------------------------------------------------------------------


@dataclass
class VNode:
    """
    Builder output: tag + props + ordered children (nodes or literal text).
    Produced fresh on every evaluation, never mutated afterwards.
    """

    tag: str
    props: dict[str, Any] = field(default_factory=dict)
    children: list[VNode | str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Plain structure for comparison and display. Handlers become "<handler>"."""
        props: dict[str, Any] = {}
        for key, value in self.props.items():
            props[key] = "<handler>" if callable(value) else copy.deepcopy(value)
        return {
            "tag": self.tag,
            "props": props,
            "children": [c.to_dict() if isinstance(c, VNode) else c for c in self.children],
        }

    def count(self) -> int:
        """Number of element nodes in this tree (text leaves excluded)."""
        return 1 + sum(c.count() for c in self.children if isinstance(c, VNode))


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class Status:
    """Operator-visible status line."""

    message: str = "Ready"
    type: str = "ok"

    def to_dict(self) -> dict[str, str]:
        return {"message": self.message, "type": self.type}


@dataclass
class EvalResult:
    """
    Result of evaluating DSL source.
    Exactly one of `node` / `error` is set.
    """

    node: VNode | None
    error: EvalError | None = None
    logs: list[str] = field(default_factory=list)
    item_errors: list[ItemRenderError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None and self.node is not None


@dataclass
class ActionResult:
    """
    Result of running an action string.
    When nothing applied, `state` is the caller's original object.
    """

    state: dict[str, Any]
    changed: bool
    errors: list[ActionError] = field(default_factory=list)


@dataclass
class HistoryOutcome:
    """Result of snapshot/undo/redo."""

    ok: bool
    message: str
    snapshot: Snapshot | None = None
    persistence_error: PersistenceError | None = None


@dataclass
class RenderOutcome:
    """Result of one pass through the preview pipeline."""

    ok: bool
    mode: str
    logs: list[str] = field(default_factory=list)
    error: StudioError | None = None
