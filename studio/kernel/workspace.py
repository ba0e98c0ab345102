"""
Compose Studio Kernel — Workspace

Sits between the pure pieces (sandbox, action interpreter) and the outside
world. Owns the live project, state document and active screen pointer, and
commits a snapshot after every edit.

Operations: open, select/new/delete/save screen, set_state, execute_action,
snapshot, undo, redo, render, interact, export_payload

Execution is single-writer: an action's mutation and its snapshot happen in
one synchronous step.
"""

from __future__ import annotations

import copy
import json
import logging
import secrets
import string
from datetime import UTC, datetime
from typing import Any

from studio.kernel.actions import execute_action
from studio.kernel.history import STATE_KEY, HistoryStore, StudioStorage
from studio.kernel.interpreter import DEFAULT_MAX_DEPTH, plain_data
from studio.kernel.preview import Preview, RenderMode
from studio.kernel.types import (
    ActionResult,
    EvalError,
    HistoryOutcome,
    PersistenceError,
    Project,
    RendererUnavailableError,
    RenderOutcome,
    Screen,
    ScreenNotFound,
    Snapshot,
    Status,
    companion_key,
)

logger = logging.getLogger(__name__)

DEFAULT_SCREEN_ID = "s_initial"

WELCOME_SOURCE = """// Welcome to Compose Studio!
// Use render() to define your UI. Containers receive an `add` function.
render(() => Column((add) => {
  add(Text(() => 'Hello, ' + (state.name || 'World') + '!'));

  // Buttons run actions that modify the state
  add(Button('counter = (counter || 0) + 1', () => 'Clicks: ' + (state.counter || 0)));
}))
"""

_ID_ALPHABET = string.ascii_lowercase + string.digits


def default_project() -> Project:
    return Project(
        screens=[Screen(id=DEFAULT_SCREEN_ID, name="MainScreen", compose=WELCOME_SOURCE)],
        files={},
    )


def default_state() -> dict[str, Any]:
    return {"name": "React", "counter": 0}


def new_screen_source(name: str) -> str:
    label = " ".join(name.split())
    return (
        f"// New Screen: {label}\n"
        "render(() => Column((add) => {\n"
        f"  add(Text(() => {json.dumps('This is ' + label)}));\n"
        "}))\n"
    )


class Workspace:
    """
    Manages one project session.
    Coordinates history + preview + action interpreter.
    """

    def __init__(
        self,
        storage: StudioStorage,
        *,
        key: str = STATE_KEY,
        preview: Preview | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self.history = HistoryStore(storage, key)
        self.preview = preview or Preview(max_depth=max_depth)
        self.max_depth = max_depth
        self.project = default_project()
        self.state: dict[str, Any] = default_state()
        self.active_screen_id: str | None = DEFAULT_SCREEN_ID
        self.status = Status()

    # -- lifecycle --

    @classmethod
    def open(cls, storage: StudioStorage, **kwargs: Any) -> Workspace:
        """Load persisted history, or start from the default project."""
        workspace = cls(storage, **kwargs)
        workspace.load()
        return workspace

    def load(self) -> None:
        try:
            snap = self.history.load()
        except PersistenceError as exc:
            logger.warning("Could not load stored project: %s", exc.message)
            self._commit()
            self._set_status("Failed to load project", "error")
            return

        if snap is None:
            self.snapshot()
            return

        self._restore(snap)
        self._set_status("Project loaded from storage", "ok")

    # -- screens --

    def current_screen(self) -> Screen | None:
        return self.project.find_screen(self.active_screen_id)

    def require_screen(self, screen_id: str) -> Screen:
        screen = self.project.find_screen(screen_id)
        if screen is None:
            raise ScreenNotFound(screen_id)
        return screen

    def select_screen(self, screen_id: str) -> Screen:
        screen = self.require_screen(screen_id)
        self.active_screen_id = screen.id
        return screen

    def new_screen(self, name: str = "") -> Screen:
        name = name.strip() or f"Screen{len(self.project.screens) + 1}"
        screen = Screen(id=self._new_screen_id(), name=name, compose=new_screen_source(name))
        self.project.screens.append(screen)
        self.active_screen_id = screen.id
        self.snapshot()
        return screen

    def delete_screen(self, screen_id: str) -> None:
        self.require_screen(screen_id)
        self.project.screens = [s for s in self.project.screens if s.id != screen_id]
        self.project.files.pop(companion_key(screen_id), None)
        if self.active_screen_id == screen_id:
            self.active_screen_id = self.project.screens[0].id if self.project.screens else None
        self.snapshot()

    def write_screen(self, screen_id: str, compose: str, companion: str | None = None) -> Screen:
        """Flush an editor buffer into the project. No snapshot."""
        screen = self.require_screen(screen_id)
        screen.compose = compose
        if companion is not None:
            self.project.files[companion_key(screen_id)] = companion
        return screen

    def save_screen(self, screen_id: str, compose: str, companion: str | None = None) -> Screen:
        screen = self.write_screen(screen_id, compose, companion)
        self._commit()
        self._set_status("Project saved!", "ok")
        return screen

    # -- state --

    def set_state(self, document: dict[str, Any]) -> None:
        if not isinstance(document, dict):
            raise TypeError("state document must be a mapping")
        self.state = plain_data(document)
        self.snapshot()

    def execute_action(self, action_text: str) -> ActionResult:
        """Run an action; commit a snapshot when anything applied."""
        result = execute_action(action_text, self.state, max_depth=self.max_depth)
        if result.changed:
            self.state = result.state
            self._commit()
            self._set_status("State updated", "ok")
        if result.errors:
            self._set_status(f"Action error: {result.errors[-1].message}", "error")
        return result

    # -- history --

    def snapshot(self) -> HistoryOutcome:
        outcome = self._commit()
        if outcome.persistence_error is None:
            self._set_status(outcome.message, "ok")
        return outcome

    def undo(self) -> HistoryOutcome:
        return self._navigate(self.history.undo())

    def redo(self) -> HistoryOutcome:
        return self._navigate(self.history.redo())

    def _navigate(self, outcome: HistoryOutcome) -> HistoryOutcome:
        if not outcome.ok:
            self._set_status(outcome.message, "warn")
            return outcome
        self._restore(outcome.snapshot)
        self._set_status(outcome.message, "ok")
        if outcome.persistence_error is not None:
            self._set_status("Failed to save state", "error")
        return outcome

    def _commit(self) -> HistoryOutcome:
        outcome = self.history.snapshot(self.project, self.state, self.active_screen_id)
        if outcome.persistence_error is not None:
            self._set_status("Failed to save state", "error")
        return outcome

    def _restore(self, snap: Snapshot) -> None:
        """Replace the live triple in full. Not a merge."""
        self.project = snap.project
        self.state = snap.state
        self.active_screen_id = snap.active_screen_id

    # -- rendering --

    async def render(self) -> RenderOutcome:
        """Render the active screen through the preview pipeline."""
        screen = self.current_screen()
        if screen is None and self.preview.mode is RenderMode.BUILTIN:
            self.preview.container.clear()
            error = EvalError("No screen is selected")
            self._set_status(error.message, "warn")
            return RenderOutcome(ok=False, mode=RenderMode.BUILTIN.value, error=error)

        source = screen.compose if screen is not None else ""
        outcome = await self.preview.render(source, self.state, self.execute_action)
        if outcome.error is not None:
            self._set_status(outcome.error.message, "error")
        return outcome

    def interact(self, element_id: str, event: str = "click") -> bool:
        """Route a host interaction to the last render's listener."""
        return self.preview.container.dispatch(element_id, event)

    def set_render_mode(self, mode: RenderMode | str, renderer: Any = None) -> None:
        """
        Explicit operator switch. Selecting the external renderer without a
        usable one raises RendererUnavailableError and leaves output untouched.
        """
        mode = RenderMode(mode)
        if mode is RenderMode.BUILTIN:
            self.preview.use_builtin()
            self._set_status("Using built-in renderer", "ok")
            return
        try:
            self.preview.use_external(renderer)
        except RendererUnavailableError as exc:
            self._set_status(exc.message, "error")
            raise
        self._set_status("External renderer selected", "ok")

    # -- export --

    def export_payload(self, buffers: dict[str, tuple[str, str | None]] | None = None) -> dict[str, Any]:
        """
        Read-only bundle for export collaborators (archive, document).
        In-flight editor buffers ({screen_id: (compose, companion)}) are saved
        into the project first.
        """
        for screen_id, (compose, companion) in (buffers or {}).items():
            self.write_screen(screen_id, compose, companion)

        files: dict[str, str] = {}
        for screen in self.project.screens:
            files[f"screens/{screen.name}.dsl.js"] = screen.compose
            companion = self.project.files.get(companion_key(screen.id), "")
            if companion:
                files[f"screens/{screen.name}.kt"] = companion

        return {
            "exportedAt": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "screens": [{"id": s.id, "name": s.name} for s in self.project.screens],
            "state": copy.deepcopy(self.state),
            "project": self.project.to_dict(),
            "files": files,
        }

    # -- helpers --

    def _set_status(self, message: str, type: str) -> None:
        self.status = Status(message=message, type=type)

    def _new_screen_id(self) -> str:
        while True:
            candidate = "s_" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
            if self.project.find_screen(candidate) is None:
                return candidate
