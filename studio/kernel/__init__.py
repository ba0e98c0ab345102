"""
Compose Studio Kernel — the runtime behind the editor.

Four components:
  sandbox    — DSL source → node tree (fresh builder API per evaluation)
  actions    — (action text, state) → state  (best-effort, never mutates input)
  host       — node tree → host elements, listeners routed back to actions
  history    — linear undo/redo over whole-project snapshots, persisted

The workspace coordinates all four plus the preview pipeline.
"""

from studio.kernel.actions import execute_action
from studio.kernel.history import FileStorage, HistoryStore, MemoryStorage
from studio.kernel.preview import Preview, RenderMode, load_external_renderer
from studio.kernel.sandbox import evaluate
from studio.kernel.workspace import Workspace

__all__ = [
    "evaluate",
    "execute_action",
    "HistoryStore",
    "MemoryStorage",
    "FileStorage",
    "Preview",
    "RenderMode",
    "load_external_renderer",
    "Workspace",
]
