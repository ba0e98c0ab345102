"""
Compose Studio Kernel — Project History

Linear undo/redo over whole-project snapshots.

  entries  — append-only list of Snapshots
  cursor   — index of the live snapshot

A new snapshot truncates everything after the cursor before appending (the
redo branch is discarded). Undo/redo only move the cursor.

The whole history is persisted as one JSON record under a well-known key:

  {project, state, activeScreenId, history: [Snapshot...], historyIndex}

Persistence fails soft: a storage error is reported on the outcome and logged,
and the in-memory history stays authoritative.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any

from studio.kernel.types import HistoryOutcome, PersistenceError, Project, Snapshot

logger = logging.getLogger(__name__)

STATE_KEY = "compose_studio_v1"


# ---------------------------------------------------------------------------
# Storage protocol
# ---------------------------------------------------------------------------


class StudioStorage:
    """
    Durable key-value storage interface.
    Implement with files for local use, or in-memory for tests.
    """

    def get(self, key: str) -> str | None:
        """Fetch a stored record. Returns None if not found."""
        raise NotImplementedError

    def put(self, key: str, value: str) -> None:
        """Write a record, replacing any previous value."""
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class MemoryStorage(StudioStorage):
    """In-memory storage for testing."""

    def __init__(self) -> None:
        self.records: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.records.get(key)

    def put(self, key: str, value: str) -> None:
        self.records[key] = value

    def delete(self, key: str) -> None:
        self.records.pop(key, None)


class FileStorage(StudioStorage):
    """One JSON file per key inside a directory. Writes are atomic renames."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def put(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class HistoryStore:
    """Cursor-addressed snapshot log with durable persistence."""

    def __init__(self, storage: StudioStorage, key: str = STATE_KEY) -> None:
        self._storage = storage
        self.key = key
        self.entries: list[Snapshot] = []
        self.cursor = -1

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def can_undo(self) -> bool:
        return self.cursor > 0

    @property
    def can_redo(self) -> bool:
        return self.cursor < len(self.entries) - 1

    # -- snapshot --

    def snapshot(
        self,
        project: Project,
        state: dict[str, Any],
        active_screen_id: str | None,
    ) -> HistoryOutcome:
        """Capture deep copies, drop the redo branch, append, persist."""
        snap = Snapshot(
            project=copy.deepcopy(project),
            state=copy.deepcopy(state),
            active_screen_id=active_screen_id,
        )
        del self.entries[self.cursor + 1 :]
        self.entries.append(snap)
        self.cursor = len(self.entries) - 1
        return HistoryOutcome(
            ok=True,
            message="Snapshot saved",
            snapshot=snap.copy(),
            persistence_error=self._persist_soft(),
        )

    # -- navigation --

    def undo(self) -> HistoryOutcome:
        if not self.can_undo:
            return HistoryOutcome(ok=False, message="Nothing to undo")
        self.cursor -= 1
        return HistoryOutcome(
            ok=True,
            message="Undo successful",
            snapshot=self.entries[self.cursor].copy(),
            persistence_error=self._persist_soft(),
        )

    def redo(self) -> HistoryOutcome:
        if not self.can_redo:
            return HistoryOutcome(ok=False, message="Nothing to redo")
        self.cursor += 1
        return HistoryOutcome(
            ok=True,
            message="Redo successful",
            snapshot=self.entries[self.cursor].copy(),
            persistence_error=self._persist_soft(),
        )

    # -- persistence --

    def to_record(self) -> dict[str, Any]:
        current = self.entries[self.cursor]
        return {
            **current.to_dict(),
            "history": [s.to_dict() for s in self.entries],
            "historyIndex": self.cursor,
        }

    def persist(self) -> None:
        """Write {entries, cursor} to storage. Raises PersistenceError."""
        if not self.entries:
            return
        try:
            payload = json.dumps(self.to_record(), allow_nan=False)
            self._storage.put(self.key, payload)
        except Exception as exc:
            raise PersistenceError(f"Failed to save history: {exc}") from exc

    def _persist_soft(self) -> PersistenceError | None:
        try:
            self.persist()
        except PersistenceError as exc:
            logger.warning("History persistence failed: %s", exc.message)
            return exc
        return None

    def load(self) -> Snapshot | None:
        """
        Load a stored history verbatim (entries + cursor).

        Returns a copy of the snapshot at the stored cursor, or None when
        nothing is stored. Raises PersistenceError when storage fails or the
        record is malformed; the in-memory history is left untouched then.
        """
        try:
            raw = self._storage.get(self.key)
        except Exception as exc:
            raise PersistenceError(f"Failed to read history: {exc}") from exc
        if raw is None:
            return None

        try:
            data = json.loads(raw)
            history = data["history"]
            index = data["historyIndex"]
            if not isinstance(history, list) or not history:
                raise ValueError("history must be a non-empty list")
            entries = [Snapshot.from_dict(item) for item in history]
            if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(entries):
                raise ValueError(f"historyIndex {index!r} out of range")
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise PersistenceError(f"Stored history is malformed: {exc}") from exc

        self.entries = entries
        self.cursor = index
        logger.info("Loaded %d history entries (cursor=%d)", len(entries), index)
        return entries[index].copy()
