"""State persistence for Rollover: one JSON file, one write path.

Every change (poller tick or user action) goes through
``StateStore.update``, which serializes load -> mutate -> save under a
lock so a scheduled reset and a manual one never interleave.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, TypeVar

from rollover.archive import prune
from rollover.fileio import dump_json, read_json, write_json_atomic
from rollover.lists import new_list
from rollover.models import AppState
from rollover.workspace import state_path, workspace_root

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_LIST_NAME = "My first list"


def initial_state(now: datetime | None = None, retention_days: int = 0) -> AppState:
    """Fresh state with a single empty list."""
    first = new_list(DEFAULT_LIST_NAME, now or datetime.now(timezone.utc))
    return AppState(lists=[first], active_list_id=first.id, retention_days=retention_days)


class StateStore:
    """File-backed AppState with a serialized update path."""

    def __init__(self, root: Path | None = None, *, retention_days: int = 0) -> None:
        self.root = root if root is not None else workspace_root()
        self.path = state_path(self.root)
        self._retention_days = retention_days
        self._lock = threading.RLock()

    def load(self) -> AppState:
        with self._lock:
            raw = read_json(self.path)
            if not raw:
                return initial_state(retention_days=self._retention_days)
            return AppState.from_dict(raw)

    def save(self, state: AppState) -> None:
        with self._lock:
            write_json_atomic(self.path, state.to_dict())

    def update(self, fn: Callable[[AppState], T]) -> T:
        """Apply *fn* to the current state; persist only if it changed."""
        with self._lock:
            exists = self.path.exists()
            state = self.load()
            before = state.to_dict()
            result = fn(state)
            if not exists or state.to_dict() != before:
                self.save(state)
            return result


class MemoryStateStore:
    """In-memory store with the same update contract (tests, embedding)."""

    def __init__(self, state: AppState | None = None) -> None:
        self.state = state if state is not None else initial_state()
        self.saves = 0
        self._lock = threading.RLock()

    def load(self) -> AppState:
        with self._lock:
            return AppState.from_dict(self.state.to_dict())

    def update(self, fn: Callable[[AppState], T]) -> T:
        with self._lock:
            state = self.load()
            before = state.to_dict()
            result = fn(state)
            if state.to_dict() != before:
                self.state = state
                self.saves += 1
            return result


# ── Export / import ───────────────────────────────────────────


def export_state(state: AppState) -> str:
    """Pretty JSON of the whole state."""
    return dump_json(state.to_dict())


def import_state(text: str) -> tuple[AppState | None, list[str]]:
    """Parse an export. Returns (state, errors)."""
    try:
        raw: Any = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        return None, [f"Invalid JSON: {e}"]
    if not isinstance(raw, dict):
        return None, ["Import must be a JSON object"]
    if not isinstance(raw.get("lists", []), list):
        return None, ["'lists' must be an array"]
    try:
        state = AppState.from_dict(raw)
    except (TypeError, ValueError) as e:
        return None, [f"Malformed state: {e}"]
    if state.active_list_id is None and state.lists:
        state.active_list_id = state.lists[0].id
    logger.info("imported state with %d list(s), %d snapshot(s)", len(state.lists), len(state.snapshots))
    return state, []


def replace_state(target: AppState, source: AppState, now: datetime) -> None:
    """Overwrite *target* in place with *source* (for use inside update).

    Snapshots outside the imported retention window are pruned at *now*.
    """
    target.lists = list(source.lists)
    target.snapshots = prune(source.snapshots, source.retention_days, now)
    target.templates = list(source.templates)
    target.active_list_id = source.active_list_id
    target.version = source.version
    target.retention_days = source.retention_days

