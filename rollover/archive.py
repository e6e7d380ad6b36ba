"""Snapshot archive: retention pruning and explicit deletion."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

from rollover.models import AppState, Snapshot, as_aware
from rollover.schedule import is_after


def prune(snapshots: Iterable[Snapshot], retention_days: int | None, now: datetime) -> list[Snapshot]:
    """Drop snapshots that ended more than *retention_days* before *now*.

    ``retention_days`` of 0, None or below keeps everything.
    """
    items = list(snapshots)
    if not retention_days or retention_days <= 0:
        return items
    cutoff = as_aware(now) - timedelta(days=retention_days)
    return [s for s in items if not is_after(cutoff, s.ended_at)]


def delete_snapshot(snapshots: Iterable[Snapshot], snapshot_id: str) -> tuple[list[Snapshot], bool]:
    """Remove a snapshot by id. Returns (remaining, removed)."""
    items = list(snapshots)
    remaining = [s for s in items if s.id != snapshot_id]
    return remaining, len(remaining) != len(items)


def snapshots_for_list(snapshots: Iterable[Snapshot], list_id: str) -> list[Snapshot]:
    """Snapshots of one list, newest first."""
    own = [s for s in snapshots if s.list_id == list_id]
    return sorted(own, key=lambda s: s.ended_at.timestamp(), reverse=True)


def set_retention(state: AppState, retention_days: int, now: datetime) -> list[str]:
    """Change the retention window and prune right away. Returns errors."""
    if isinstance(retention_days, bool) or not isinstance(retention_days, int):
        return ["retention_days must be an integer"]
    if retention_days < 0:
        return ["retention_days must be >= 0"]
    state.retention_days = retention_days
    state.snapshots = prune(state.snapshots, retention_days, now)
    return []
