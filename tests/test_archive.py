"""Tests for rollover/archive.py — retention, deletion and per-list views."""

from datetime import datetime, timedelta, timezone

from rollover.archive import delete_snapshot, prune, set_retention, snapshots_for_list
from rollover.models import AppState, Snapshot

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _snap(snap_id: str, days_ago: float, list_id: str = "l1") -> Snapshot:
    ended = NOW - timedelta(days=days_ago)
    return Snapshot(
        id=snap_id,
        list_id=list_id,
        list_name=list_id,
        started_at=ended - timedelta(days=1),
        ended_at=ended,
        total=2,
        completed=1,
        percent=50,
    )


def test_prune_drops_snapshots_older_than_window():
    kept = prune([_snap("old", 40), _snap("new", 2)], 30, NOW)
    assert [s.id for s in kept] == ["new"]


def test_prune_zero_keeps_everything():
    snaps = [_snap("old", 400), _snap("new", 2)]
    assert prune(snaps, 0, NOW) == snaps
    assert prune(snaps, None, NOW) == snaps


def test_prune_keeps_snapshot_exactly_at_cutoff():
    assert [s.id for s in prune([_snap("edge", 30)], 30, NOW)] == ["edge"]


def test_prune_preserves_order():
    snaps = [_snap("a", 1), _snap("b", 5), _snap("c", 90), _snap("d", 10)]
    assert [s.id for s in prune(snaps, 30, NOW)] == ["a", "b", "d"]


def test_delete_snapshot():
    remaining, removed = delete_snapshot([_snap("a", 1), _snap("b", 2)], "a")
    assert removed is True
    assert [s.id for s in remaining] == ["b"]


def test_delete_unknown_snapshot():
    snaps = [_snap("a", 1)]
    remaining, removed = delete_snapshot(snaps, "nope")
    assert removed is False
    assert remaining == snaps


def test_snapshots_for_list_newest_first():
    snaps = [_snap("a2", 5), _snap("b1", 1, "l2"), _snap("a1", 10), _snap("a3", 0.5)]
    assert [s.id for s in snapshots_for_list(snaps, "l1")] == ["a3", "a2", "a1"]


def test_set_retention_prunes_immediately():
    state = AppState(snapshots=[_snap("recent", 3), _snap("stale", 20)])
    assert set_retention(state, 7, NOW) == []
    assert state.retention_days == 7
    assert [s.id for s in state.snapshots] == ["recent"]


def test_set_retention_rejects_bad_values():
    state = AppState(snapshots=[_snap("a", 100)])
    assert set_retention(state, -1, NOW) == ["retention_days must be >= 0"]
    assert set_retention(state, "7", NOW) == ["retention_days must be an integer"]
    assert set_retention(state, True, NOW) == ["retention_days must be an integer"]
    assert state.retention_days == 0
    assert len(state.snapshots) == 1
