"""Tests for rollover/engine.py — reset decisions, snapshots and carry-over."""

from datetime import datetime, timedelta, timezone

import pytest

from rollover.engine import (
    NO_ACTION,
    Due,
    NoActionNeeded,
    apply_outcome,
    carry_over,
    evaluate,
    manual_reset,
    progress_of,
    snapshot_from_list,
)
from rollover.models import RecurrenceRule, TaskItem

UTC = timezone.utc
T0 = datetime(2024, 1, 14, 6, 0, tzinfo=UTC)


def _ids():
    n = 0

    def _next() -> str:
        nonlocal n
        n += 1
        return f"snap-{n}"

    return _next


def _task(task_id: str, checked: bool) -> TaskItem:
    return TaskItem(id=task_id, title=task_id.upper(), checked=checked, created_at=T0)


# ── progress_of ───────────────────────────────────────────────


def test_progress_empty_list():
    assert progress_of([]) == (0, 0, 0)


@pytest.mark.parametrize(
    "checked, total, percent",
    [(1, 2, 50), (1, 3, 33), (2, 3, 67), (1, 8, 13), (3, 8, 38), (0, 5, 0), (4, 4, 100)],
)
def test_progress_rounds_half_up(checked, total, percent):
    tasks = [_task(str(i), i < checked) for i in range(total)]
    assert progress_of(tasks) == (total, checked, percent)


# ── carry_over ────────────────────────────────────────────────


def test_carry_over_keeps_unchecked_only():
    tasks = [_task("a", True), _task("b", False), _task("c", False)]
    kept = carry_over(tasks, RecurrenceRule(carry_over=True))
    assert [t.id for t in kept] == ["b", "c"]
    assert all(not t.checked for t in kept)


def test_carry_over_disabled_starts_empty():
    tasks = [_task("a", True), _task("b", False)]
    assert carry_over(tasks, RecurrenceRule(carry_over=False)) == ()


def test_carried_items_are_detached_copies():
    original = _task("b", False)
    original.tags = ["x"]
    (kept,) = carry_over([original], RecurrenceRule())
    assert kept is not original
    assert kept.id == original.id and kept.title == original.title
    kept.tags.append("y")
    assert original.tags == ["x"]


# ── snapshot_from_list ────────────────────────────────────────


def test_snapshot_is_isolated_from_later_edits(make_list):
    lst = make_list()
    snap = snapshot_from_list(lst, T0 + timedelta(hours=1), _ids())
    lst.tasks[0].checked = False
    lst.tasks[1].title = "changed"
    assert snap.tasks[0].checked is True
    assert snap.tasks[1].title == "B"


def test_snapshot_period_bounds(make_list):
    lst = make_list()
    now = T0 + timedelta(days=1)
    snap = snapshot_from_list(lst, now, _ids())
    assert snap.id == "snap-1"
    assert snap.list_id == lst.id and snap.list_name == lst.name
    assert snap.started_at == T0
    assert snap.ended_at == now


# ── evaluate ──────────────────────────────────────────────────


def test_daily_reset_with_carry_over(make_list):
    lst = make_list(mode="daily", hour=5, minute=0)
    now = datetime(2024, 1, 15, 6, 0, tzinfo=UTC)

    outcome = evaluate(lst, now, _ids())

    assert isinstance(outcome, Due)
    assert (outcome.snapshot.total, outcome.snapshot.completed, outcome.snapshot.percent) == (2, 1, 50)
    assert [(t.id, t.checked) for t in outcome.next_tasks] == [("b", False)]
    assert outcome.new_last_reset_at == now


def test_daily_reset_without_carry_over(make_list):
    lst = make_list(mode="daily", carry_over=False, hour=5, minute=0)
    outcome = evaluate(lst, datetime(2024, 1, 15, 6, 0, tzinfo=UTC), _ids())
    assert isinstance(outcome, Due)
    assert outcome.next_tasks == ()
    assert outcome.snapshot.percent == 50


def test_not_due_before_next_boundary(make_list):
    lst = make_list(mode="daily", hour=5, minute=0)
    # latest boundary is 2024-01-14 05:00, before lastResetAt 06:00
    assert evaluate(lst, datetime(2024, 1, 15, 4, 0, tzinfo=UTC)) is NO_ACTION


def test_once_never_resets(make_list):
    lst = make_list(mode="once")
    assert isinstance(evaluate(lst, T0 + timedelta(days=400)), NoActionNeeded)


def test_evaluate_does_not_touch_the_list(make_list):
    lst = make_list(mode="daily", hour=5, minute=0)
    evaluate(lst, datetime(2024, 1, 15, 6, 0, tzinfo=UTC))
    assert lst.last_reset_at == T0
    assert [t.checked for t in lst.tasks] == [True, False]


def test_evaluate_is_idempotent_after_commit(make_list):
    lst = make_list(mode="daily", hour=5, minute=0)
    now = datetime(2024, 1, 15, 6, 0, tzinfo=UTC)
    lst = apply_outcome(lst, evaluate(lst, now))
    assert evaluate(lst, now) is NO_ACTION
    assert evaluate(lst, now + timedelta(hours=10)) is NO_ACTION


def test_missed_periods_collapse_into_one_reset(make_list):
    lst = make_list(mode="daily", hour=5, minute=0)
    now = T0 + timedelta(days=9)
    outcome = evaluate(lst, now)
    assert isinstance(outcome, Due)
    lst = apply_outcome(lst, outcome)
    assert evaluate(lst, now) is NO_ACTION


def test_last_reset_never_decreases_over_time(make_list):
    lst = make_list(mode="weekly", weekday=3, hour=20, minute=15)
    now = T0
    previous = lst.last_reset_at
    for _ in range(24 * 30):
        now += timedelta(hours=1)
        lst = apply_outcome(lst, evaluate(lst, now))
        assert lst.last_reset_at >= previous
        assert lst.last_reset_at <= now
        previous = lst.last_reset_at


# ── manual_reset ──────────────────────────────────────────────


def test_manual_reset_ignores_schedule(make_list):
    lst = make_list(mode="once")
    now = T0 + timedelta(minutes=5)
    outcome = manual_reset(lst, now, _ids())
    assert isinstance(outcome, Due)
    assert outcome.snapshot.ended_at == now
    assert outcome.new_last_reset_at == now


def test_manual_reset_suppresses_same_period_scheduled_reset(make_list):
    lst = make_list(mode="daily", hour=5, minute=0)
    lst = apply_outcome(lst, manual_reset(lst, datetime(2024, 1, 15, 5, 30, tzinfo=UTC)))
    assert evaluate(lst, datetime(2024, 1, 15, 5, 45, tzinfo=UTC)) is NO_ACTION


def test_manual_reset_with_clock_behind_keeps_last_reset(make_list):
    lst = make_list()
    outcome = manual_reset(lst, T0 - timedelta(hours=2))
    assert outcome.new_last_reset_at == T0


def test_apply_outcome_no_action_returns_same_list(make_list):
    lst = make_list()
    assert apply_outcome(lst, NO_ACTION) is lst


def test_apply_outcome_replaces_tasks_and_stamp(make_list):
    lst = make_list(mode="daily", hour=5, minute=0)
    now = datetime(2024, 1, 15, 6, 0, tzinfo=UTC)
    updated = apply_outcome(lst, evaluate(lst, now))
    assert updated is not lst
    assert [t.id for t in updated.tasks] == ["b"]
    assert updated.last_reset_at == now
    assert updated.settings == lst.settings
