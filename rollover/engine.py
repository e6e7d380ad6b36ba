"""Reset engine for Rollover lists.

Decides whether a list's current period has ended and, if so, builds the
archive snapshot and the task set of the next period. Everything here is
a pure function of its inputs: nothing is persisted and the system clock
is never read. Callers commit the outcome (see ``rollover.poller``).
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Iterable, Union

from rollover.models import ListState, RecurrenceRule, Snapshot, TaskItem, as_aware
from rollover.schedule import is_after, most_recent_due


def new_id() -> str:
    return secrets.token_hex(8)


# ── Outcomes ──────────────────────────────────────────────────


@dataclass(frozen=True)
class NoActionNeeded:
    """The list is already reset for its latest boundary (or never resets)."""


@dataclass(frozen=True)
class Due:
    snapshot: Snapshot
    next_tasks: tuple[TaskItem, ...]
    new_last_reset_at: datetime


ResetOutcome = Union[NoActionNeeded, Due]

NO_ACTION = NoActionNeeded()


# ── Building blocks ───────────────────────────────────────────


def progress_of(tasks: Iterable[TaskItem]) -> tuple[int, int, int]:
    """Return (total, completed, percent); percent rounds half up."""
    items = list(tasks)
    total = len(items)
    completed = sum(1 for t in items if t.checked)
    if total == 0:
        return 0, 0, 0
    percent = (200 * completed + total) // (2 * total)
    return total, completed, percent


def carry_over(tasks: Iterable[TaskItem], rule: RecurrenceRule) -> tuple[TaskItem, ...]:
    """Tasks that survive into the next period.

    With carry-over, unchecked tasks are kept (as fresh unchecked copies,
    same id and content); checked tasks are dropped. Without it the next
    period starts empty.
    """
    if not rule.carry_over:
        return ()
    return tuple(t.copy(checked=False) for t in tasks if not t.checked)


def snapshot_from_list(
    lst: ListState,
    now: datetime,
    id_factory: Callable[[], str] = new_id,
) -> Snapshot:
    total, completed, percent = progress_of(lst.tasks)
    return Snapshot(
        id=id_factory(),
        list_id=lst.id,
        list_name=lst.name,
        started_at=lst.last_reset_at,
        ended_at=now,
        total=total,
        completed=completed,
        percent=percent,
        tasks=tuple(t.copy() for t in lst.tasks),
    )


def _reset(lst: ListState, now: datetime, id_factory: Callable[[], str]) -> Due:
    # A host clock that went backwards must not move lastResetAt back.
    stamp = now if is_after(now, lst.last_reset_at) else lst.last_reset_at
    return Due(
        snapshot=snapshot_from_list(lst, now, id_factory),
        next_tasks=carry_over(lst.tasks, lst.settings),
        new_last_reset_at=stamp,
    )


# ── Public API ────────────────────────────────────────────────


def evaluate(
    lst: ListState,
    now: datetime,
    id_factory: Callable[[], str] = new_id,
) -> ResetOutcome:
    """Scheduled reset check for one list.

    Due when the rule's most recent boundary lies after ``lastResetAt``.
    The new ``lastResetAt`` is *now*, the moment the reset was detected,
    not the boundary itself.
    """
    now = as_aware(now)
    due = most_recent_due(lst.settings, now)
    if due is None or not is_after(due, lst.last_reset_at):
        return NO_ACTION
    return _reset(lst, now, id_factory)


def manual_reset(
    lst: ListState,
    now: datetime,
    id_factory: Callable[[], str] = new_id,
) -> Due:
    """Unconditional reset, regardless of the schedule."""
    return _reset(lst, as_aware(now), id_factory)


def apply_outcome(lst: ListState, outcome: ResetOutcome) -> ListState:
    """Return *lst* as it looks after *outcome* is committed."""
    if not isinstance(outcome, Due):
        return lst
    return replace(
        lst,
        tasks=list(outcome.next_tasks),
        last_reset_at=outcome.new_last_reset_at,
    )
