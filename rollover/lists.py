"""List, task, settings and template operations for Rollover.

These run inside ``StateStore.update`` and mutate the AppState they are
given. Fallible operations return ``(value, errors)`` with a list of
human-readable errors (empty on success) instead of raising.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any

from rollover.archive import prune
from rollover.engine import Due, apply_outcome, manual_reset, new_id
from rollover.models import (
    MODES,
    AppState,
    ListState,
    RecurrenceRule,
    TaskItem,
    Template,
    TemplateTask,
)
from rollover.parsing import parse_task_line

logger = logging.getLogger(__name__)

INTENT_DEFAULT_LIST = "Inbox"


# ── Lookup ────────────────────────────────────────────────────


def find_list(state: AppState, list_id: str) -> ListState | None:
    for lst in state.lists:
        if lst.id == list_id:
            return lst
    return None


def find_list_by_name(state: AppState, name: str) -> ListState | None:
    wanted = name.strip().lower()
    for lst in state.lists:
        if lst.name.lower() == wanted:
            return lst
    return None


def find_task(lst: ListState, task_id: str) -> TaskItem | None:
    for t in lst.tasks:
        if t.id == task_id:
            return t
    return None


# ── Lists ─────────────────────────────────────────────────────


def new_list(name: str, now: datetime) -> ListState:
    """A list with default settings; its first period starts at *now*."""
    return ListState(id=new_id(), name=name, created_at=now, last_reset_at=now)


def add_list(state: AppState, name: str, now: datetime) -> tuple[ListState | None, list[str]]:
    name = (name or "").strip()
    if not name:
        return None, ["List name must not be empty"]
    lst = new_list(name, now)
    state.lists.append(lst)
    state.active_list_id = lst.id
    return lst, []


def rename_list(state: AppState, list_id: str, name: str) -> tuple[ListState | None, list[str]]:
    lst = find_list(state, list_id)
    if lst is None:
        return None, [f"List not found: {list_id}"]
    name = (name or "").strip()
    if not name:
        return None, ["List name must not be empty"]
    lst.name = name
    return lst, []


def delete_list(state: AppState, list_id: str) -> bool:
    """Remove a list. Its snapshots stay in the archive."""
    remaining = [x for x in state.lists if x.id != list_id]
    if len(remaining) == len(state.lists):
        return False
    state.lists = remaining
    if state.active_list_id == list_id:
        state.active_list_id = remaining[0].id if remaining else None
    return True


# ── Tasks ─────────────────────────────────────────────────────


def add_task(lst: ListState, line: str, now: datetime) -> tuple[TaskItem | None, list[str]]:
    """Parse a quick-add line and put the task at the top of the list."""
    parsed = parse_task_line(line or "")
    if not parsed.title:
        return None, ["Task title must not be empty"]
    task = TaskItem(
        id=new_id(),
        title=parsed.title,
        checked=False,
        created_at=now,
        tags=parsed.tags,
        priority=parsed.priority,
    )
    lst.tasks.insert(0, task)
    return task, []


def bulk_add(lst: ListState, text: str, now: datetime) -> list[TaskItem]:
    """Add one task per non-empty line, in line order."""
    added = []
    for line in (text or "").splitlines():
        if not line.strip():
            continue
        task, _ = add_task(lst, line, now)
        if task is not None:
            added.append(task)
    # add_task prepends, so restore the typed order at the top
    n = len(added)
    if n:
        lst.tasks[:n] = list(reversed(lst.tasks[:n]))
    return added


def toggle_task(lst: ListState, task_id: str) -> TaskItem | None:
    task = find_task(lst, task_id)
    if task is None:
        return None
    task.checked = not task.checked
    return task


def remove_task(lst: ListState, task_id: str) -> bool:
    remaining = [t for t in lst.tasks if t.id != task_id]
    if len(remaining) == len(lst.tasks):
        return False
    lst.tasks = remaining
    return True


# ── Filtering ─────────────────────────────────────────────────


def filter_tasks(
    lst: ListState,
    query: str | None = None,
    priority: str | None = None,
    only_open: bool = False,
    tag: str | None = None,
) -> list[TaskItem]:
    """Tasks matching every given filter, in list order.

    ``query`` is a case-insensitive title substring; ``priority`` and
    ``tag`` must match exactly (``"any"`` or empty means no filter).
    """
    tasks = list(lst.tasks)
    if query:
        needle = query.lower()
        tasks = [t for t in tasks if needle in t.title.lower()]
    if only_open:
        tasks = [t for t in tasks if not t.checked]
    if priority and priority != "any":
        tasks = [t for t in tasks if t.priority == priority]
    if tag and tag != "any":
        tasks = [t for t in tasks if tag in t.tags]
    return tasks


def tags_in_use(lst: ListState) -> list[str]:
    """Sorted distinct tags of the list's tasks."""
    return sorted({tag for t in lst.tasks for tag in t.tags})


# ── Settings ──────────────────────────────────────────────────

_SETTING_KEYS = {
    "mode": "mode",
    "resetHour": "hour",
    "resetMinute": "minute",
    "resetWeekday": "weekday",
    "resetDayOfMonth": "day_of_month",
    "carryOver": "carry_over",
}

_RANGES = {
    "resetHour": (0, 23),
    "resetMinute": (0, 59),
    "resetWeekday": (0, 6),
    "resetDayOfMonth": (1, 31),
}


def validate_settings(patch: dict[str, Any]) -> list[str]:
    """Validate a partial settings patch (camelCase keys)."""
    errors = []
    for key in patch:
        if key not in _SETTING_KEYS:
            errors.append(f"Unknown setting: {key}")

    if "mode" in patch and patch["mode"] not in MODES:
        errors.append(f"Invalid mode: {patch['mode']}")

    for key, (lo, hi) in _RANGES.items():
        if key not in patch:
            continue
        value = patch[key]
        if isinstance(value, bool) or not isinstance(value, int) or not lo <= value <= hi:
            errors.append(f"{key} must be integer {lo}-{hi}")

    if "carryOver" in patch and not isinstance(patch["carryOver"], bool):
        errors.append("carryOver must be boolean")

    return errors


def update_settings(
    state: AppState, list_id: str, patch: dict[str, Any]
) -> tuple[RecurrenceRule | None, list[str]]:
    lst = find_list(state, list_id)
    if lst is None:
        return None, [f"List not found: {list_id}"]
    errors = validate_settings(patch)
    if errors:
        return None, errors
    changes = {_SETTING_KEYS[k]: v for k, v in patch.items()}
    lst.settings = replace(lst.settings, **changes)
    return lst.settings, []


# ── Manual reset ──────────────────────────────────────────────


def reset_list_now(state: AppState, list_id: str, now: datetime) -> Due | None:
    """Reset one list immediately and commit the result onto *state*."""
    for i, lst in enumerate(state.lists):
        if lst.id != list_id:
            continue
        outcome = manual_reset(lst, now)
        state.lists[i] = apply_outcome(lst, outcome)
        state.snapshots = prune([outcome.snapshot, *state.snapshots], state.retention_days, now)
        logger.info("manual reset of list %s (%s)", lst.id, lst.name)
        return outcome
    return None


# ── Templates ─────────────────────────────────────────────────


def save_template(state: AppState, list_id: str, name: str) -> tuple[Template | None, list[str]]:
    lst = find_list(state, list_id)
    if lst is None:
        return None, [f"List not found: {list_id}"]
    name = (name or "").strip()
    if not name:
        return None, ["Template name must not be empty"]
    tpl = Template(
        id=new_id(),
        name=name,
        tasks=[TemplateTask(title=t.title, priority=t.priority, tags=list(t.tags)) for t in lst.tasks],
    )
    state.templates.insert(0, tpl)
    return tpl, []


def list_from_template(
    state: AppState, template_id: str, now: datetime
) -> tuple[ListState | None, list[str]]:
    tpl = next((t for t in state.templates if t.id == template_id), None)
    if tpl is None:
        return None, [f"Template not found: {template_id}"]
    lst = new_list(tpl.name, now)
    lst.tasks = [
        TaskItem(id=new_id(), title=t.title, checked=False, created_at=now, priority=t.priority, tags=list(t.tags))
        for t in tpl.tasks
    ]
    state.lists.append(lst)
    state.active_list_id = lst.id
    return lst, []


# ── Intents ───────────────────────────────────────────────────


def add_by_intent(
    state: AppState, list_name: str | None, task_line: str | None, now: datetime
) -> tuple[TaskItem | None, list[str]]:
    """Shortcut-style add: find the list by name (creating it), add a task."""
    name = (list_name or "").strip() or INTENT_DEFAULT_LIST
    lst = find_list_by_name(state, name)
    if lst is None:
        lst, errors = add_list(state, name, now)
        if lst is None:
            return None, errors
    if not (task_line or "").strip():
        return None, []
    return add_task(lst, task_line or "", now)
