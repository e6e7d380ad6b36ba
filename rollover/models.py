"""Typed dataclasses for the Rollover data model.

All models use from_dict/to_dict for JSON serialization.
camelCase in JSON is mapped to snake_case in Python.
Unknown keys are ignored; missing keys use defaults.
Instants are persisted as epoch milliseconds.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Union


# ── Instants ──────────────────────────────────────────────────


def as_aware(dt: datetime) -> datetime:
    """Return *dt* with a timezone; naive values are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_millis(dt: datetime) -> int:
    """Epoch milliseconds, truncated toward the past."""
    return (as_aware(dt) - EPOCH) // timedelta(milliseconds=1)


def from_millis(ms: int | float) -> datetime:
    return EPOCH + timedelta(milliseconds=ms)


def as_bool(raw: Any, default: bool) -> bool:
    """Only real JSON booleans count; anything else gives *default*."""
    return raw if isinstance(raw, bool) else default


def parse_instant(raw: Any, default: datetime | None = None) -> datetime | None:
    """Parse epoch milliseconds or an ISO-8601 string."""
    if raw is None or raw == "":
        return default
    if isinstance(raw, bool):
        return default
    if isinstance(raw, (int, float)):
        return from_millis(raw)
    if isinstance(raw, datetime):
        return as_aware(raw)
    try:
        return as_aware(datetime.fromisoformat(str(raw).replace("Z", "+00:00")))
    except ValueError:
        return default


# ── Recurrence ────────────────────────────────────────────────

MODES = ("once", "daily", "weekly", "monthly")
PRIORITIES = ("low", "med", "high")


@dataclass(frozen=True)
class Once:
    """Never resets on its own."""


@dataclass(frozen=True)
class Daily:
    hour: int
    minute: int


@dataclass(frozen=True)
class Weekly:
    hour: int
    minute: int
    weekday: int  # 0 = Sunday … 6 = Saturday


@dataclass(frozen=True)
class Monthly:
    hour: int
    minute: int
    day: int  # clamped to the month's last day


Schedule = Union[Once, Daily, Weekly, Monthly]


@dataclass(frozen=True)
class RecurrenceRule:
    """Persisted reset settings of a list.

    Fields that do not apply to ``mode`` are kept so they survive a
    round-trip, but only ``schedule`` is read by the evaluator.
    """

    mode: str = "once"
    hour: int = 5
    minute: int = 0
    weekday: int = 1
    day_of_month: int = 1
    carry_over: bool = True

    @property
    def schedule(self) -> Schedule:
        if self.mode == "daily":
            return Daily(self.hour, self.minute)
        if self.mode == "weekly":
            return Weekly(self.hour, self.minute, self.weekday)
        if self.mode == "monthly":
            return Monthly(self.hour, self.minute, self.day_of_month)
        return Once()

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> RecurrenceRule:
        if not d or not isinstance(d, dict):
            return cls()
        mode = str(d.get("mode", "once")).strip().lower()
        if mode not in MODES:
            mode = "once"
        return cls(
            mode=mode,
            hour=int(d.get("resetHour", d.get("hour", 5))),
            minute=int(d.get("resetMinute", d.get("minute", 0))),
            weekday=int(d.get("resetWeekday", d.get("weekday", 1))),
            day_of_month=int(d.get("resetDayOfMonth", d.get("dayOfMonth", 1))),
            carry_over=as_bool(d.get("carryOver"), True),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "resetHour": self.hour,
            "resetMinute": self.minute,
            "resetWeekday": self.weekday,
            "resetDayOfMonth": self.day_of_month,
            "carryOver": self.carry_over,
        }


# ── Tasks & lists ─────────────────────────────────────────────


@dataclass
class TaskItem:
    id: str = ""
    title: str = ""
    checked: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    tags: list[str] = field(default_factory=list)
    priority: str = "med"
    note: str = ""

    def copy(self, **changes: Any) -> TaskItem:
        """Detached copy; tags are not shared with the original."""
        changes.setdefault("tags", list(self.tags))
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> TaskItem:
        priority = str(d.get("priority", "med"))
        return cls(
            id=str(d.get("id", "")),
            title=str(d.get("title", "")),
            checked=as_bool(d.get("checked"), False),
            created_at=parse_instant(d.get("createdAt"), from_millis(0)),
            tags=[str(t) for t in (d.get("tags") or [])],
            priority=priority if priority in PRIORITIES else "med",
            note=str(d.get("note", "") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "checked": self.checked,
            "createdAt": to_millis(self.created_at),
            "priority": self.priority,
            "tags": list(self.tags),
        }
        if self.note:
            d["note"] = self.note
        return d


@dataclass
class ListState:
    id: str = ""
    name: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_reset_at: datetime | None = None
    tasks: list[TaskItem] = field(default_factory=list)
    settings: RecurrenceRule = field(default_factory=RecurrenceRule)
    color: str | None = None

    def __post_init__(self) -> None:
        if self.last_reset_at is None:
            self.last_reset_at = self.created_at

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ListState:
        created = parse_instant(d.get("createdAt"), from_millis(0))
        return cls(
            id=str(d.get("id", "")),
            name=str(d.get("name", "")),
            created_at=created,
            last_reset_at=parse_instant(d.get("lastResetAt"), created),
            tasks=[TaskItem.from_dict(t) for t in (d.get("tasks") or []) if isinstance(t, dict)],
            settings=RecurrenceRule.from_dict(d.get("settings") or {}),
            color=d.get("color"),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "createdAt": to_millis(self.created_at),
            "lastResetAt": to_millis(self.last_reset_at),
            "tasks": [t.to_dict() for t in self.tasks],
            "settings": self.settings.to_dict(),
        }
        if self.color:
            d["color"] = self.color
        return d


# ── Archive ───────────────────────────────────────────────────


@dataclass(frozen=True)
class Snapshot:
    """Record of a list at the end of one period. Never mutated."""

    id: str
    list_id: str
    list_name: str
    started_at: datetime
    ended_at: datetime
    total: int
    completed: int
    percent: int
    tasks: tuple[TaskItem, ...] = ()

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Snapshot:
        ended = parse_instant(d.get("endedAt"), from_millis(0))
        return cls(
            id=str(d.get("id", "")),
            list_id=str(d.get("listId", "")),
            list_name=str(d.get("listName", "")),
            started_at=parse_instant(d.get("startedAt"), ended),
            ended_at=ended,
            total=int(d.get("total", 0)),
            completed=int(d.get("completed", 0)),
            percent=int(d.get("percent", 0)),
            tasks=tuple(TaskItem.from_dict(t) for t in (d.get("tasks") or []) if isinstance(t, dict)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "listId": self.list_id,
            "listName": self.list_name,
            "startedAt": to_millis(self.started_at),
            "endedAt": to_millis(self.ended_at),
            "total": self.total,
            "completed": self.completed,
            "percent": self.percent,
            "tasks": [t.to_dict() for t in self.tasks],
        }


# ── Templates ─────────────────────────────────────────────────


@dataclass
class TemplateTask:
    title: str = ""
    priority: str = "med"
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> TemplateTask:
        return cls(
            title=str(d.get("title", "")),
            priority=str(d.get("priority", "med")),
            tags=[str(t) for t in (d.get("tags") or [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "priority": self.priority, "tags": list(self.tags)}


@dataclass
class Template:
    id: str = ""
    name: str = ""
    tasks: list[TemplateTask] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Template:
        return cls(
            id=str(d.get("id", "")),
            name=str(d.get("name", "")),
            tasks=[TemplateTask.from_dict(t) for t in (d.get("tasks") or []) if isinstance(t, dict)],
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "tasks": [t.to_dict() for t in self.tasks]}


# ── App state ─────────────────────────────────────────────────

STATE_VERSION = 2


@dataclass
class AppState:
    lists: list[ListState] = field(default_factory=list)
    snapshots: list[Snapshot] = field(default_factory=list)  # newest first
    templates: list[Template] = field(default_factory=list)
    active_list_id: str | None = None
    version: int = STATE_VERSION
    retention_days: int = 0

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> AppState:
        if not d or not isinstance(d, dict):
            return cls()
        return cls(
            lists=[ListState.from_dict(x) for x in (d.get("lists") or []) if isinstance(x, dict)],
            snapshots=[Snapshot.from_dict(x) for x in (d.get("snapshots") or []) if isinstance(x, dict)],
            templates=[Template.from_dict(x) for x in (d.get("templates") or []) if isinstance(x, dict)],
            active_list_id=d.get("activeListId"),
            version=int(d.get("version", STATE_VERSION) or STATE_VERSION),
            retention_days=int(d.get("retentionDays", 0) or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "lists": [x.to_dict() for x in self.lists],
            "snapshots": [x.to_dict() for x in self.snapshots],
            "templates": [x.to_dict() for x in self.templates],
            "activeListId": self.active_list_id,
            "version": self.version,
        }
        if self.retention_days:
            d["retentionDays"] = self.retention_days
        return d
