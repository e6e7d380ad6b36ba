"""Recurrence evaluation for Rollover lists.

``most_recent_due`` finds the latest reset boundary at or before *now*.
Boundaries are civil wall-clock times in *now*'s timezone; instants are
always compared on absolute (UTC) time.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone, tzinfo

from rollover.models import (
    Daily,
    Monthly,
    RecurrenceRule,
    Schedule,
    Weekly,
    as_aware,
)


# ── Constants ─────────────────────────────────────────────────

DAY_NAMES = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]


# ── Calendar helpers ──────────────────────────────────────────


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamp_day_of_month(year: int, month: int, day: int) -> int:
    """Clamp *day* into the month, e.g. 31 in February -> 28 or 29."""
    return max(1, min(day, last_day_of_month(year, month)))


def sunday_based_weekday(d: date) -> int:
    """Day of week with 0 = Sunday … 6 = Saturday."""
    return (d.weekday() + 1) % 7


def previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def is_after(a: datetime, b: datetime) -> bool:
    """Absolute-time comparison, safe across DST folds."""
    return as_aware(a).astimezone(timezone.utc) > as_aware(b).astimezone(timezone.utc)


def _clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(int(value), hi))


def at_time(day: date, hour: int, minute: int, tz: tzinfo) -> datetime:
    """Civil time on *day* as a real instant in *tz*.

    A wall time skipped by a DST jump resolves past the gap; a repeated
    wall time resolves to its first occurrence.
    """
    local = datetime(day.year, day.month, day.day, _clamp(hour, 0, 23), _clamp(minute, 0, 59), tzinfo=tz)
    return local.astimezone(timezone.utc).astimezone(tz)


# ── Per-mode boundaries ───────────────────────────────────────


def _daily(s: Daily, now: datetime) -> datetime:
    tz = now.tzinfo
    candidate = at_time(now.date(), s.hour, s.minute, tz)
    if is_after(candidate, now):
        candidate = at_time(now.date() - timedelta(days=1), s.hour, s.minute, tz)
    return candidate


def _weekly(s: Weekly, now: datetime) -> datetime:
    tz = now.tzinfo
    days_back = (sunday_based_weekday(now.date()) - s.weekday) % 7
    day = now.date() - timedelta(days=days_back)
    candidate = at_time(day, s.hour, s.minute, tz)
    if is_after(candidate, now):
        candidate = at_time(day - timedelta(days=7), s.hour, s.minute, tz)
    return candidate


def _monthly(s: Monthly, now: datetime) -> datetime:
    tz = now.tzinfo
    y, m = now.year, now.month
    d = clamp_day_of_month(y, m, s.day)
    candidate = at_time(date(y, m, d), s.hour, s.minute, tz)
    if is_after(candidate, now):
        py, pm = previous_month(y, m)
        pd = clamp_day_of_month(py, pm, s.day)
        candidate = at_time(date(py, pm, pd), s.hour, s.minute, tz)
    return candidate


# ── Public API ────────────────────────────────────────────────


def most_recent_due(rule: RecurrenceRule | Schedule, now: datetime) -> datetime | None:
    """Return the latest boundary of *rule* that is <= *now*.

    ``Once`` never resets and returns None. A naive *now* is taken as UTC.
    """
    schedule = rule.schedule if isinstance(rule, RecurrenceRule) else rule
    now = as_aware(now)

    if isinstance(schedule, Daily):
        return _daily(schedule, now)
    if isinstance(schedule, Weekly):
        return _weekly(schedule, now)
    if isinstance(schedule, Monthly):
        return _monthly(schedule, now)
    return None
