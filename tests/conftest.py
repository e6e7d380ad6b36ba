"""Shared test fixtures for Rollover tests."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path

import pytest
import yaml

from rollover.models import ListState, RecurrenceRule, TaskItem

T0 = datetime(2024, 1, 14, 6, 0, tzinfo=timezone.utc)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with config and one daily list."""
    root = tmp_path / "workspace"
    root.mkdir(parents=True)

    config = {
        "timezone": "UTC",
        "retention_days": 30,
        "poll_interval_seconds": 30,
        "log_level": "DEBUG",
    }
    (root / "config.yaml").write_text(
        yaml.dump(config, default_flow_style=False), encoding="utf-8"
    )

    state = {
        "lists": [
            {
                "id": "chores",
                "name": "Chores",
                "createdAt": int(T0.timestamp() * 1000),
                "lastResetAt": int(T0.timestamp() * 1000),
                "tasks": [
                    {"id": "a", "title": "Dishes", "checked": True, "createdAt": int(T0.timestamp() * 1000), "priority": "med", "tags": []},
                    {"id": "b", "title": "Laundry", "checked": False, "createdAt": int(T0.timestamp() * 1000), "priority": "high", "tags": ["home"]},
                ],
                "settings": {
                    "mode": "daily",
                    "resetHour": 5,
                    "resetMinute": 0,
                    "resetWeekday": 1,
                    "resetDayOfMonth": 1,
                    "carryOver": True,
                },
            }
        ],
        "snapshots": [],
        "templates": [],
        "activeListId": "chores",
        "version": 2,
    }
    (root / "state.json").write_text(json.dumps(state, indent=2), encoding="utf-8")

    # Set env var
    os.environ["ROLLOVER_ROOT"] = str(root)
    yield root
    # Cleanup
    if "ROLLOVER_ROOT" in os.environ:
        del os.environ["ROLLOVER_ROOT"]


@pytest.fixture
def make_list():
    """Factory for a list with one checked and one unchecked task."""

    def _make(
        list_id: str = "l1",
        *,
        mode: str = "daily",
        carry_over: bool = True,
        last_reset_at: datetime = T0,
        **rule: int,
    ) -> ListState:
        return ListState(
            id=list_id,
            name=f"List {list_id}",
            created_at=last_reset_at,
            last_reset_at=last_reset_at,
            tasks=[
                TaskItem(id="a", title="A", checked=True, created_at=last_reset_at),
                TaskItem(id="b", title="B", checked=False, created_at=last_reset_at, tags=["x"]),
            ],
            settings=RecurrenceRule(mode=mode, carry_over=carry_over, **rule),
        )

    return _make
