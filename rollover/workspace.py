"""Workspace root, timezone, path helpers for Rollover."""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from rollover.fileio import read_yaml


def workspace_root() -> Path:
    """Get the workspace root directory (holds state.json and config.yaml)."""
    return Path(
        os.environ.get("ROLLOVER_ROOT", str(Path.home() / "rollover"))
    ).expanduser().resolve()


def get_user_timezone(root: Path | None = None) -> ZoneInfo:
    """Timezone from ROLLOVER_TIMEZONE or config.yaml, defaulting to UTC."""
    if root is None:
        root = workspace_root()
    name = os.environ.get("ROLLOVER_TIMEZONE", "").strip()
    if not name:
        try:
            name = str(read_yaml(config_path(root)).get("timezone", "") or "")
        except (OSError, yaml.YAMLError):
            name = ""
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def now_local(root: Path | None = None) -> datetime:
    """Get current datetime in user's timezone."""
    return datetime.now(get_user_timezone(root))


# ── Path helpers ──────────────────────────────────────────────

def state_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "state.json"


def config_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "config.yaml"


def hooks_config_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "hooks.yaml"


def log_dir(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "logs"
