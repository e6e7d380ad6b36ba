"""Settings for Rollover hosts, loaded from config.yaml plus environment.

Environment variables (prefix ``ROLLOVER_``) win over the file; invalid
values fall back to the file or built-in default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rollover.fileio import read_yaml
from rollover.workspace import config_path, log_dir, workspace_root

ENV_PREFIX = "ROLLOVER"


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Settings:
    root: Path
    timezone: str = "UTC"
    retention_days: int = 0
    poll_interval_seconds: float = 30.0
    log_level: str = "INFO"
    log_dir: Path | None = None

    @classmethod
    def from_dict(cls, root: Path, d: dict[str, Any]) -> Settings:
        if not d or not isinstance(d, dict):
            d = {}
        raw_log_dir = d.get("log_dir")
        return cls(
            root=root,
            timezone=str(d.get("timezone", "UTC") or "UTC"),
            retention_days=max(0, _as_int(d.get("retention_days"), 0)),
            poll_interval_seconds=max(1.0, _as_float(d.get("poll_interval_seconds"), 30.0)),
            log_level=str(d.get("log_level", "INFO") or "INFO").upper(),
            log_dir=Path(raw_log_dir).expanduser() if raw_log_dir else log_dir(root),
        )


def load_settings(root: Path | None = None) -> Settings:
    """Read <root>/config.yaml and apply ROLLOVER_* overrides."""
    if root is None:
        root = workspace_root()
    base = Settings.from_dict(root, read_yaml(config_path(root)))
    return Settings(
        root=root,
        timezone=os.getenv(_k("TIMEZONE"), "").strip() or base.timezone,
        retention_days=max(0, _env_int(_k("RETENTION_DAYS"), base.retention_days)),
        poll_interval_seconds=max(1.0, _env_float(_k("POLL_INTERVAL"), base.poll_interval_seconds)),
        log_level=(os.getenv(_k("LOG_LEVEL"), "").strip() or base.log_level).upper(),
        log_dir=base.log_dir,
    )
