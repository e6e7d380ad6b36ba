"""Hook system for Rollover.

Hooks run shell commands when a reset happens, which is how a host wires
up notifications (push, mail, chat) without the core knowing about them.
Configured via <root>/hooks.yaml:

    on_reset:
      - notify-send "Lists reset"
      - command: ./push.sh
        timeout: 10

Hook points:
- on_reset (scheduled resets, once per committed poller batch)
- on_manual_reset
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any

import yaml

from rollover.fileio import read_yaml
from rollover.workspace import hooks_config_path, workspace_root

logger = logging.getLogger(__name__)

VALID_HOOK_POINTS = {
    "on_reset",
    "on_manual_reset",
}

DEFAULT_TIMEOUT = 30


def load_hooks_config(root: Path | None = None) -> dict[str, Any]:
    """Load hooks configuration from <root>/hooks.yaml."""
    if root is None:
        root = workspace_root()
    path = hooks_config_path(root)
    if not path.exists():
        return {}
    return read_yaml(path)


def run_hooks(
    hook_point: str,
    context: dict[str, Any],
    root: Path | None = None,
) -> list[dict[str, Any]]:
    """Run all hooks registered for a given hook point.

    Context is passed as JSON via stdin to each hook subprocess.
    Returns list of results with stdout/stderr and exit codes.
    """
    if hook_point not in VALID_HOOK_POINTS:
        return []

    if root is None:
        root = workspace_root()

    try:
        config = load_hooks_config(root)
    except (OSError, yaml.YAMLError):
        logger.exception("unreadable hooks config in %s", root)
        return []
    hooks = config.get(hook_point, [])

    if not hooks or not isinstance(hooks, list):
        return []

    results = []
    context_json = json.dumps(context, ensure_ascii=False)

    for hook in hooks:
        if isinstance(hook, str):
            command = hook
            timeout = DEFAULT_TIMEOUT
        elif isinstance(hook, dict):
            command = hook.get("command", "")
            timeout = hook.get("timeout", DEFAULT_TIMEOUT)
        else:
            continue

        if not command:
            continue

        result: dict[str, Any] = {"command": command, "hook_point": hook_point}
        try:
            proc = subprocess.run(
                command,
                shell=True,
                input=context_json,
                capture_output=True,
                text=True,
                timeout=timeout,
                cwd=str(root),
            )
            result["exit_code"] = proc.returncode
            result["stdout"] = proc.stdout[:4096]
            result["stderr"] = proc.stderr[:4096]
            if proc.returncode != 0:
                logger.warning("hook %s exited %s: %s", hook_point, proc.returncode, command)
        except subprocess.TimeoutExpired:
            result["exit_code"] = -1
            result["error"] = f"Hook timed out after {timeout}s"
            logger.warning("hook %s timed out after %ss: %s", hook_point, timeout, command)
        except OSError as e:
            result["exit_code"] = -1
            result["error"] = str(e)
            logger.warning("hook %s failed to start: %s", hook_point, e)

        results.append(result)

    return results


def reset_context(snapshots: list[Any]) -> dict[str, Any]:
    """JSON-friendly hook context describing a batch of resets."""
    return {
        "resets": [
            {
                "listId": s.list_id,
                "listName": s.list_name,
                "snapshotId": s.id,
                "completed": s.completed,
                "total": s.total,
                "percent": s.percent,
                "endedAt": s.ended_at.isoformat(),
            }
            for s in snapshots
        ]
    }
