"""Rollover core library: recurring checklists that reset on a schedule.

Public API re-exports for convenient imports:
    from rollover import most_recent_due, evaluate, tick, prune, ...
"""

# Models
from rollover.models import (
    AppState,
    Daily,
    ListState,
    Monthly,
    Once,
    RecurrenceRule,
    Schedule,
    Snapshot,
    TaskItem,
    Template,
    TemplateTask,
    Weekly,
)

# Schedule evaluation
from rollover.schedule import (
    clamp_day_of_month,
    last_day_of_month,
    most_recent_due,
)

# Reset engine
from rollover.engine import (
    NO_ACTION,
    Due,
    NoActionNeeded,
    ResetOutcome,
    apply_outcome,
    carry_over,
    evaluate,
    manual_reset,
    progress_of,
    snapshot_from_list,
)

# Archive
from rollover.archive import (
    delete_snapshot,
    prune,
    set_retention,
    snapshots_for_list,
)

# Poller
from rollover.poller import Poller, TickResult, commit, tick

# Host operations
from rollover.lists import (
    add_by_intent,
    add_list,
    add_task,
    bulk_add,
    delete_list,
    filter_tasks,
    find_list,
    list_from_template,
    new_list,
    remove_task,
    rename_list,
    reset_list_now,
    save_template,
    tags_in_use,
    toggle_task,
    update_settings,
    validate_settings,
)
from rollover.parsing import parse_task_line

# Persistence & workspace
from rollover.store import (
    MemoryStateStore,
    StateStore,
    export_state,
    import_state,
    replace_state,
)
from rollover.workspace import (
    workspace_root,
    get_user_timezone,
    now_local,
    state_path,
    config_path,
    hooks_config_path,
)
from rollover.config import Settings, load_settings
from rollover.hooks import run_hooks, load_hooks_config
