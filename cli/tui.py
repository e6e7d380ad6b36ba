#!/usr/bin/env python3
"""Rollover TUI: recurring checklists in the terminal, powered by Textual."""

from __future__ import annotations

import logging
import sys

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.widgets import DataTable, Footer, Header, Input, Label, Static

from rollover import (
    AppState,
    ListState,
    Poller,
    StateStore,
    TickResult,
    add_list,
    add_task,
    filter_tasks,
    find_list,
    load_settings,
    now_local,
    remove_task,
    reset_list_now,
    run_hooks,
    snapshots_for_list,
    tags_in_use,
    toggle_task,
)
from rollover.engine import progress_of
from rollover.hooks import reset_context
from rollover.logging_setup import setup_logging
from rollover.parsing import TaskFilter, parse_filter_line
from rollover.schedule import DAY_NAMES

logger = logging.getLogger(__name__)


CSS = """
Screen {
    layout: vertical;
}

#main-layout {
    height: 1fr;
}

#left-pane {
    width: 30;
    border-right: tall $primary-background-darken-2;
    padding: 0 1;
}

#right-pane {
    width: 1fr;
    padding: 0 1;
}

.section-title {
    text-style: bold;
    color: $text;
    margin: 1 0 0 0;
    padding: 0 1;
}

#lists-table {
    height: 1fr;
}

#tasks-table {
    height: 1fr;
}

#list-info {
    height: auto;
    color: $text-muted;
    padding: 0 1;
}

#archive-screen {
    padding: 1 2;
}

#archive-table {
    height: 1fr;
}
"""


def describe_rule(lst: ListState) -> str:
    s = lst.settings
    at = f"{s.hour:02d}:{s.minute:02d}"
    if s.mode == "daily":
        text = f"daily at {at}"
    elif s.mode == "weekly":
        text = f"weekly on {DAY_NAMES[s.weekday % 7]} at {at}"
    elif s.mode == "monthly":
        text = f"monthly on day {s.day_of_month} at {at}"
    else:
        text = "no automatic reset"
    carry = "carry over open items" if s.carry_over else "start empty"
    return f"{text}; {carry}"


# ── Screens ────────────────────────────────────────────────────


class ArchiveScreen(Vertical):
    """Snapshots of the active list, newest first."""

    def __init__(self, state: AppState, list_id: str | None, **kwargs) -> None:
        super().__init__(**kwargs)
        self._state = state
        self._list_id = list_id

    def compose(self) -> ComposeResult:
        yield Label("Archive", classes="section-title")
        yield DataTable(id="archive-table")

    def on_mount(self) -> None:
        table: DataTable = self.query_one("#archive-table", DataTable)
        table.add_columns("Ended", "Started", "Done", "Total", "%")
        if not self._list_id:
            return
        for s in snapshots_for_list(self._state.snapshots, self._list_id):
            table.add_row(
                s.ended_at.strftime("%Y-%m-%d %H:%M"),
                s.started_at.strftime("%Y-%m-%d %H:%M"),
                str(s.completed),
                str(s.total),
                f"{s.percent}%",
            )


# ── Main app ───────────────────────────────────────────────────


class RolloverApp(App):
    """Rollover: checklists that reset themselves."""

    TITLE = "Rollover"
    CSS = CSS

    BINDINGS = [
        Binding("space", "toggle_task", "Toggle"),
        Binding("x", "remove_task", "Delete"),
        Binding("r", "reset_now", "Reset now"),
        Binding("a", "show_archive", "Archive"),
        Binding("n", "focus_new_list", "New list"),
        Binding("escape", "blur_focus", "Back"),
        Binding("q", "quit_app", "Quit"),
    ]

    current_view: reactive[str] = reactive("dashboard")

    def __init__(self, store: StateStore, poll_interval: float = 30.0) -> None:
        super().__init__()
        self._store = store
        self._poll_interval = poll_interval
        self._state = AppState()
        self._active_id: str | None = None
        self._filter = TaskFilter()
        self._poller = Poller(
            store,
            clock=self._now,
            interval_seconds=poll_interval,
            on_reset=self._on_reset,
        )

    def _now(self):
        return now_local(self._store.root)

    def compose(self) -> ComposeResult:
        yield Header()
        yield Horizontal(
            Vertical(
                Label("Lists", classes="section-title"),
                DataTable(id="lists-table", cursor_type="row"),
                Input(placeholder="new list…", id="list-input"),
                id="left-pane",
            ),
            Vertical(
                Label("Tasks", classes="section-title"),
                Static(id="list-info"),
                Input(placeholder="filter  text #tag !high !open", id="filter-input"),
                DataTable(id="tasks-table", cursor_type="row"),
                Input(placeholder="add task  #tag !high", id="task-input"),
                id="right-pane",
            ),
            id="main-layout",
        )
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#lists-table", DataTable).add_columns("List", "Done")
        self.query_one("#tasks-table", DataTable).add_columns("", "Task", "Pri", "Tags")
        self._poll()
        self.set_interval(self._poll_interval, self._poll)

    # ── Polling ────────────────────────────────────────────────

    @work(thread=True, exclusive=True, group="poll")
    def _poll(self) -> None:
        try:
            self._poller.run_once()
        except Exception:
            logger.exception("poll tick failed")
        self.call_from_thread(self._reload)

    def _on_reset(self, result: TickResult) -> None:
        names = ", ".join(s.list_name for s in result.snapshots)
        self.call_from_thread(self.notify, f"Reset: {names}", title="New period")
        run_hooks("on_reset", reset_context(list(result.snapshots)), self._store.root)

    # ── Rendering ──────────────────────────────────────────────

    def _reload(self) -> None:
        self._state = self._store.load()
        if self._active_id is None or find_list(self._state, self._active_id) is None:
            self._active_id = self._state.active_list_id or (self._state.lists[0].id if self._state.lists else None)
        self._render_lists()
        self._render_tasks()

    def _render_lists(self) -> None:
        table = self.query_one("#lists-table", DataTable)
        table.clear()
        for lst in self._state.lists:
            total, completed, percent = progress_of(lst.tasks)
            table.add_row(lst.name, f"{completed}/{total}", key=lst.id)

    def _render_tasks(self) -> None:
        table = self.query_one("#tasks-table", DataTable)
        info = self.query_one("#list-info", Static)
        table.clear()
        lst = find_list(self._state, self._active_id) if self._active_id else None
        if lst is None:
            info.update("(no list)")
            return
        total, completed, percent = progress_of(lst.tasks)
        tags = " ".join(f"#{x}" for x in tags_in_use(lst))
        info.update(f"{lst.name}: {completed}/{total} ({percent}%) · {describe_rule(lst)}" + (f"\ntags: {tags}" if tags else ""))
        f = self._filter
        for t in filter_tasks(lst, query=f.query, priority=f.priority, only_open=f.only_open, tag=f.tag):
            table.add_row("[x]" if t.checked else "[ ]", t.title, t.priority, " ".join(f"#{x}" for x in t.tags), key=t.id)

    def _selected_task_id(self) -> str | None:
        table = self.query_one("#tasks-table", DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return row_key.value

    # ── Events ─────────────────────────────────────────────────

    @on(DataTable.RowHighlighted, "#lists-table")
    def _on_list_selected(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is not None and event.row_key.value != self._active_id:
            self._active_id = event.row_key.value
            self._render_tasks()

    @on(Input.Changed, "#filter-input")
    def _on_filter_changed(self, event: Input.Changed) -> None:
        self._filter = parse_filter_line(event.value)
        self._render_tasks()

    @on(Input.Submitted, "#task-input")
    def _on_task_submitted(self, event: Input.Submitted) -> None:
        line, list_id, now = event.value, self._active_id, self._now()
        event.input.value = ""
        if not list_id:
            return

        def _apply(state: AppState):
            lst = find_list(state, list_id)
            return add_task(lst, line, now) if lst is not None else (None, ["List not found"])

        _, errors = self._store.update(_apply)
        if errors:
            self.notify("; ".join(errors), severity="warning")
        self._reload()

    @on(Input.Submitted, "#list-input")
    def _on_list_submitted(self, event: Input.Submitted) -> None:
        name, now = event.value, self._now()
        event.input.value = ""
        lst, errors = self._store.update(lambda state: add_list(state, name, now))
        if errors:
            self.notify("; ".join(errors), severity="warning")
            return
        self._active_id = lst.id
        self._reload()

    # ── Actions ────────────────────────────────────────────────

    def action_toggle_task(self) -> None:
        task_id, list_id = self._selected_task_id(), self._active_id
        if not task_id or not list_id:
            return

        def _apply(state: AppState):
            lst = find_list(state, list_id)
            return toggle_task(lst, task_id) if lst is not None else None

        self._store.update(_apply)
        self._reload()

    def action_remove_task(self) -> None:
        task_id, list_id = self._selected_task_id(), self._active_id
        if not task_id or not list_id:
            return

        def _apply(state: AppState):
            lst = find_list(state, list_id)
            return remove_task(lst, task_id) if lst is not None else False

        self._store.update(_apply)
        self._reload()

    def action_reset_now(self) -> None:
        list_id = self._active_id
        if not list_id:
            return
        outcome = self._store.update(lambda state: reset_list_now(state, list_id, self._now()))
        if outcome is not None:
            s = outcome.snapshot
            self.notify(f"Archived {s.completed}/{s.total} ({s.percent}%)", title=s.list_name)
            run_hooks("on_manual_reset", reset_context([s]), self._store.root)
        self._reload()

    def action_show_archive(self) -> None:
        if self.current_view == "archive":
            self._switch_to("dashboard")
        else:
            self._switch_to("archive")

    def action_focus_new_list(self) -> None:
        self.query_one("#list-input", Input).focus()

    def action_blur_focus(self) -> None:
        if self.current_view != "dashboard":
            self._switch_to("dashboard")
        self.set_focus(None)

    def action_quit_app(self) -> None:
        self.exit()

    def _switch_to(self, view: str) -> None:
        main = self.query_one("#main-layout", Horizontal)
        for old in self.query(".overlay-screen"):
            old.remove()

        show_panes = view == "dashboard"
        self.query_one("#left-pane").display = show_panes
        self.query_one("#right-pane").display = show_panes
        if view == "archive":
            main.mount(ArchiveScreen(self._store.load(), self._active_id, id="archive-screen", classes="overlay-screen"))
        self.current_view = view


# ── Entry point ────────────────────────────────────────────────


def main() -> None:
    settings = load_settings()
    if not settings.root.exists():
        print(f"Workspace not found: {settings.root}")
        print("Create it or set ROLLOVER_ROOT.")
        sys.exit(1)

    setup_logging(log_dir=settings.log_dir or settings.root / "logs", console_level=logging.WARNING)
    store = StateStore(settings.root, retention_days=settings.retention_days)
    RolloverApp(store, poll_interval=settings.poll_interval_seconds).run()


if __name__ == "__main__":
    main()
