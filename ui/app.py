from __future__ import annotations

import logging
import os
import secrets
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from rollover import (
    Poller,
    StateStore,
    TickResult,
    add_by_intent,
    add_list,
    add_task,
    bulk_add,
    delete_list,
    delete_snapshot,
    export_state,
    filter_tasks,
    find_list,
    import_state,
    list_from_template,
    load_settings,
    now_local,
    remove_task,
    rename_list,
    replace_state,
    reset_list_now,
    run_hooks,
    save_template,
    set_retention,
    snapshots_for_list,
    tags_in_use,
    toggle_task,
    update_settings,
)
from rollover.hooks import reset_context
from rollover.logging_setup import setup_logging

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"


# ── Auth ──────────────────────────────────────────────────────

security = HTTPBasic(auto_error=False)


def get_current_user(credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    expected_username = os.environ.get("ROLLOVER_USERNAME", "")
    expected_password = os.environ.get("ROLLOVER_PASSWORD", "")

    if not expected_username or not expected_password:
        return "guest"

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Basic"},
        )

    correct_username = secrets.compare_digest(credentials.username.encode("utf-8"), expected_username.encode("utf-8"))
    correct_password = secrets.compare_digest(credentials.password.encode("utf-8"), expected_password.encode("utf-8"))

    if not (correct_username and correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username


# ── Helpers ───────────────────────────────────────────────────


def get_store(request: Request) -> StateStore:
    return request.app.state.store


def _now(store: StateStore):
    return now_local(store.root)


def _fail(errors: list[str]) -> None:
    if errors:
        raise HTTPException(status_code=400, detail="; ".join(errors))


def _not_found(what: str, ident: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{what} not found: {ident}")


router = APIRouter()


# ── Endpoints ─────────────────────────────────────────────────

@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"ok": "true"}


@router.get("/api/state")
def api_get_state(store: StateStore = Depends(get_store), username: str = Depends(get_current_user)) -> dict[str, Any]:
    return store.update(lambda state: state.to_dict())


@router.post("/api/lists")
def api_add_list(
    payload: dict[str, Any] = Body(...),
    store: StateStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    now = _now(store)
    lst, errors = store.update(lambda state: add_list(state, str(payload.get("name", "")), now))
    _fail(errors)
    return {"ok": True, "list": lst.to_dict()}


@router.put("/api/lists/{list_id}")
def api_rename_list(
    list_id: str,
    payload: dict[str, Any] = Body(...),
    store: StateStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    lst, errors = store.update(lambda state: rename_list(state, list_id, str(payload.get("name", ""))))
    if lst is None and errors and errors[0].startswith("List not found"):
        raise _not_found("List", list_id)
    _fail(errors)
    return {"ok": True, "list": lst.to_dict()}


@router.delete("/api/lists/{list_id}")
def api_delete_list(list_id: str, store: StateStore = Depends(get_store), username: str = Depends(get_current_user)) -> dict[str, Any]:
    if not store.update(lambda state: delete_list(state, list_id)):
        raise _not_found("List", list_id)
    return {"ok": True}


@router.get("/api/lists/{list_id}/tasks")
def api_list_tasks(
    list_id: str,
    q: str | None = None,
    priority: str | None = None,
    only_open: bool = Query(False, alias="onlyOpen"),
    tag: str | None = None,
    store: StateStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Filtered view: /api/lists/{id}/tasks?q=milk&priority=high&onlyOpen=true&tag=dairy"""
    lst = find_list(store.load(), list_id)
    if lst is None:
        raise _not_found("List", list_id)
    tasks = filter_tasks(lst, query=q, priority=priority, only_open=only_open, tag=tag)
    return {"tasks": [t.to_dict() for t in tasks], "tags": tags_in_use(lst)}


@router.post("/api/lists/{list_id}/tasks")
def api_add_task(
    list_id: str,
    payload: dict[str, Any] = Body(...),
    store: StateStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    now = _now(store)

    def _apply(state):
        lst = find_list(state, list_id)
        if lst is None:
            return None, None
        return lst, add_task(lst, str(payload.get("line", "")), now)

    lst, added = store.update(_apply)
    if lst is None:
        raise _not_found("List", list_id)
    task, errors = added
    _fail(errors)
    return {"ok": True, "task": task.to_dict()}


@router.post("/api/lists/{list_id}/tasks/bulk")
def api_bulk_add(
    list_id: str,
    payload: dict[str, Any] = Body(...),
    store: StateStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    now = _now(store)

    def _apply(state):
        lst = find_list(state, list_id)
        if lst is None:
            return None
        return bulk_add(lst, str(payload.get("text", "")), now)

    added = store.update(_apply)
    if added is None:
        raise _not_found("List", list_id)
    return {"ok": True, "tasks": [t.to_dict() for t in added]}


@router.post("/api/lists/{list_id}/tasks/{task_id}/toggle")
def api_toggle_task(
    list_id: str, task_id: str, store: StateStore = Depends(get_store), username: str = Depends(get_current_user)
) -> dict[str, Any]:
    def _apply(state):
        lst = find_list(state, list_id)
        return toggle_task(lst, task_id) if lst is not None else None

    task = store.update(_apply)
    if task is None:
        raise _not_found("Task", task_id)
    return {"ok": True, "task": task.to_dict()}


@router.delete("/api/lists/{list_id}/tasks/{task_id}")
def api_remove_task(
    list_id: str, task_id: str, store: StateStore = Depends(get_store), username: str = Depends(get_current_user)
) -> dict[str, Any]:
    def _apply(state):
        lst = find_list(state, list_id)
        return remove_task(lst, task_id) if lst is not None else False

    if not store.update(_apply):
        raise _not_found("Task", task_id)
    return {"ok": True}


@router.put("/api/lists/{list_id}/settings")
def api_update_settings(
    list_id: str,
    payload: dict[str, Any] = Body(...),
    store: StateStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    rule, errors = store.update(lambda state: update_settings(state, list_id, payload))
    if rule is None and errors and errors[0].startswith("List not found"):
        raise _not_found("List", list_id)
    _fail(errors)
    return {"ok": True, "settings": rule.to_dict()}


@router.post("/api/lists/{list_id}/reset")
def api_reset_now(list_id: str, store: StateStore = Depends(get_store), username: str = Depends(get_current_user)) -> dict[str, Any]:
    outcome = store.update(lambda state: reset_list_now(state, list_id, _now(store)))
    if outcome is None:
        raise _not_found("List", list_id)
    run_hooks("on_manual_reset", reset_context([outcome.snapshot]), store.root)
    return {"ok": True, "snapshot": outcome.snapshot.to_dict()}


@router.get("/api/lists/{list_id}/snapshots")
def api_list_snapshots(list_id: str, store: StateStore = Depends(get_store), username: str = Depends(get_current_user)) -> dict[str, Any]:
    state = store.load()
    return {"snapshots": [s.to_dict() for s in snapshots_for_list(state.snapshots, list_id)]}


@router.delete("/api/snapshots/{snapshot_id}")
def api_delete_snapshot(snapshot_id: str, store: StateStore = Depends(get_store), username: str = Depends(get_current_user)) -> dict[str, Any]:
    def _apply(state):
        state.snapshots, removed = delete_snapshot(state.snapshots, snapshot_id)
        return removed

    if not store.update(_apply):
        raise _not_found("Snapshot", snapshot_id)
    return {"ok": True}


@router.put("/api/retention")
def api_set_retention(
    payload: dict[str, Any] = Body(...),
    store: StateStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    errors = store.update(lambda state: set_retention(state, payload.get("retentionDays"), _now(store)))
    _fail(errors)
    return {"ok": True, "retentionDays": payload.get("retentionDays")}


@router.post("/api/templates")
def api_save_template(
    payload: dict[str, Any] = Body(...),
    store: StateStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    list_id = str(payload.get("listId", ""))
    tpl, errors = store.update(lambda state: save_template(state, list_id, str(payload.get("name", ""))))
    _fail(errors)
    return {"ok": True, "template": tpl.to_dict()}


@router.post("/api/templates/{template_id}/instantiate")
def api_list_from_template(
    template_id: str, store: StateStore = Depends(get_store), username: str = Depends(get_current_user)
) -> dict[str, Any]:
    now = _now(store)
    lst, errors = store.update(lambda state: list_from_template(state, template_id, now))
    if lst is None:
        raise _not_found("Template", template_id)
    return {"ok": True, "list": lst.to_dict()}


@router.get("/api/intent/add")
def api_intent_add(
    list_name: str | None = Query(None, alias="list"),
    task: str | None = None,
    store: StateStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Shortcut-friendly: /api/intent/add?list=Groceries&task=Milk%20%23dairy%20!h"""
    now = _now(store)
    item, errors = store.update(lambda state: add_by_intent(state, list_name, task, now))
    _fail(errors)
    return {"ok": True, "task": item.to_dict() if item else None}


@router.get("/api/export")
def api_export(store: StateStore = Depends(get_store), username: str = Depends(get_current_user)) -> PlainTextResponse:
    return PlainTextResponse(export_state(store.load()), media_type="application/json")


@router.post("/api/import")
async def api_import(request: Request, username: str = Depends(get_current_user)) -> dict[str, Any]:
    store: StateStore = request.app.state.store
    text = (await request.body()).decode("utf-8", errors="replace")
    imported, errors = import_state(text)
    _fail(errors)

    def _apply(state):
        replace_state(state, imported, _now(store))
        return len(state.lists), len(state.snapshots)

    n_lists, n_snapshots = store.update(_apply)
    return {"ok": True, "lists": n_lists, "snapshots": n_snapshots}


# ── App factory ───────────────────────────────────────────────


def create_app(root: Path | None = None, *, start_poller: bool = True) -> FastAPI:
    """Build the API app; its lifespan runs the reset poller."""
    settings = load_settings(root)
    store = StateStore(settings.root, retention_days=settings.retention_days)

    def _on_reset(result: TickResult) -> None:
        run_hooks("on_reset", reset_context(list(result.snapshots)), store.root)

    poller = Poller(
        store,
        clock=lambda: now_local(store.root),
        interval_seconds=settings.poll_interval_seconds,
        on_reset=_on_reset,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if start_poller:
            poller.start()
        try:
            yield
        finally:
            await poller.stop()

    app = FastAPI(title="Rollover", version=APP_VERSION, lifespan=lifespan)
    app.state.store = store
    app.state.poller = poller
    app.include_router(router)
    return app


def main() -> None:
    import uvicorn

    settings = load_settings()
    setup_logging(log_dir=settings.log_dir or settings.root / "logs", console_level=settings.log_level)
    uvicorn.run(create_app(settings.root), host=os.environ.get("ROLLOVER_HOST", "127.0.0.1"), port=int(os.environ.get("ROLLOVER_PORT", "8000")))


if __name__ == "__main__":
    main()
