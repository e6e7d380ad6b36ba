"""Periodic reset polling for Rollover.

A small polling loop that, on every tick:
- reads "now" once,
- evaluates every list independently,
- commits all resets of the tick as one batch (lists updated, snapshots
  prepended newest-first, archive pruned),
- does nothing at all when no list is due.

The loop runs once immediately, then every ``interval_seconds``. Stop it
with ``Poller.stop()`` (or by cancelling the task returned by ``start``).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Protocol, TypeVar

from rollover.archive import prune
from rollover.engine import Due, apply_outcome, evaluate, new_id
from rollover.models import AppState, ListState, Snapshot, as_aware

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_INTERVAL_SECONDS = 30.0


class StateRepo(Protocol):
    def update(self, fn: Callable[[AppState], T]) -> T: ...


@dataclass(frozen=True)
class TickResult:
    """Outcome of one tick: the state after commit and the new snapshots."""

    state: AppState
    snapshots: tuple[Snapshot, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.snapshots)

    @property
    def reset_list_ids(self) -> list[str]:
        return [s.list_id for s in self.snapshots]


def tick(
    state: AppState,
    now: datetime,
    id_factory: Callable[[], str] = new_id,
) -> TickResult:
    """Evaluate all lists at *now* and batch the resulting resets.

    Pure: *state* is not modified. When nothing is due the returned
    ``TickResult.state`` is *state* itself.
    """
    now = as_aware(now)
    lists: list[ListState] = []
    produced: list[Snapshot] = []

    for lst in state.lists:
        outcome = evaluate(lst, now, id_factory)
        if isinstance(outcome, Due):
            produced.append(outcome.snapshot)
            lists.append(apply_outcome(lst, outcome))
        else:
            lists.append(lst)

    if not produced:
        return TickResult(state=state)

    snapshots = prune([*produced, *state.snapshots], state.retention_days, now)
    return TickResult(
        state=replace(state, lists=lists, snapshots=snapshots),
        snapshots=tuple(produced),
    )


def commit(target: AppState, result: TickResult) -> None:
    """Write a tick's lists and archive onto *target* in one step."""
    if not result.changed:
        return
    target.lists = list(result.state.lists)
    target.snapshots = list(result.state.snapshots)


class Poller:
    """Drives ``tick`` against a state repository on a fixed interval."""

    def __init__(
        self,
        store: StateRepo,
        *,
        clock: Callable[[], datetime],
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        on_reset: Callable[[TickResult], None] | None = None,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self._store = store
        self._clock = clock
        self._interval = max(0.01, float(interval_seconds))
        self._on_reset = on_reset
        self._id_factory = id_factory
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> TickResult:
        """One tick: load, evaluate, commit (only when something reset).

        The clock is read under the store's lock, so a concurrent manual
        reset is always ordered before or after this tick's "now".
        """

        def _apply(state: AppState) -> tuple[datetime, TickResult]:
            now = self._clock()
            result = tick(state, now, self._id_factory)
            commit(state, result)
            return now, result

        now, result = self._store.update(_apply)

        if not result.changed:
            logger.debug("poll tick at %s: nothing due", now.isoformat())
            return result

        logger.info(
            "poll tick at %s: reset %d list(s): %s",
            now.isoformat(),
            len(result.snapshots),
            ", ".join(result.reset_list_ids),
        )
        if self._on_reset is not None:
            try:
                self._on_reset(result)
            except Exception:
                logger.exception("on_reset callback failed")
        return result

    async def run(self) -> None:
        """Tick now, then every interval until cancelled."""
        while True:
            try:
                await asyncio.to_thread(self.run_once)
            except Exception:
                logger.exception("poll tick failed")
            await asyncio.sleep(self._interval)

    def start(self) -> asyncio.Task[None]:
        if self.running:
            return self._task  # type: ignore[return-value]
        self._task = asyncio.create_task(self.run(), name="rollover-poller")
        logger.info("poller started (interval=%ss)", self._interval)
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("poller stopped")
