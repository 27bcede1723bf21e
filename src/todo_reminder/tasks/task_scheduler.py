# src/todo_reminder/tasks/task_scheduler.py

"""
Reminder scheduler.

A small polling loop that, on every tick:
- snapshots the task store,
- finds reminders and due moments whose threshold was just crossed,
- hands fire events to an injected sink (toast / desktop / Matrix fan-out).

"Just crossed" is a window, not an edge: a threshold fires on every tick while
-window < floor(seconds to threshold) <= 0. With a 1s tick and a 5s window that
is up to five fires per crossing; the optional FiredLedger makes it exactly-once.
Nothing fires retroactively: a crossing missed while the process was not running
is lost.

Rendering and delivery belong to the sinks, not the scheduler.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING

from ..core.clock import Clock, format_datetime, utc_now
from ..core.ports import FireSink
from .fired_ledger import FiredLedger
from .task_models import Task
from .task_store import TaskStore

if TYPE_CHECKING:
    from ..core.state import AppState

logger = logging.getLogger(__name__)

FIRE_WINDOW_SECONDS = 5


class FireKind(StrEnum):
    REMINDER = "reminder"
    DUE = "due"


@dataclass(slots=True, frozen=True)
class FireEvent:
    """
    One threshold crossing to surface to the user.

    threshold is the instant that was crossed (due_at, or due_at - minutes_before).
    """

    task_id: str
    kind: FireKind
    title: str
    body: str
    threshold: datetime
    reminder_id: str | None = None
    minutes_before: int | None = None


def seconds_until(target: datetime, now: datetime) -> int:
    return math.floor((target - now).total_seconds())


def in_fire_window(seconds: int, window_seconds: int = FIRE_WINDOW_SECONDS) -> bool:
    return -window_seconds < seconds <= 0


def evaluate_tick(
    tasks: Iterable[Task],
    now: datetime,
    *,
    window_seconds: int = FIRE_WINDOW_SECONDS,
) -> list[FireEvent]:
    """
    Pure core of the scheduler: which thresholds are inside the window at `now`.

    Completed tasks and tasks without a due date never fire. Per task, its
    reminders come first (in their stored order), then the due moment.
    """
    events: list[FireEvent] = []
    for task in tasks:
        if task.completed or task.due_at is None:
            continue
        due = task.due_at

        for r in task.reminders:
            remind_at = due - timedelta(minutes=r.minutes_before)
            if in_fire_window(seconds_until(remind_at, now), window_seconds):
                events.append(
                    FireEvent(
                        task_id=task.id,
                        kind=FireKind.REMINDER,
                        title=f"Reminder: {task.title}",
                        body=f"{r.minutes_before} min before due ({format_datetime(due)})",
                        threshold=remind_at,
                        reminder_id=r.id,
                        minutes_before=r.minutes_before,
                    )
                )

        if in_fire_window(seconds_until(due, now), window_seconds):
            events.append(
                FireEvent(
                    task_id=task.id,
                    kind=FireKind.DUE,
                    title=f"Due now: {task.title}",
                    body=task.description or "Task is due",
                    threshold=due,
                )
            )
    return events


class ReminderScheduler:
    """
    Stateful wrapper around evaluate_tick().

    - reads the store under `lock` when one is given (the console mutates it from another thread)
    - with a ledger, each crossing is reported once; without, on every tick inside the window
    """

    def __init__(
        self,
        store: TaskStore,
        *,
        clock: Clock = utc_now,
        window_seconds: int = FIRE_WINDOW_SECONDS,
        ledger: FiredLedger | None = None,
        lock: threading.RLock | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._window = max(1, int(window_seconds))
        self._ledger = ledger
        self._lock = lock

    def _snapshot(self) -> list[Task]:
        if self._lock is None:
            return self._store.list_all()
        with self._lock:
            return self._store.list_all()

    def tick(self) -> list[FireEvent]:
        now = self._clock()
        tasks = self._snapshot()
        events = evaluate_tick(tasks, now, window_seconds=self._window)

        if self._ledger is not None:
            # A threshold older than the window can never fire again.
            self._ledger.prune((t.id for t in tasks), before=now - timedelta(seconds=self._window))
            events = self._ledger.admit(events)

        for ev in events:
            logger.debug("fire task=%s kind=%s threshold=%s", ev.task_id, ev.kind.value, ev.threshold)
        return events


async def run_reminder_scheduler(
    scheduler: ReminderScheduler,
    sink: FireSink,
    *,
    interval_seconds: float = 1.0,
) -> None:
    """
    Polling loop: tick, deliver, sleep.

    A failing tick or sink is logged and the loop keeps going.
    To stop the scheduler, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))
    logger.info("Reminder scheduler started (interval=%.2fs).", sleep_s)

    try:
        while True:
            try:
                events = scheduler.tick()
            except Exception:
                logger.exception("scheduler tick failed")
                events = []

            for ev in events:
                try:
                    await sink.on_fire(ev)
                except Exception:
                    logger.exception("fire delivery failed task_id=%s kind=%s", ev.task_id, ev.kind.value)

            await asyncio.sleep(sleep_s)
    finally:
        logger.info("Reminder scheduler stopped.")


async def _run_until_stopped(state: AppState, stop_event: asyncio.Event) -> None:
    """
    start notifier -> scheduler loop -> wait for stop -> teardown.

    The notifier is closed on every exit path, including a failed start.
    """
    notifier = state.notifier
    loop_task: asyncio.Task[None] | None = None
    try:
        await notifier.start()
        loop_task = asyncio.create_task(
            run_reminder_scheduler(
                state.scheduler,
                notifier,
                interval_seconds=float(getattr(state.settings, "tick_seconds", 1.0)),
            )
        )
        await stop_event.wait()
    except asyncio.CancelledError:
        logger.info("Scheduler runner cancelled.")
    except Exception:
        logger.exception("Scheduler runner crashed.")
    finally:
        if loop_task is not None:
            loop_task.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await loop_task
        with contextlib.suppress(Exception):
            await notifier.close()


@dataclass
class SchedulerBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal scheduler stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_scheduler_in_background(state: AppState) -> SchedulerBackgroundRunner | None:
    """
    Start the reminder loop in a background thread with its own event loop.

    The console REPL blocks on input(), so the ticking loop cannot share its thread.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_run_until_stopped(state, stop_event))
        finally:
            with contextlib.suppress(Exception):
                loop.run_until_complete(loop.shutdown_asyncgens())
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="reminder-scheduler", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Scheduler thread did not initialize properly.")
        return None

    logger.info("Scheduler background thread started.")
    return SchedulerBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
