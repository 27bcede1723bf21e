# tests/test_task_scheduler.py

from __future__ import annotations

import asyncio
import json
import time
from datetime import timedelta

import pytest

from todo_reminder.tasks.fired_ledger import FiredLedger
from todo_reminder.tasks.task_models import Reminder
from todo_reminder.tasks.task_scheduler import (
    FireKind,
    ReminderScheduler,
    evaluate_tick,
    in_fire_window,
    run_reminder_scheduler,
    seconds_until,
    start_scheduler_in_background,
)
from todo_reminder.tasks.task_store import TaskStore

from .conftest import T0
from .fakes import FailingSink, FakeClock, MemoryKeyValueStore, RecordingSink


def test_fire_window_is_closed_open() -> None:
    assert in_fire_window(0)
    assert in_fire_window(-4)
    assert not in_fire_window(-5)
    assert not in_fire_window(1)


def test_seconds_until_floors_toward_minus_infinity() -> None:
    assert seconds_until(T0, T0) == 0
    assert seconds_until(T0, T0 + timedelta(milliseconds=500)) == -1
    assert seconds_until(T0, T0 - timedelta(milliseconds=500)) == 0
    assert seconds_until(T0, T0 - timedelta(seconds=2)) == 2


def test_due_moment_fires_inside_window_only(store: TaskStore, clock: FakeClock) -> None:
    due = T0 + timedelta(minutes=10)
    t = store.create("Standup", due_at=due, description="room 4")
    assert t is not None

    assert evaluate_tick(store.list_all(), due - timedelta(seconds=1)) == []
    fired = evaluate_tick(store.list_all(), due)
    assert len(fired) == 1
    ev = fired[0]
    assert ev.kind == FireKind.DUE
    assert ev.task_id == t.id
    assert ev.title == "Due now: Standup"
    assert ev.body == "room 4"
    assert ev.threshold == due
    assert len(evaluate_tick(store.list_all(), due + timedelta(seconds=4))) == 1
    assert evaluate_tick(store.list_all(), due + timedelta(seconds=5)) == []


def test_due_body_falls_back_when_no_description(store: TaskStore) -> None:
    store.create("Quiet", due_at=T0)
    (ev,) = evaluate_tick(store.list_all(), T0)
    assert ev.body == "Task is due"


def test_reminders_fire_before_due_moment(store: TaskStore) -> None:
    due = T0 + timedelta(hours=1)
    store.create("Dentist", due_at=due, reminders=[Reminder("r15", 15), Reminder("r60", 60)])

    at_60 = evaluate_tick(store.list_all(), due - timedelta(minutes=60))
    assert [(e.kind, e.reminder_id) for e in at_60] == [(FireKind.REMINDER, "r60")]
    assert at_60[0].title == "Reminder: Dentist"
    assert at_60[0].body.startswith("60 min before due")

    at_15 = evaluate_tick(store.list_all(), due - timedelta(minutes=15, seconds=-2))
    assert [e.reminder_id for e in at_15] == ["r15"]


def test_reminder_and_due_in_same_tick_keep_order(store: TaskStore) -> None:
    # A 1-minute reminder on a task due now+1min and another task due now.
    store.create("Later", due_at=T0 + timedelta(minutes=1), reminders=[Reminder("r1", 1)])
    store.create("Now", due_at=T0)
    events = evaluate_tick(store.list_all(), T0)
    assert [(e.title, e.kind) for e in events] == [
        ("Due now: Now", FireKind.DUE),
        ("Reminder: Later", FireKind.REMINDER),
    ]


def test_completed_and_undated_tasks_never_fire(store: TaskStore) -> None:
    done = store.create("Done", due_at=T0, reminders=[Reminder("r1", 1)])
    assert done is not None
    store.toggle_complete(done.id)
    store.create("No date", reminders=[Reminder("r1", 5)])

    for offset in range(-120, 121):
        assert evaluate_tick(store.list_all(), T0 + timedelta(seconds=offset)) == []


def test_without_ledger_fires_on_every_tick_in_window(store: TaskStore, clock: FakeClock) -> None:
    due = T0 + timedelta(minutes=14)
    store.create("Pay rent", due_at=due, reminders=[Reminder("r15", 15)])
    remind_at = due - timedelta(minutes=15)
    scheduler = ReminderScheduler(store, clock=clock)

    fired = []
    clock.set(remind_at - timedelta(seconds=2))
    for _ in range(10):
        fired.extend(scheduler.tick())
        clock.advance(seconds=1)

    # seconds-to-threshold 0, -1, -2, -3, -4
    assert len(fired) == 5
    assert {e.reminder_id for e in fired} == {"r15"}


def test_pay_rent_reminder_fires_exactly_once_with_ledger(store: TaskStore, clock: FakeClock) -> None:
    due = T0 + timedelta(minutes=14)
    store.create("Pay rent", due_at=due, reminders=[Reminder("r15", 15)])
    remind_at = due - timedelta(minutes=15)
    scheduler = ReminderScheduler(store, clock=clock, ledger=FiredLedger())

    clock.set(remind_at)
    first = scheduler.tick()
    rest = []
    for _ in range(4):
        clock.advance(seconds=1)
        rest.extend(scheduler.tick())

    assert len(first) == 1
    assert first[0].kind == FireKind.REMINDER
    assert first[0].title == "Reminder: Pay rent"
    assert rest == []


def test_snooze_rearms_ledger(store: TaskStore, clock: FakeClock) -> None:
    t = store.create("Stretch", due_at=T0)
    assert t is not None
    scheduler = ReminderScheduler(store, clock=clock, ledger=FiredLedger())

    assert len(scheduler.tick()) == 1
    store.snooze(t.id, 10)
    clock.advance(minutes=10)
    assert len(scheduler.tick()) == 1


def test_ledger_survives_restart_and_prunes_deleted_tasks(store: TaskStore, clock: FakeClock) -> None:
    kv = MemoryKeyValueStore()
    t = store.create("Once", due_at=T0)
    assert t is not None

    ledger = FiredLedger(kv, key="fired")
    assert len(ReminderScheduler(store, clock=clock, ledger=ledger).tick()) == 1

    reloaded = FiredLedger(kv, key="fired")
    reloaded.load()
    assert len(reloaded) == 1
    assert ReminderScheduler(store, clock=clock, ledger=reloaded).tick() == []

    store.delete(t.id)
    ReminderScheduler(store, clock=clock, ledger=reloaded).tick()
    assert len(reloaded) == 0


def test_missed_window_is_not_backfilled(store: TaskStore, clock: FakeClock) -> None:
    store.create("Missed", due_at=T0)
    scheduler = ReminderScheduler(store, clock=clock)
    clock.set(T0 + timedelta(minutes=1))
    assert scheduler.tick() == []


@pytest.mark.asyncio
async def test_scheduler_loop_delivers_once_with_ledger(store: TaskStore, clock: FakeClock) -> None:
    store.create("ping", due_at=T0)
    scheduler = ReminderScheduler(store, clock=clock, ledger=FiredLedger())
    sink = RecordingSink()

    runner = asyncio.create_task(run_reminder_scheduler(scheduler, sink, interval_seconds=0.01))

    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert len(sink.events) == 1
    assert sink.events[0].title == "Due now: ping"


@pytest.mark.asyncio
async def test_scheduler_loop_survives_failing_sink(store: TaskStore, clock: FakeClock) -> None:
    store.create("ping", due_at=T0)
    scheduler = ReminderScheduler(store, clock=clock)
    sink = FailingSink()

    runner = asyncio.create_task(run_reminder_scheduler(scheduler, sink, interval_seconds=0.01))

    await asyncio.sleep(0.05)
    assert not runner.done()
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert sink.calls >= 2


def test_background_runner_fires_toast_and_stops(state, clock: FakeClock, toasts: list[str]) -> None:
    with state.lock:
        state.store.create("Background", due_at=clock())

    runner = start_scheduler_in_background(state)
    assert runner is not None
    try:
        deadline = time.monotonic() + 3.0
        while not toasts and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        runner.stop()
        runner.join(timeout=5.0)

    assert not runner.thread.is_alive()
    assert toasts == ["[!] Due now: Background | Task is due"]


def test_ledger_forgets_crossings_outside_the_window(store: TaskStore, clock: FakeClock) -> None:
    t = store.create("Nagging", due_at=T0)
    assert t is not None
    ledger = FiredLedger()
    scheduler = ReminderScheduler(store, clock=clock, ledger=ledger)

    for _ in range(3):
        assert len(scheduler.tick()) == 1
        assert len(ledger) == 1
        store.snooze(t.id, 10)
        clock.advance(minutes=10)

    clock.advance(minutes=1)
    scheduler.tick()
    assert len(ledger) == 0


def test_ledger_handles_ids_with_separators(clock: FakeClock) -> None:
    kv = MemoryKeyValueStore()
    store = TaskStore(kv, clock=clock)
    doc = [{"id": "a|b", "title": "Imported", "createdAt": "2024-01-01T00:00:00Z", "dueAt": "2024-01-01T10:00:00Z"}]
    assert store.import_json(json.dumps(doc)) is True

    ledger = FiredLedger()
    scheduler = ReminderScheduler(store, clock=clock, ledger=ledger)
    assert len(scheduler.tick()) == 1
    assert scheduler.tick() == []
    assert len(ledger) == 1
