# tests/conftest.py

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from todo_reminder.cli.bootstrap import create_initial_state
from todo_reminder.core.state import AppState
from todo_reminder.tasks.task_store import TaskStore

from .fakes import FakeClock, MemoryKeyValueStore, SeqIds

T0 = datetime(2024, 1, 1, 10, 0, tzinfo=UTC)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="todo-test",
        data_dir=tmp_path,
        store_db_path=tmp_path / "store.sqlite3",
        storage_key="todo_reminder_app_v1",
        tick_seconds=0.01,
        fire_window_seconds=5,
        fire_dedupe=True,
        soon_seconds=3600,
        toast_seconds=4.0,
        # No OS popups or network from unit tests.
        desktop_notifications=False,
        matrix_enabled=False,
        console_enabled=False,
        default_lists=["Personal", "Work"],
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture()
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture()
def store(kv: MemoryKeyValueStore, clock: FakeClock) -> TaskStore:
    s = TaskStore(kv, clock=clock, id_factory=SeqIds())
    s.load()
    return s


@pytest.fixture()
def toasts() -> list[str]:
    return []


@pytest.fixture()
def state(settings: SimpleNamespace, kv: MemoryKeyValueStore, clock: FakeClock, toasts: list[str]) -> AppState:
    """AppState wired with the in-memory key-value store and the fake clock."""
    return create_initial_state(settings=settings, kv=kv, clock=clock, emit=toasts.append)
