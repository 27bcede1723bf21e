# tests/test_kv_store.py

from __future__ import annotations

from pathlib import Path

from todo_reminder.storage.kv_store import SqliteKeyValueStore
from todo_reminder.tasks.task_store import TaskStore

from .fakes import FakeClock


def test_get_set_overwrite(tmp_path: Path) -> None:
    kv = SqliteKeyValueStore(tmp_path / "store.sqlite3")
    assert kv.get("missing") is None

    kv.set("k", "v1")
    kv.set("k", "v2")
    kv.set("other", "x")

    assert kv.get("k") == "v2"
    assert sorted(kv.keys()) == ["k", "other"]
    kv.close()


def test_values_survive_reopen(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "store.sqlite3"
    SqliteKeyValueStore(path).set("todo_reminder_app_v1", "[]")
    assert SqliteKeyValueStore(path).get("todo_reminder_app_v1") == "[]"


def test_task_store_on_sqlite(tmp_path: Path, clock: FakeClock) -> None:
    path = tmp_path / "store.sqlite3"
    first = TaskStore(SqliteKeyValueStore(path), clock=clock)
    t = first.create("Durable", tags=["disk"])
    assert t is not None

    second = TaskStore(SqliteKeyValueStore(path), clock=clock)
    assert second.load() == 1
    assert second.get(t.id) == t
