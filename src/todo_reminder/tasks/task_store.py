# src/todo_reminder/tasks/task_store.py

from __future__ import annotations

import dataclasses
import logging
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from ..core.clock import Clock, ensure_aware, utc_now
from ..core.ports import KeyValueStore
from .task_codec import dedupe_tags, dumps_tasks, loads_tasks
from .task_models import MUTABLE_FIELDS, Priority, Reminder, Repeat, Task, TaskDraft

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "todo_reminder_app_v1"
DEFAULT_LIST = "Personal"
COPY_SUFFIX = " (copy)"


def new_id() -> str:
    return uuid.uuid4().hex


def _to_utc(ts: datetime | None) -> datetime | None:
    return None if ts is None else ensure_aware(ts).astimezone(UTC)


def _clean_reminders(reminders: Iterable[Reminder]) -> tuple[Reminder, ...]:
    out: list[Reminder] = []
    for r in reminders:
        if r.minutes_before <= 0:
            logger.debug("Dropping reminder id=%s minutes_before=%s", r.id, r.minutes_before)
            continue
        out.append(r)
    return tuple(out)


class TaskStore:
    """
    In-memory task collection with write-through persistence.

    The collection is ordered most-recently-created first. Every mutation
    serializes the whole collection to the key-value store under one key;
    there is no incremental diffing.

    Failure policy (nothing here is fatal):
    - create() with a blank title is a silent no-op (returns None)
    - unknown ids are no-ops (None / False)
    - corrupt persisted data loads as an empty collection
    - a failed write is logged; the in-memory state stays authoritative

    Not thread-safe by itself: callers serialize access (AppState.lock).
    """

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        storage_key: str = DEFAULT_STORAGE_KEY,
        clock: Clock = utc_now,
        id_factory=new_id,
    ) -> None:
        self._kv = kv
        self._key = storage_key
        self._clock = clock
        self._new_id = id_factory
        self._tasks: list[Task] = []

    @property
    def storage_key(self) -> str:
        return self._key

    # ---- persistence ----

    def load(self) -> int:
        """Load-or-default. Returns the number of tasks loaded."""
        try:
            raw = self._kv.get(self._key)
        except Exception:
            logger.exception("Failed to read tasks from storage key=%s", self._key)
            raw = None

        if not raw:
            self._tasks = []
            logger.info("TaskStore ready key=%s total=0 (empty)", self._key)
            return 0

        try:
            self._tasks = loads_tasks(raw)
        except ValueError as e:
            logger.warning("Stored tasks are corrupt (%s); starting with an empty collection.", e)
            self._tasks = []

        logger.info("TaskStore ready key=%s total=%d", self._key, len(self._tasks))
        return len(self._tasks)

    def _flush(self) -> None:
        try:
            self._kv.set(self._key, dumps_tasks(self._tasks))
        except Exception:
            logger.exception("Failed to persist %d tasks (key=%s)", len(self._tasks), self._key)

    def _now(self) -> datetime:
        return _to_utc(self._clock())  # type: ignore[return-value]

    # ---- queries ----

    def list_all(self) -> list[Task]:
        return list(self._tasks)

    def get(self, task_id: str) -> Task | None:
        for t in self._tasks:
            if t.id == task_id:
                return t
        return None

    def count_tasks(self) -> int:
        return len(self._tasks)

    def _index(self, task_id: str) -> int:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        return -1

    def _replace_at(self, idx: int, task: Task) -> Task:
        self._tasks[idx] = task
        self._flush()
        return task

    # ---- mutations ----

    def create(
        self,
        title: str | None,
        *,
        description: str | None = None,
        due_at: datetime | None = None,
        priority: Priority | str | None = None,
        tags: Iterable[str] | None = None,
        list_name: str | None = None,
        reminders: Iterable[Reminder] | None = None,
        repeat: Repeat | str | None = None,
    ) -> Task | None:
        """Create a task and put it in front. Blank title -> None, nothing stored."""
        clean_title = (title or "").strip()
        if not clean_title:
            logger.debug("create() ignored: blank title")
            return None

        now = self._now()
        task = Task(
            id=self._new_id(),
            title=clean_title,
            created_at=now,
            updated_at=now,
            description=description or "",
            due_at=_to_utc(due_at),
            priority=Priority(priority) if priority else Priority.MEDIUM,
            tags=dedupe_tags(tags or ()),
            list_name=list_name or DEFAULT_LIST,
            reminders=_clean_reminders(reminders or ()),
            repeat=Repeat(repeat) if repeat else Repeat.NONE,
            completed=False,
        )
        self._tasks.insert(0, task)
        self._flush()
        logger.info("Task created id=%s title=%r due_at=%s", task.id, task.title, task.due_at)
        return task

    def update(self, task_id: str, **changes: Any) -> Task | None:
        """
        Shallow-merge the given fields over the task and bump updated_at.

        The title is not re-validated here. Unknown field names are a
        programming error (TypeError).
        """
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise TypeError(f"update() got unexpected fields: {sorted(unknown)}")

        idx = self._index(task_id)
        if idx < 0:
            logger.debug("update() ignored: unknown id=%s", task_id)
            return None

        # None clears due_at; for every other field it means "leave as is".
        changes = {k: v for k, v in changes.items() if v is not None or k == "due_at"}

        if "due_at" in changes:
            changes["due_at"] = _to_utc(changes["due_at"])
        if "priority" in changes:
            changes["priority"] = Priority(changes["priority"])
        if "repeat" in changes:
            changes["repeat"] = Repeat(changes["repeat"])
        if "tags" in changes:
            changes["tags"] = dedupe_tags(changes["tags"] or ())
        if "reminders" in changes:
            changes["reminders"] = _clean_reminders(changes["reminders"] or ())

        old = self._tasks[idx]
        task = dataclasses.replace(old, **changes, updated_at=max(self._now(), old.created_at))
        logger.info("Task updated id=%s fields=%s", task_id, ",".join(sorted(changes)))
        return self._replace_at(idx, task)

    def upsert(self, draft: TaskDraft) -> Task | None:
        """
        Form entry point: create when draft.id is empty, update otherwise.

        A blank title rejects the whole draft in both branches.
        """
        if not draft.title or not draft.title.strip():
            logger.debug("upsert() ignored: blank title")
            return None

        if draft.id:
            return self.update(draft.id, **draft.changes())

        return self.create(
            draft.title,
            description=draft.description,
            due_at=draft.due_at,
            priority=draft.priority,
            tags=draft.tags,
            list_name=draft.list_name,
            reminders=draft.reminders,
            repeat=draft.repeat,
        )

    def delete(self, task_id: str) -> bool:
        idx = self._index(task_id)
        if idx < 0:
            return False
        removed = self._tasks.pop(idx)
        self._flush()
        logger.info("Task deleted id=%s title=%r", removed.id, removed.title)
        return True

    def duplicate(self, task_id: str) -> Task | None:
        """Copy a task to the front: fresh id and timestamps, not completed."""
        src = self.get(task_id)
        if src is None:
            return None

        now = self._now()
        copy = dataclasses.replace(
            src,
            id=self._new_id(),
            title=src.title + COPY_SUFFIX,
            created_at=now,
            updated_at=now,
            completed=False,
        )
        self._tasks.insert(0, copy)
        self._flush()
        logger.info("Task duplicated src=%s copy=%s", src.id, copy.id)
        return copy

    def toggle_complete(self, task_id: str) -> Task | None:
        idx = self._index(task_id)
        if idx < 0:
            return None
        old = self._tasks[idx]
        task = dataclasses.replace(
            old,
            completed=not old.completed,
            updated_at=max(self._now(), old.created_at),
        )
        logger.info("Task id=%s completed=%s", task_id, task.completed)
        return self._replace_at(idx, task)

    def snooze(self, task_id: str, minutes: int) -> Task | None:
        """
        Push the due date forward by minutes.

        The base is the current due date; "now" is only used when the task has none.
        """
        if isinstance(minutes, bool) or not isinstance(minutes, int):
            raise TypeError("minutes must be an int")

        idx = self._index(task_id)
        if idx < 0:
            return None

        old = self._tasks[idx]
        now = self._now()
        base = old.due_at if old.due_at is not None else now
        task = dataclasses.replace(
            old,
            due_at=base + timedelta(minutes=minutes),
            updated_at=max(now, old.created_at),
        )
        logger.info("Task snoozed id=%s by %d min -> %s", task_id, minutes, task.due_at)
        return self._replace_at(idx, task)

    # ---- import / export ----

    def replace_all(self, tasks: Iterable[Task]) -> None:
        self._tasks = list(tasks)
        self._flush()

    def export_json(self) -> str:
        return dumps_tasks(self._tasks, indent=2)

    def import_json(self, raw: str) -> bool:
        """
        Replace the whole collection with an exported document.

        Anything that is not an array of tasks with unique ids leaves the
        store untouched.
        """
        try:
            tasks = loads_tasks(raw)
        except ValueError as e:
            logger.warning("Import ignored: %s", e)
            return False

        ids = [t.id for t in tasks]
        if len(set(ids)) != len(ids):
            dupes = sorted({i for i in ids if ids.count(i) > 1})
            logger.warning("Import ignored: duplicate task ids %s", dupes)
            return False

        self.replace_all(tasks)
        logger.info("Imported %d tasks", len(tasks))
        return True

    def export_file(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.export_json(), "utf-8")
        logger.info("Exported %d tasks to %s", len(self._tasks), path)
        return path

    def import_file(self, path: str | Path) -> bool:
        try:
            raw = Path(path).read_text("utf-8")
        except OSError:
            logger.warning("Import ignored: cannot read %s", path, exc_info=True)
            return False
        return self.import_json(raw)
