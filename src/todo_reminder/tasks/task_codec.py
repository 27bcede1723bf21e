# src/todo_reminder/tasks/task_codec.py

"""
JSON wire format for tasks.

The same camelCase document is used for the persisted collection and for
import/export files, so a backup can be restored by importing it:

    {"id": "...", "title": "...", "description": "", "dueAt": "2024-01-01T10:00:00Z",
     "priority": "Medium", "tags": [], "list": "Personal",
     "reminders": [{"id": "...", "minutesBefore": 15}],
     "repeat": "none", "completed": false,
     "createdAt": "...", "updatedAt": "..."}

dueAt is omitted when the task has no due date.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from .task_models import Priority, Reminder, Repeat, Task

logger = logging.getLogger(__name__)


def format_instant(ts: datetime) -> str:
    return ts.astimezone(UTC).isoformat().replace("+00:00", "Z")


def parse_instant(raw: Any) -> datetime:
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError(f"not an ISO-8601 instant: {raw!r}")
    ts = datetime.fromisoformat(raw.strip())
    if ts.tzinfo is None:
        ts = ts.astimezone()
    return ts.astimezone(UTC)


def dedupe_tags(tags: Iterable[str]) -> tuple[str, ...]:
    """Strip, drop empties, keep first occurrence. Case-sensitive."""
    seen: dict[str, None] = {}
    for t in tags:
        s = str(t).strip()
        if s and s not in seen:
            seen[s] = None
    return tuple(seen)


def reminder_to_dict(r: Reminder) -> dict[str, Any]:
    return {"id": r.id, "minutesBefore": r.minutes_before}


def _reminders_from_raw(raw: Any) -> tuple[Reminder, ...]:
    if not isinstance(raw, list):
        return ()
    out: list[Reminder] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        rid = item.get("id")
        minutes = item.get("minutesBefore")
        if not isinstance(rid, str) or not rid:
            continue
        if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0:
            continue
        out.append(Reminder(id=rid, minutes_before=minutes))
    return tuple(out)


def task_to_dict(task: Task) -> dict[str, Any]:
    d: dict[str, Any] = {
        "id": task.id,
        "title": task.title,
        "description": task.description,
    }
    if task.due_at is not None:
        d["dueAt"] = format_instant(task.due_at)
    d.update(
        {
            "priority": task.priority.value,
            "tags": list(task.tags),
            "list": task.list_name,
            "reminders": [reminder_to_dict(r) for r in task.reminders],
            "repeat": task.repeat.value,
            "completed": task.completed,
            "createdAt": format_instant(task.created_at),
            "updatedAt": format_instant(task.updated_at),
        }
    )
    return d


def task_from_dict(d: Any) -> Task:
    """
    Decode one task document.

    id/title/createdAt are required; everything else falls back to the
    defaults a fresh task would get. Raises ValueError on a broken document.
    """
    if not isinstance(d, dict):
        raise ValueError("task document must be a JSON object")

    task_id = d.get("id")
    title = d.get("title")
    if not isinstance(task_id, str) or not task_id:
        raise ValueError("task document has no id")
    if not isinstance(title, str):
        raise ValueError(f"task {task_id} has no title")

    created_at = parse_instant(d.get("createdAt"))
    updated_raw = d.get("updatedAt")
    updated_at = parse_instant(updated_raw) if updated_raw else created_at

    due_raw = d.get("dueAt")
    due_at = parse_instant(due_raw) if due_raw else None

    tags_raw = d.get("tags")
    tags = dedupe_tags(t for t in tags_raw if isinstance(t, str)) if isinstance(tags_raw, list) else ()

    return Task(
        id=task_id,
        title=title,
        created_at=created_at,
        updated_at=max(updated_at, created_at),
        description=str(d.get("description") or ""),
        due_at=due_at,
        priority=Priority.parse(d.get("priority"), Priority.MEDIUM) or Priority.MEDIUM,
        tags=tags,
        list_name=str(d.get("list") or "Personal"),
        reminders=_reminders_from_raw(d.get("reminders")),
        repeat=Repeat.parse(d.get("repeat"), Repeat.NONE) or Repeat.NONE,
        completed=bool(d.get("completed", False)),
    )


def dumps_tasks(tasks: Iterable[Task], *, indent: int | None = None) -> str:
    return json.dumps([task_to_dict(t) for t in tasks], ensure_ascii=False, indent=indent)


def loads_tasks(raw: str) -> list[Task]:
    """
    Strict decode of a task collection.

    Raises ValueError if the text is not JSON, is not an array, or any element
    is not a decodable task. Callers choose how to recover.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid JSON: {e}") from e
    if not isinstance(data, list):
        raise ValueError("task collection must be a JSON array")
    return [task_from_dict(item) for item in data]
