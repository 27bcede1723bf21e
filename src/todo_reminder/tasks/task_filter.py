# src/todo_reminder/tasks/task_filter.py

"""
Filter & sort engine.

apply_filters() is a pure function of (tasks, filters, now): list/tag/priority/query
narrow the set (AND-combined), then the show bucket is applied last. Buckets are
mutually exclusive with "completed": every other bucket drops completed tasks.

Order: due date ascending (no due date last), then High < Medium < Low.
Python's sort is stable, so remaining ties keep collection order.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from datetime import datetime, tzinfo

from ..core.clock import is_overdue, is_today, utc_now
from .task_models import ALL, FilterState, ShowMode, Task


def _matches_query(task: Task, query: str) -> bool:
    q = query.lower()
    return q in task.title.lower() or q in (task.description or "").lower()


def matches_filters(task: Task, filters: FilterState) -> bool:
    """List/tag/priority/query checks (everything except the show bucket)."""
    if filters.list_name != ALL and task.list_name != filters.list_name:
        return False
    if filters.tag != ALL and filters.tag not in task.tags:
        return False
    if filters.priority != ALL and task.priority != filters.priority:
        return False
    if filters.query and not _matches_query(task, filters.query):
        return False
    return True


def in_bucket(task: Task, show: ShowMode, *, now: datetime, tz: tzinfo | None = None) -> bool:
    if show == ShowMode.COMPLETED:
        return task.completed
    if task.completed:
        return False

    if show == ShowMode.TODAY:
        # A task due earlier today is both "today" and "overdue".
        return is_today(task.due_at, now=now, tz=tz)
    if show == ShowMode.OVERDUE:
        return is_overdue(task.due_at, now=now)
    if show == ShowMode.UPCOMING:
        return (
            task.due_at is not None
            and not is_overdue(task.due_at, now=now)
            and not is_today(task.due_at, now=now, tz=tz)
        )
    return True


def sort_key(task: Task) -> tuple[float, int]:
    due = task.due_at.timestamp() if task.due_at is not None else math.inf
    return (due, task.priority.rank)


def sort_tasks(tasks: Iterable[Task]) -> list[Task]:
    return sorted(tasks, key=sort_key)


def apply_filters(
    tasks: Iterable[Task],
    filters: FilterState,
    *,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[Task]:
    now = now if now is not None else utc_now()
    show = ShowMode(filters.show)
    visible = (t for t in tasks if matches_filters(t, filters) and in_bucket(t, show, now=now, tz=tz))
    return sort_tasks(visible)


def bucket_counts(
    tasks: Sequence[Task],
    *,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> dict[ShowMode, int]:
    """Per-bucket totals over the whole collection (ignores list/tag/priority/query)."""
    now = now if now is not None else utc_now()
    return {mode: sum(1 for t in tasks if in_bucket(t, mode, now=now, tz=tz)) for mode in ShowMode}


def all_tags(tasks: Iterable[Task]) -> list[str]:
    return sorted({tag for t in tasks for tag in t.tags})


def known_lists(tasks: Iterable[Task], defaults: Iterable[str] = ("Personal", "Work")) -> list[str]:
    """List names used by tasks, then the defaults; first-seen order, no duplicates."""
    seen: dict[str, None] = {}
    for t in tasks:
        seen.setdefault(t.list_name, None)
    for name in defaults:
        seen.setdefault(name, None)
    return list(seen)
