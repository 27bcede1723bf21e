# tests/test_task_filter.py

from __future__ import annotations

from datetime import UTC, timedelta

import pytest

from todo_reminder.tasks.task_filter import all_tags, apply_filters, bucket_counts, known_lists
from todo_reminder.tasks.task_models import FilterState, Priority, ShowMode, Task

from .conftest import T0

NOW = T0  # 2024-01-01 10:00 UTC


def make(task_id: str, *, due=None, priority=Priority.MEDIUM, completed=False, title=None, **kw) -> Task:
    return Task(
        id=task_id,
        title=title or task_id,
        created_at=T0 - timedelta(days=1),
        updated_at=T0 - timedelta(days=1),
        due_at=due,
        priority=priority,
        completed=completed,
        **kw,
    )


def view(tasks, **filters) -> list[str]:
    return [t.id for t in apply_filters(tasks, FilterState(**filters), now=NOW, tz=UTC)]


def test_sort_by_due_then_priority() -> None:
    t = NOW + timedelta(days=3)
    a = make("A", due=t + timedelta(minutes=10), priority=Priority.HIGH)
    b = make("B", due=t + timedelta(minutes=10), priority=Priority.MEDIUM)
    c = make("C", due=t + timedelta(minutes=5), priority=Priority.LOW)

    assert view([b, a, c], show=ShowMode.ALL) == ["C", "A", "B"]


def test_tasks_without_due_date_sort_last_by_priority() -> None:
    tasks = [
        make("none-low", priority=Priority.LOW),
        make("late", due=NOW + timedelta(days=30)),
        make("none-high", priority=Priority.HIGH),
    ]
    assert view(tasks, show=ShowMode.ALL) == ["late", "none-high", "none-low"]


def test_equal_keys_keep_collection_order() -> None:
    tasks = [make("x1"), make("x2"), make("x3")]
    assert view(tasks, show=ShowMode.ALL) == ["x1", "x2", "x3"]


def test_buckets() -> None:
    earlier_today = make("earlier-today", due=NOW - timedelta(hours=1))
    later_today = make("later-today", due=NOW + timedelta(hours=1))
    yesterday = make("yesterday", due=NOW - timedelta(days=1))
    next_week = make("next-week", due=NOW + timedelta(days=7))
    no_due = make("no-due")
    tasks = [earlier_today, later_today, yesterday, next_week, no_due]

    assert view(tasks, show=ShowMode.TODAY) == ["earlier-today", "later-today"]
    assert view(tasks, show=ShowMode.OVERDUE) == ["yesterday", "earlier-today"]
    assert view(tasks, show=ShowMode.UPCOMING) == ["next-week"]
    assert view(tasks, show=ShowMode.ALL) == ["yesterday", "earlier-today", "later-today", "next-week", "no-due"]
    assert view(tasks, show=ShowMode.COMPLETED) == []


@pytest.mark.parametrize("show", list(ShowMode))
def test_completed_tasks_only_in_completed_bucket(show: ShowMode) -> None:
    done = [
        make("done-today", due=NOW + timedelta(minutes=5), completed=True),
        make("done-overdue", due=NOW - timedelta(days=2), completed=True),
        make("done-upcoming", due=NOW + timedelta(days=2), completed=True),
        make("done-no-due", completed=True),
    ]
    open_task = make("open", due=NOW + timedelta(minutes=30))

    ids = view([*done, open_task], show=show)

    if show == ShowMode.COMPLETED:
        assert set(ids) == {t.id for t in done}
    else:
        assert not set(ids) & {t.id for t in done}


def test_list_tag_priority_and_query_are_and_combined() -> None:
    tasks = [
        make("w1", list_name="Work", tags=("urgent",), priority=Priority.HIGH, title="Ship release"),
        make("w2", list_name="Work", tags=("later",), priority=Priority.HIGH, title="Ship docs"),
        make("p1", list_name="Personal", tags=("urgent",), priority=Priority.HIGH, title="Ship gift"),
        make("w3", list_name="Work", tags=("urgent",), priority=Priority.LOW, title="Ship swag"),
    ]
    assert view(tasks, show=ShowMode.ALL, list_name="Work", tag="urgent", priority=Priority.HIGH) == ["w1"]
    assert view(tasks, show=ShowMode.ALL, priority="High", query="ship") == ["w1", "w2", "p1"]


def test_query_is_case_insensitive_over_title_and_description() -> None:
    tasks = [
        make("title-hit", title="Pay RENT"),
        make("desc-hit", title="Bills", description="rent for March"),
        make("miss", title="Groceries"),
    ]
    assert view(tasks, show=ShowMode.ALL, query="Rent") == ["title-hit", "desc-hit"]


def test_tag_filter_is_case_sensitive() -> None:
    tasks = [make("a", tags=("Home",)), make("b", tags=("home",))]
    assert view(tasks, show=ShowMode.ALL, tag="home") == ["b"]


def test_bucket_counts() -> None:
    tasks = [
        make("today", due=NOW + timedelta(hours=1)),
        make("overdue", due=NOW - timedelta(days=1)),
        make("upcoming", due=NOW + timedelta(days=3)),
        make("done", completed=True),
        make("no-due"),
    ]
    counts = bucket_counts(tasks, now=NOW, tz=UTC)
    assert counts == {
        ShowMode.TODAY: 1,
        ShowMode.UPCOMING: 1,
        ShowMode.OVERDUE: 1,
        ShowMode.ALL: 4,
        ShowMode.COMPLETED: 1,
    }


def test_tag_and_list_catalogs() -> None:
    tasks = [
        make("a", tags=("zeta", "alpha"), list_name="Errands"),
        make("b", tags=("alpha",), list_name="Work"),
    ]
    assert all_tags(tasks) == ["alpha", "zeta"]
    assert known_lists(tasks) == ["Errands", "Work", "Personal"]
