# src/todo_reminder/tasks/task_api.py

"""
High-level helpers used by the UI surface (console commands).

They turn loose user input (strings) into store/filter calls and keep
AppState.lock held around every store access.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import datetime, timedelta

from ..core.clock import Clock, ensure_aware, utc_now
from ..core.state import AppState
from .task_codec import dedupe_tags
from .task_filter import apply_filters, known_lists
from .task_models import Priority, Reminder, Repeat, Task, TaskDraft
from .task_store import new_id

logger = logging.getLogger(__name__)

_RELATIVE_RE = re.compile(r"^\+(\d+)\s*([mhd])$", re.IGNORECASE)
_UNIT_MINUTES = {"m": 1, "h": 60, "d": 60 * 24}

OPTION_KEYS = {
    "due": "due",
    "p": "priority",
    "prio": "priority",
    "priority": "priority",
    "tags": "tags",
    "tag": "tags",
    "list": "list",
    "remind": "remind",
    "reminders": "remind",
    "repeat": "repeat",
    "desc": "desc",
    "description": "desc",
    "title": "title",
}


def parse_due(raw: str, *, now: datetime | None = None) -> datetime | None:
    """
    "+15m" / "+2h" / "+1d" relative to now, or an ISO-8601 date/time.

    Naive times are local. "none"/"-" clear the due date (returns None).
    Raises ValueError for anything else.
    """
    s = (raw or "").strip()
    if not s or s.lower() in ("none", "-"):
        return None

    m = _RELATIVE_RE.match(s)
    if m:
        now = now if now is not None else utc_now()
        return now + timedelta(minutes=int(m.group(1)) * _UNIT_MINUTES[m.group(2).lower()])

    return ensure_aware(datetime.fromisoformat(s))


def parse_reminders(raw: str, *, id_factory=new_id) -> tuple[Reminder, ...]:
    """Parse "15,60" into two reminders; non-numbers and non-positive values are skipped."""
    out: list[Reminder] = []
    for part in re.split(r"[,\s]+", raw or ""):
        if not part:
            continue
        try:
            minutes = int(part)
        except ValueError:
            continue
        if minutes > 0:
            out.append(Reminder(id=id_factory(), minutes_before=minutes))
    return tuple(out)


def parse_tags(raw: str) -> tuple[str, ...]:
    return dedupe_tags(t.lstrip("#") for t in re.split(r"[,\s]+", raw or ""))


def split_options(tokens: Iterable[str]) -> tuple[str, dict[str, str]]:
    """
    Separate free words from key=value options.

    Returns (joined free words, {canonical key: value}). Tokens with an unknown
    key are kept as words, so "a=b" can still appear in a title.
    """
    words: list[str] = []
    opts: dict[str, str] = {}
    for tok in tokens:
        key, sep, value = tok.partition("=")
        canon = OPTION_KEYS.get(key.lower()) if sep else None
        if canon is None:
            words.append(tok)
            continue
        opts[canon] = value
    return " ".join(words).strip(), opts


def draft_from_options(
    title: str | None,
    opts: dict[str, str],
    *,
    task_id: str | None = None,
    clock: Clock = utc_now,
) -> TaskDraft:
    """Build a TaskDraft; raises ValueError on an unparseable due date or priority."""
    due_at = None
    clear_due = False
    if "due" in opts:
        due_at = parse_due(opts["due"], now=clock())
        clear_due = due_at is None

    priority = None
    if "priority" in opts:
        priority = Priority.parse(opts["priority"])
        if priority is None:
            raise ValueError(f"unknown priority: {opts['priority']!r} (use High, Medium or Low)")

    repeat = None
    if "repeat" in opts:
        repeat = Repeat.parse(opts["repeat"])
        if repeat is None:
            raise ValueError(f"unknown repeat: {opts['repeat']!r} (use none, daily, weekly or monthly)")

    return TaskDraft(
        id=task_id,
        title=opts.get("title", title),
        description=opts.get("desc"),
        due_at=due_at,
        priority=priority,
        tags=parse_tags(opts["tags"]) if "tags" in opts else None,
        list_name=(opts.get("list") or None),
        reminders=parse_reminders(opts["remind"]) if "remind" in opts else None,
        repeat=repeat,
        clear_due=clear_due,
    )


def resolve_task(state: AppState, ref: str) -> Task | None:
    """Find a task by full id or by a unique id prefix."""
    ref = (ref or "").strip()
    if not ref:
        return None
    with state.lock:
        exact = state.store.get(ref)
        if exact is not None:
            return exact
        hits = [t for t in state.store.list_all() if t.id.startswith(ref)]
    if len(hits) == 1:
        return hits[0]
    if len(hits) > 1:
        logger.debug("Ambiguous task ref %r (%d matches)", ref, len(hits))
    return None


def visible_tasks(state: AppState, *, now: datetime | None = None) -> list[Task]:
    with state.lock:
        tasks = state.store.list_all()
    return apply_filters(tasks, state.filters, now=now)


def all_lists(state: AppState) -> list[str]:
    defaults = list(getattr(state.settings, "default_lists", ["Personal", "Work"])) + state.extra_lists
    with state.lock:
        return known_lists(state.store.list_all(), defaults)


def add_list(state: AppState, name: str) -> bool:
    """Register an empty list so it can be selected before any task uses it."""
    name = (name or "").strip()
    if not name or name in all_lists(state):
        return False
    state.extra_lists.append(name)
    logger.info("List added: %s", name)
    return True
