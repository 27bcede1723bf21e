# src/todo_reminder/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

ALL = "all"


class Priority(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @property
    def rank(self) -> int:
        """Sort rank: High first."""
        return _PRIORITY_RANK[self]

    @classmethod
    def parse(cls, raw: str | None, default: Priority | None = None) -> Priority | None:
        if not raw:
            return default
        s = raw.strip().lower()
        for p in cls:
            if p.value.lower() == s or p.value[0].lower() == s:
                return p
        return default


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class Repeat(StrEnum):
    """
    Recurrence policy.

    Stored and round-tripped, but nothing regenerates recurring instances.
    """

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def parse(cls, raw: str | None, default: Repeat | None = None) -> Repeat | None:
        if not raw:
            return default
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return default


class ShowMode(StrEnum):
    """Mutually exclusive top-level filter bucket."""

    TODAY = "today"
    UPCOMING = "upcoming"
    OVERDUE = "overdue"
    ALL = "all"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class Reminder:
    id: str
    minutes_before: int


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    created_at: datetime
    updated_at: datetime

    description: str = ""
    due_at: datetime | None = None
    priority: Priority = Priority.MEDIUM
    tags: tuple[str, ...] = ()
    list_name: str = "Personal"
    reminders: tuple[Reminder, ...] = ()
    repeat: Repeat = Repeat.NONE
    completed: bool = False


@dataclass(frozen=True, slots=True)
class FilterState:
    """
    What the UI currently asks to see.

    list_name/tag/priority use ALL ("all") as the wildcard.
    """

    query: str = ""
    list_name: str = ALL
    tag: str = ALL
    priority: Priority | str = ALL
    show: ShowMode = ShowMode.TODAY


# Fields a caller may change through TaskStore.update(); id/created_at are immutable.
MUTABLE_FIELDS: frozenset[str] = frozenset(
    {
        "title",
        "description",
        "due_at",
        "priority",
        "tags",
        "list_name",
        "reminders",
        "repeat",
        "completed",
    }
)


@dataclass(frozen=True, slots=True)
class TaskDraft:
    """Partial task as produced by a form: None means "not provided"."""

    id: str | None = None
    title: str | None = None
    description: str | None = None
    due_at: datetime | None = None
    priority: Priority | None = None
    tags: tuple[str, ...] | None = None
    list_name: str | None = None
    reminders: tuple[Reminder, ...] | None = None
    repeat: Repeat | None = None
    clear_due: bool = False

    def changes(self) -> dict[str, object]:
        """Fields explicitly provided, keyed by Task attribute name."""
        out: dict[str, object] = {}
        for name in ("title", "description", "due_at", "priority", "tags", "list_name", "reminders", "repeat"):
            val = getattr(self, name)
            if val is not None:
                out[name] = val
        if self.clear_due:
            out["due_at"] = None
        return out
