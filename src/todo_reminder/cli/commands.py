# src/todo_reminder/cli/commands.py

from __future__ import annotations

import contextlib
import dataclasses
import inspect
import logging
import shlex
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import cast

from ..core.clock import format_datetime, is_overdue, is_soon, utc_now
from ..core.state import AppState
from ..tasks.task_api import (
    add_list,
    all_lists,
    draft_from_options,
    resolve_task,
    split_options,
    visible_tasks,
)
from ..tasks.task_filter import all_tags, bucket_counts
from ..tasks.task_models import ALL, FilterState, Priority, ShowMode, Task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

SHORT_ID = 8


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            # Unbalanced quotes: fall back to plain whitespace splitting.
            parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _now(state: AppState) -> datetime:
    return state.clock()


def render_task(task: Task, *, now: datetime | None = None) -> str:
    now = now if now is not None else utc_now()
    mark = "x" if task.completed else " "
    flag = ""
    if not task.completed and is_overdue(task.due_at, now=now):
        flag = " OVERDUE"
    elif not task.completed and is_soon(task.due_at, now=now):
        flag = " soon"
    parts = [f"[{mark}] {task.id[:SHORT_ID]} {task.title} ({task.priority.value}, {task.list_name})"]
    parts.append(f"due: {format_datetime(task.due_at)}{flag}")
    if task.tags:
        parts.append(" ".join(f"#{t}" for t in task.tags))
    if task.reminders:
        parts.append(", ".join(f"{r.minutes_before}m" for r in task.reminders) + " before")
    if task.repeat.value != "none":
        parts.append(f"repeat: {task.repeat.value}")
    return " | ".join(parts)


def _missing_task(ref: str) -> str:
    return f"No task matches '{ref}' (use a longer id prefix if it is ambiguous)."


def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add Pay rent due=+14m p=High tags=home,bills list=Personal remind=15,60
    """
    title, opts = split_options(args)
    try:
        draft = draft_from_options(title, opts, clock=state.clock)
    except ValueError as e:
        return f"Not added: {e}"

    with state.lock:
        task = state.store.upsert(draft)
    if task is None:
        return "Not added: the title is empty."
    return f"Added {task.id[:SHORT_ID]}: {task.title}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit <id> [new title words] key=value ...
    """
    if not args:
        return "Usage: /edit <id> [title words] [due=..] [p=..] [tags=..] [list=..] [remind=..] [repeat=..] [desc=..]"
    task = resolve_task(state, args[0])
    if task is None:
        return _missing_task(args[0])

    title, opts = split_options(args[1:])
    try:
        draft = draft_from_options(title or None, opts, task_id=task.id, clock=state.clock)
    except ValueError as e:
        return f"Not updated: {e}"

    changes = draft.changes()
    if not changes:
        return "Nothing to change."
    if "title" in changes and not str(changes["title"]).strip():
        return "Not updated: the title is empty."
    with state.lock:
        updated = state.store.update(task.id, **changes)
    if updated is None:
        return _missing_task(args[0])
    return f"Updated {updated.id[:SHORT_ID]}: {', '.join(sorted(changes))}"


def _by_ref(action: str):
    def handler(state: AppState, args: list[str]) -> str:
        if not args:
            return f"Usage: /{action} <id>"
        task = resolve_task(state, args[0])
        if task is None:
            return _missing_task(args[0])
        with state.lock:
            if action == "done":
                res = state.store.toggle_complete(task.id)
                return f"{'Completed' if res and res.completed else 'Reopened'}: {task.title}"
            if action == "del":
                state.store.delete(task.id)
                return f"Deleted: {task.title}"
            copy = state.store.duplicate(task.id)
            return f"Duplicated as {copy.id[:SHORT_ID]}: {copy.title}" if copy else _missing_task(args[0])

    return handler


def cmd_snooze(state: AppState, args: list[str]) -> str:
    """
    /snooze <id> [minutes]   (default 15)
    """
    if not args:
        return "Usage: /snooze <id> [minutes]"
    task = resolve_task(state, args[0])
    if task is None:
        return _missing_task(args[0])
    try:
        minutes = int(args[1]) if len(args) > 1 else 15
    except ValueError:
        return "Minutes must be a whole number."
    with state.lock:
        res = state.store.snooze(task.id, minutes)
    if res is None:
        return _missing_task(args[0])
    return f"Snoozed {task.title} to {format_datetime(res.due_at)}"


def cmd_ls(state: AppState, args: list[str]) -> str:
    """
    /ls [today|upcoming|overdue|all|completed]
    """
    if args:
        try:
            state.filters = dataclasses.replace(state.filters, show=ShowMode(args[0].lower()))
        except ValueError:
            return f"Unknown bucket '{args[0]}'. Use: {', '.join(m.value for m in ShowMode)}."

    now = _now(state)
    tasks = visible_tasks(state, now=now)
    header = f"{state.filters.show.value.capitalize()} ({len(tasks)})"
    if not tasks:
        return f"{header}\n  Nothing here."
    return "\n".join([header, *(f"  {render_task(t, now=now)}" for t in tasks)])


def cmd_filter(state: AppState, args: list[str]) -> str:
    """
    /filter                 -> show current filters
    /filter reset           -> clear list/tag/priority/query (keeps the bucket)
    /filter q=.. list=.. tag=.. p=.. show=..
    """
    f = state.filters
    if args and args[0].lower() == "reset":
        state.filters = FilterState(show=f.show)
        return "Filters cleared."

    for tok in args:
        key, sep, value = tok.partition("=")
        if not sep:
            return f"Expected key=value, got '{tok}'."
        key = key.lower()
        if key in ("q", "query"):
            f = dataclasses.replace(f, query=value)
        elif key == "list":
            f = dataclasses.replace(f, list_name=value or ALL)
        elif key == "tag":
            f = dataclasses.replace(f, tag=value.lstrip("#") or ALL)
        elif key in ("p", "priority"):
            if not value or value.lower() == ALL:
                f = dataclasses.replace(f, priority=ALL)
            else:
                p = Priority.parse(value)
                if p is None:
                    return f"Unknown priority '{value}'."
                f = dataclasses.replace(f, priority=p)
        elif key == "show":
            try:
                f = dataclasses.replace(f, show=ShowMode(value.lower()))
            except ValueError:
                return f"Unknown bucket '{value}'."
        else:
            return f"Unknown filter '{key}'."

    state.filters = f
    return (
        "Filters:\n"
        f"  query: {f.query or '-'}\n"
        f"  list: {f.list_name}\n"
        f"  tag: {f.tag}\n"
        f"  priority: {f.priority}\n"
        f"  show: {f.show.value}"
    )


def cmd_lists(state: AppState, args: list[str]) -> str:
    """
    /lists            -> show lists
    /lists add <name> -> add an empty list
    """
    if len(args) >= 2 and args[0].lower() == "add":
        name = " ".join(args[1:])
        return f"List added: {name}" if add_list(state, name) else f"List '{name}' already exists."
    return "Lists: " + ", ".join(all_lists(state))


def cmd_tags(state: AppState, args: list[str]) -> str:
    with state.lock:
        tags = all_tags(state.store.list_all())
    return "Tags: " + (", ".join(f"#{t}" for t in tags) if tags else "(none)")


def cmd_export(state: AppState, args: list[str]) -> str:
    path = Path(args[0]) if args else Path(f"tasks_{_now(state).date().isoformat()}.json")
    try:
        with state.lock:
            out = state.store.export_file(path)
    except OSError as e:
        logger.warning("Export to %s failed: %s", path, e)
        return f"Export failed: {e}"
    return f"Exported to {out}"


def cmd_import(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /import <file.json>"
    if emit:
        with contextlib.suppress(Exception):
            emit(f"Importing {args[0]} (replaces all tasks)...")
    with state.lock:
        ok = state.store.import_file(args[0])
        total = state.store.count_tasks()
    return f"Imported {total} tasks." if ok else "Import ignored: the file is not a task export."


def cmd_status(state: AppState, args: list[str]) -> str:
    with state.lock:
        tasks = state.store.list_all()
    counts = bucket_counts(tasks, now=_now(state))
    sinks = ", ".join(type(s).__name__ for s in state.notifier.sinks) or "none"
    return (
        "Status:\n"
        + "".join(f"  {mode.value}: {counts[mode]}\n" for mode in ShowMode)
        + f"  notifications: {sinks}"
    )


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("add", cmd_add, help_text="Add a task: /add <title> [due=+15m] [p=High] [tags=a,b] [remind=15,60].")
registry.register("edit", cmd_edit, help_text="Change a task: /edit <id> [title] [key=value ...].")
registry.register("done", _by_ref("done"), help_text="Toggle completed: /done <id>.", aliases=["toggle"])
registry.register("del", _by_ref("del"), help_text="Delete a task: /del <id>.", aliases=["rm"])
registry.register("dup", _by_ref("dup"), help_text="Duplicate a task: /dup <id>.")
registry.register("snooze", cmd_snooze, help_text="Push the due date: /snooze <id> [minutes].")
registry.register("ls", cmd_ls, help_text="List tasks: /ls [today|upcoming|overdue|all|completed].", aliases=["show"])
registry.register("filter", cmd_filter, help_text="Filter: /filter q=.. list=.. tag=.. p=.. | /filter reset.")
registry.register("lists", cmd_lists, help_text="Show lists or add one: /lists add <name>.")
registry.register("tags", cmd_tags, help_text="Show all tags.")
registry.register("export", cmd_export, help_text="Export tasks to JSON: /export [path].")
registry.register("import", cmd_import, help_text="Replace all tasks from a JSON export: /import <path>.")
registry.register("status", cmd_status, help_text="Show bucket counts and notification channels.")
