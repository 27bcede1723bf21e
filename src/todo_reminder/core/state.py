# src/todo_reminder/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..notify.hub import NotificationHub
from ..tasks.task_models import FilterState
from ..tasks.task_scheduler import ReminderScheduler
from ..tasks.task_store import TaskStore
from .clock import Clock, utc_now


@dataclass
class AppState:
    settings: Any

    store: TaskStore
    scheduler: ReminderScheduler
    notifier: NotificationHub

    filters: FilterState = field(default_factory=FilterState)
    # Lists created by the user that may not have any task yet.
    extra_lists: list[str] = field(default_factory=list)

    # Serializes store access between the console thread and the scheduler thread.
    lock: threading.RLock = field(default_factory=threading.RLock)

    clock: Clock = utc_now
