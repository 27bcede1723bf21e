# src/todo_reminder/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (storage/store/scheduler/notifiers).
"""

from __future__ import annotations

import logging
import threading

from ..config import get_settings
from ..core.clock import Clock, utc_now
from ..core.ports import KeyValueStore
from ..core.state import AppState
from ..notify.desktop import DesktopNotifier
from ..notify.hub import NotificationHub
from ..notify.toast import Emitter, ToastSink
from ..storage.kv_store import SqliteKeyValueStore
from ..tasks.fired_ledger import FiredLedger
from ..tasks.task_scheduler import ReminderScheduler
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.store_db_path.parent.mkdir(parents=True, exist_ok=True)


def build_notifier(settings, *, emit: Emitter = print, clock: Clock = utc_now) -> NotificationHub:
    hub = NotificationHub([ToastSink(emit, ttl_seconds=settings.toast_seconds, clock=clock)])

    if getattr(settings, "desktop_notifications", False):
        desktop = DesktopNotifier(enabled=True)
        if desktop.enabled:
            hub.add(desktop)

    if getattr(settings, "matrix_enabled", False):
        # Imported lazily: matrix-nio is only needed when this channel is on.
        from ..notify.matrix_notifier import MatrixNotifier

        hub.add(MatrixNotifier.from_settings(settings))

    return hub


def create_initial_state(
    *,
    settings=None,
    kv: KeyValueStore | None = None,
    clock: Clock = utc_now,
    emit: Emitter = print,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings/storage/clock injectable makes the app easier to test and
    avoids hidden global config reads. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if kv is None:
        _ensure_local_dirs(settings)
        kv = SqliteKeyValueStore(settings.store_db_path)

    store = TaskStore(kv, storage_key=settings.storage_key, clock=clock)
    store.load()

    ledger: FiredLedger | None = None
    if settings.fire_dedupe:
        ledger = FiredLedger(kv, key=f"{settings.storage_key}.fired")
        ledger.load()

    lock = threading.RLock()
    scheduler = ReminderScheduler(
        store,
        clock=clock,
        window_seconds=settings.fire_window_seconds,
        ledger=ledger,
        lock=lock,
    )

    return AppState(
        settings=settings,
        store=store,
        scheduler=scheduler,
        notifier=build_notifier(settings, emit=emit, clock=clock),
        lock=lock,
        clock=clock,
    )
