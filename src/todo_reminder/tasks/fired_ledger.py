# src/todo_reminder/tasks/fired_ledger.py

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING

from ..core.ports import KeyValueStore
from .task_codec import format_instant, parse_instant

if TYPE_CHECKING:
    from .task_scheduler import FireEvent

logger = logging.getLogger(__name__)


def ledger_key(event: FireEvent) -> str:
    """
    Identity of one crossing: task, reminder (or the due moment), threshold instant.

    The threshold is part of the key, so snoozing or rescheduling a task re-arms it.
    """
    return json.dumps([event.task_id, event.reminder_id or "due", format_instant(event.threshold)])


class FiredLedger:
    """
    Remembers which crossings already fired, to turn the scheduler's
    "fires on every tick inside the window" into exactly-once.

    Persisted (best-effort) through the key-value store, so a restart inside
    a firing window does not fire the same reminder again.
    """

    def __init__(self, kv: KeyValueStore | None = None, *, key: str = "todo_reminder_app_v1.fired") -> None:
        self._kv = kv
        self._key = key
        self._fired: set[str] = set()

    def __len__(self) -> int:
        return len(self._fired)

    def load(self) -> None:
        if self._kv is None:
            return
        try:
            raw = self._kv.get(self._key)
            data = json.loads(raw) if raw else []
        except Exception:
            logger.warning("Fired ledger is unreadable; starting empty.", exc_info=True)
            data = []
        self._fired = {str(k) for k in data} if isinstance(data, list) else set()
        logger.debug("Fired ledger loaded: %d entries", len(self._fired))

    def _flush(self) -> None:
        if self._kv is None:
            return
        try:
            self._kv.set(self._key, json.dumps(sorted(self._fired)))
        except Exception:
            logger.exception("Failed to persist fired ledger (%d entries)", len(self._fired))

    def seen(self, event: FireEvent) -> bool:
        return ledger_key(event) in self._fired

    def admit(self, events: Iterable[FireEvent]) -> list[FireEvent]:
        """Return only events not fired before, and record them."""
        fresh: list[FireEvent] = []
        for ev in events:
            k = ledger_key(ev)
            if k in self._fired:
                continue
            self._fired.add(k)
            fresh.append(ev)
        if fresh:
            self._flush()
        return fresh

    def prune(self, live_task_ids: Iterable[str], *, before: datetime | None = None) -> int:
        """
        Forget entries of tasks that no longer exist and, when `before` is given,
        entries whose threshold is older than it. Returns how many were dropped.
        """
        live = set(live_task_ids)
        stale: set[str] = set()
        for k in self._fired:
            task_id, threshold = _split_key(k)
            if task_id not in live:
                stale.add(k)
            elif before is not None and threshold is not None and threshold < before:
                stale.add(k)
        if stale:
            self._fired -= stale
            self._flush()
        return len(stale)


def _split_key(key: str) -> tuple[str, datetime | None]:
    try:
        task_id, _, threshold = json.loads(key)
        return str(task_id), parse_instant(threshold)
    except (ValueError, TypeError):
        return "", None
