# src/todo_reminder/notify/toast.py

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..core.clock import Clock, utc_now
from ..tasks.task_scheduler import FireEvent

logger = logging.getLogger(__name__)

Emitter = Callable[[str], None]

TOAST_SECONDS = 4.0


@dataclass(slots=True, frozen=True)
class Toast:
    title: str
    body: str
    expires_at: datetime


def render_toast(title: str, body: str) -> str:
    return f"[!] {title}" + (f" | {body}" if body else "")


class ToastSink:
    """
    Transient in-app notification.

    Each fire event is printed once through `emit` and stays in active()
    for `ttl_seconds`, after which it is dismissed automatically.
    """

    def __init__(
        self,
        emit: Emitter = print,
        *,
        ttl_seconds: float = TOAST_SECONDS,
        clock: Clock = utc_now,
    ) -> None:
        self._emit = emit
        self._ttl = timedelta(seconds=max(0.0, float(ttl_seconds)))
        self._clock = clock
        self._active: list[Toast] = []
        self._mu = threading.Lock()

    def show(self, title: str, body: str = "") -> Toast:
        toast = Toast(title=title, body=body, expires_at=self._clock() + self._ttl)
        with self._mu:
            self._prune_locked()
            self._active.append(toast)
        try:
            self._emit(render_toast(title, body))
        except Exception:
            logger.debug("Toast emit failed.", exc_info=True)
        return toast

    def active(self) -> list[Toast]:
        with self._mu:
            self._prune_locked()
            return list(self._active)

    def _prune_locked(self) -> None:
        now = self._clock()
        self._active = [t for t in self._active if t.expires_at > now]

    async def on_fire(self, event: FireEvent) -> None:
        self.show(event.title, event.body)

    async def close(self) -> None:
        with self._mu:
            self._active.clear()
