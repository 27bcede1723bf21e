# src/todo_reminder/notify/hub.py

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..core.ports import NotificationSink
from ..tasks.task_scheduler import FireEvent

logger = logging.getLogger(__name__)


class NotificationHub:
    """
    Fan-out of fire events to every configured channel.

    A failing channel is logged and skipped; it never affects the others
    or the scheduler.
    """

    def __init__(self, sinks: Iterable[NotificationSink] = ()) -> None:
        self._sinks: list[NotificationSink] = list(sinks)

    @property
    def sinks(self) -> list[NotificationSink]:
        return list(self._sinks)

    def add(self, sink: NotificationSink) -> None:
        self._sinks.append(sink)

    async def start(self) -> None:
        """Run optional async start() hooks; a sink that fails to start is dropped."""
        started: list[NotificationSink] = []
        for sink in self._sinks:
            start = getattr(sink, "start", None)
            if start is None:
                started.append(sink)
                continue
            try:
                ok = await start()
            except Exception:
                logger.exception("Notification sink %s failed to start; skipping it.", type(sink).__name__)
                continue
            if ok is False:
                logger.warning("Notification sink %s is not available; skipping it.", type(sink).__name__)
                continue
            started.append(sink)
        self._sinks = started

    async def on_fire(self, event: FireEvent) -> None:
        for sink in self._sinks:
            try:
                await sink.on_fire(event)
            except Exception:
                logger.exception("Notification sink %s failed for task %s", type(sink).__name__, event.task_id)

    async def close(self) -> None:
        for sink in self._sinks:
            try:
                await sink.close()
            except Exception:
                logger.debug("Notification sink %s close failed.", type(sink).__name__, exc_info=True)
