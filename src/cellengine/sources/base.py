"""Event source contract and the push-based adapter."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cellengine.core.event import Event
    from cellengine.core.prediction import EventCallback

logger = logging.getLogger(__name__)


@runtime_checkable
class EventSource(Protocol):
    """Anything that emits events to registered async callbacks.

    Sources validate events before emitting them; the kernel does not
    re-validate.
    """

    def on_event(self, callback: EventCallback) -> None: ...

    def off_event(self, callback: EventCallback) -> None: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


class CallbackEventSource:
    """Push adapter: the host application calls ``emit`` for each capture."""

    def __init__(self) -> None:
        self._callbacks: list[EventCallback] = []
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def on_event(self, callback: EventCallback) -> None:
        self._callbacks.append(callback)

    def off_event(self, callback: EventCallback) -> None:
        self._callbacks = [cb for cb in self._callbacks if cb != callback]

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False

    async def emit(self, event: Event) -> None:
        """Deliver *event* to every callback in registration order.

        A failing callback is logged and does not stop delivery.
        Events emitted while stopped are dropped.
        """
        if not self._running:
            logger.debug("Source stopped, dropping event %s", event.id)
            return
        for callback in list(self._callbacks):
            try:
                await callback(event)
            except Exception:
                logger.error("Error in event source callback", exc_info=True)
