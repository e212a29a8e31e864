"""Observer-style event source for live video streams."""

from __future__ import annotations

import inspect
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Set, Union

from rpi_cam.core.logging_utils import get_module_logger


class LiveEvent(Enum):
    STARTED = "started"
    FRAME = "frame"
    CLOSED = "closed"


# Callbacks receive (event, payload); payload is the chunk for FRAME, else None
LiveObserver = Callable[[LiveEvent, Optional[bytes]], Union[None, Awaitable[None]]]


class LiveStream:
    """Fan out ``started``/``frame``/``closed`` events to registered observers."""

    def __init__(self) -> None:
        self.logger = get_module_logger("LiveStream")
        self._observers: list[LiveObserver] = []
        self._event_filters: dict[LiveObserver, Optional[Set[LiveEvent]]] = {}

    def add_observer(self, observer: LiveObserver, events: Optional[Set[LiveEvent]] = None) -> None:
        """Register ``observer``; with ``events`` it only receives those events."""
        if observer not in self._observers:
            self._observers.append(observer)
            self._event_filters[observer] = set(events) if events else None

    def remove_observer(self, observer: LiveObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)
            self._event_filters.pop(observer, None)

    def on(self, event: Union[LiveEvent, str], callback: Callable[..., Any]) -> LiveObserver:
        """Subscribe ``callback`` to one event; FRAME callbacks get the chunk.

        Returns the registered observer so it can be removed later.
        """
        target = LiveEvent(event)

        def observer(evt: LiveEvent, payload: Optional[bytes]):
            if target is LiveEvent.FRAME:
                return callback(payload)
            return callback()

        self.add_observer(observer, {target})
        return observer

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    async def emit(self, event: LiveEvent, payload: Optional[bytes] = None) -> None:
        for observer in list(self._observers):
            event_filter = self._event_filters.get(observer)
            if event_filter is not None and event not in event_filter:
                continue
            try:
                result = observer(event, payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.logger.error(
                    "Observer %s failed on %s: %s",
                    getattr(observer, "__name__", repr(observer)),
                    event.value,
                    e,
                )


__all__ = ["LiveEvent", "LiveObserver", "LiveStream"]
