"""Bounded buffer of the most recent events."""

from __future__ import annotations

from collections import deque

from cellengine.core.event import Event


class SequenceWindow:
    """FIFO buffer holding the live matching context.

    Appending beyond ``max_length`` evicts the oldest event.
    ``snapshot`` hands out an immutable copy so scoring never sees
    the buffer change underneath it.
    """

    def __init__(self, max_length: int = 10) -> None:
        if max_length < 1:
            raise ValueError("max_length must be positive")
        self._max_length = max_length
        self._events: deque[Event] = deque(maxlen=max_length)

    @property
    def max_length(self) -> int:
        return self._max_length

    def add(self, event: Event) -> None:
        self._events.append(event)

    def snapshot(self) -> tuple[Event, ...]:
        return tuple(self._events)

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)


def average_timestamp(events: tuple[Event, ...]) -> float | None:
    """Mean timestamp of *events*, or None when empty."""
    if not events:
        return None
    return sum(e.timestamp for e in events) / len(events)
