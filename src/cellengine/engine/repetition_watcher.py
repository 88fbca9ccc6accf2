"""Repetition watcher: proposes automation for recurring transitions.

Every adjacent pair of observed events is counted once, keyed by the
pair of signatures. Self-transitions (A -> A) are ignored. A pair that
reaches the threshold is suggested, then held back for a cooldown.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cellengine.core.prediction import AutomationSuggestion
from cellengine.utils.timeutils import MS_PER_HOUR, now_ms

if TYPE_CHECKING:
    from cellengine.core.event import Event
    from cellengine.utils.timeutils import Clock

logger = logging.getLogger(__name__)

TransitionKey = tuple[str, str]


@dataclass
class TransitionCounter:
    """Occurrence bookkeeping for one signature transition.

    Attributes:
        pair: (signature_a, signature_b)
        count: Times the transition was observed
        last_suggested_at: Epoch ms of the last suggestion, None if never
    """

    pair: TransitionKey
    count: int = 0
    last_suggested_at: int | None = None


class RepetitionWatcher:
    """Counts signature transitions and emits automation suggestions."""

    def __init__(
        self,
        threshold: int = 3,
        cooldown_ms: int = MS_PER_HOUR,
        clock: Clock = now_ms,
    ) -> None:
        self._threshold = threshold
        self._cooldown_ms = cooldown_ms
        self._clock = clock
        self._counters: dict[TransitionKey, TransitionCounter] = {}
        self._previous: Event | None = None

    @property
    def counters(self) -> dict[TransitionKey, TransitionCounter]:
        return dict(self._counters)

    def observe(self, event: Event) -> AutomationSuggestion | None:
        """Count the transition from the previously observed event to *event*."""
        previous, self._previous = self._previous, event
        if previous is None:
            return None
        return self.count_transition(previous, event)

    def count_transition(self, current: Event, next_event: Event) -> AutomationSuggestion | None:
        """Count one occurrence of ``current -> next_event``.

        Returns:
            A suggestion when the pair crosses the threshold outside its cooldown
        """
        if current.signature == next_event.signature:
            return None

        key = (current.signature, next_event.signature)
        counter = self._counters.get(key)
        if counter is None:
            counter = TransitionCounter(pair=key)
            self._counters[key] = counter
        counter.count += 1
        logger.debug("Transition %s -> %s seen %d times", key[0], key[1], counter.count)

        if counter.count < self._threshold:
            return None

        now = self._clock()
        if (
            counter.last_suggested_at is not None
            and now - counter.last_suggested_at <= self._cooldown_ms
        ):
            return None

        counter.last_suggested_at = now
        logger.info(
            "Suggesting automation for %s -> %s (%d occurrences)",
            key[0],
            key[1],
            counter.count,
        )
        return AutomationSuggestion(current=current, next=next_event, count=counter.count)

    def scan(self, events: Sequence[Event]) -> list[AutomationSuggestion]:
        """Count every adjacent pair of *events* (batch mode)."""
        suggestions: list[AutomationSuggestion] = []
        for current, next_event in zip(events, events[1:]):
            suggestion = self.count_transition(current, next_event)
            if suggestion is not None:
                suggestions.append(suggestion)
        return suggestions

    def reset(self) -> None:
        self._counters.clear()
        self._previous = None
