"""Transient outputs of the kernel: predictions and automation suggestions."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from cellengine.core.action import Action
from cellengine.core.event import Event


@dataclass(frozen=True)
class Prediction:
    """A predicted next action.

    Attributes:
        confidence: Score in [0, 1]
        action: The action expected next
        context: Human-readable description of what triggered it
    """

    confidence: float
    action: Action
    context: str = ""


@dataclass(frozen=True)
class AutomationSuggestion:
    """A repeated transition worth turning into a workflow.

    Attributes:
        current: First event of the transition
        next: Event that followed it
        count: Times the transition has been observed
    """

    current: Event
    next: Event
    count: int

    @property
    def pair(self) -> tuple[str, str]:
        return (self.current.signature, self.next.signature)


PredictionCallback = Callable[[Prediction], object]
SuggestionCallback = Callable[[AutomationSuggestion], object]
EventCallback = Callable[[Event], Awaitable[None]]
