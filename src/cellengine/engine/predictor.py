"""Predictor: next-action prediction from the live sequence window.

Two stages:
1. Exact n-gram match: the longest suffix of the window that prefixes a
   stored, strictly longer pattern. Candidates are scored with
   ``calculate_confidence`` and must reach ``min_confidence``.
2. Fuzzy fallback: when no n-gram qualifies, events in the log similar
   to the last window event vote for whatever followed them.

Equal-confidence candidates are ordered lexicographically by pattern
key, so prediction is deterministic.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cellengine.core.event import MalformedSignatureError, split_signature
from cellengine.core.prediction import Prediction
from cellengine.engine.confidence import calculate_confidence, recency_factor
from cellengine.engine.sequence_window import average_timestamp
from cellengine.engine.similarity import signature_similarity
from cellengine.utils.timeutils import now_ms

if TYPE_CHECKING:
    from cellengine.core.config import KernelConfig
    from cellengine.core.event import Event
    from cellengine.engine.action_catalog import ActionCatalog
    from cellengine.storage.base import KernelStorage, PatternKey
    from cellengine.utils.timeutils import Clock

logger = logging.getLogger(__name__)

MIN_WINDOW_LENGTH = 2


@dataclass(frozen=True)
class Continuation:
    """A stored pattern that extends the current context.

    Attributes:
        pattern: The full stored n-gram
        next_id: Event id immediately after the matched prefix
        frequency: Stored occurrence count of the pattern
        confidence: Score from ``calculate_confidence``
    """

    pattern: tuple[str, ...]
    next_id: str
    frequency: int
    confidence: float


@dataclass(frozen=True)
class FuzzyMatch:
    """Outcome of the similarity fallback.

    Attributes:
        next_id: Most frequent follower of similar events
        votes: Times it followed a similar event
        total: All follower votes cast
    """

    next_id: str
    votes: int
    total: int

    @property
    def confidence(self) -> float:
        return self.votes / self.total if self.total else 0.0


def rank_continuations(
    patterns: Mapping[PatternKey, int],
    prefix: tuple[str, ...],
    recency: float,
    min_confidence: float = 0.3,
) -> list[Continuation]:
    """Score stored patterns that strictly extend *prefix*.

    Args:
        patterns: Stored n-gram counts
        prefix: Lookup key built from the window tail
        recency: Recency factor of the current window
        min_confidence: Lowest confidence to keep

    Returns:
        Qualifying continuations, highest confidence first, ties broken
        by pattern key order
    """
    size = len(prefix)
    results: list[Continuation] = []
    for pattern, frequency in patterns.items():
        if len(pattern) <= size or tuple(pattern[:size]) != prefix:
            continue
        confidence = calculate_confidence(frequency, len(pattern), recency)
        if confidence >= min_confidence:
            results.append(
                Continuation(
                    pattern=tuple(pattern),
                    next_id=pattern[size],
                    frequency=frequency,
                    confidence=confidence,
                )
            )
    results.sort(key=lambda c: (-c.confidence, c.pattern))
    return results


def fuzzy_continuation(
    last: Event,
    event_log: Sequence[Event],
    similarity_threshold: float = 0.8,
) -> FuzzyMatch | None:
    """Vote on what follows events similar to *last*.

    Followers are taken by log position. On equal votes the follower
    reached first in log order wins.

    Raises:
        MalformedSignatureError: If *last* has a malformed signature
    """
    split_signature(last.signature)

    votes: Counter[str] = Counter()
    similar = 0
    for index, event in enumerate(event_log):
        if event.id == last.id:
            continue
        try:
            score = signature_similarity(event.signature, last.signature)
        except MalformedSignatureError:
            logger.debug("Skipping event %s with malformed signature", event.id)
            continue
        if score <= similarity_threshold:
            continue
        similar += 1
        if index < len(event_log) - 1:
            votes[event_log[index + 1].id] += 1

    total = sum(votes.values())
    if similar == 0 or total == 0:
        return None

    best_id, best_votes = "", 0
    for follower_id, count in votes.items():
        if count > best_votes:
            best_id, best_votes = follower_id, count
    return FuzzyMatch(next_id=best_id, votes=best_votes, total=total)


def describe_context(event: Event) -> str:
    """Human-readable description of what a prediction follows."""
    try:
        method, url = split_signature(event.signature)
    except MalformedSignatureError:
        return f"After {event.signature}"
    return f"After {method} request to {url}"


class Predictor:
    """Predicts the next action for a window snapshot."""

    def __init__(
        self,
        storage: KernelStorage,
        catalog: ActionCatalog,
        config: KernelConfig,
        clock: Clock = now_ms,
    ) -> None:
        self._storage = storage
        self._catalog = catalog
        self._config = config
        self._clock = clock

    async def predict(self, window: Sequence[Event]) -> Prediction | None:
        """Predict the next action after *window*.

        Args:
            window: Immutable snapshot of the sequence window

        Returns:
            Prediction, or None when there is not enough evidence
        """
        window = tuple(window)
        if len(window) < MIN_WINDOW_LENGTH:
            return None

        patterns = await self._storage.get_patterns()
        event_log = await self._storage.read_event_log()
        context = describe_context(window[-1])
        recency = recency_factor(
            self._clock(), average_timestamp(window), self._config.recency_decay_ms
        )

        ids = [e.id for e in window]
        # A prefix must be strictly shorter than the longest stored pattern
        longest = min(len(window), self._config.max_pattern_length - 1)
        for pattern_length in range(longest, 1, -1):
            prefix = tuple(ids[-pattern_length:])
            for candidate in rank_continuations(
                patterns, prefix, recency, self._config.min_confidence
            ):
                action = await self._catalog.resolve(candidate.next_id, event_log)
                if action is not None:
                    logger.debug(
                        "Pattern match %s -> %s (confidence %.2f)",
                        prefix,
                        candidate.next_id,
                        candidate.confidence,
                    )
                    return Prediction(
                        confidence=candidate.confidence, action=action, context=context
                    )

        return await self._predict_fuzzy(window[-1], event_log, context)

    async def _predict_fuzzy(
        self,
        last: Event,
        event_log: Sequence[Event],
        context: str,
    ) -> Prediction | None:
        try:
            match = fuzzy_continuation(
                last, event_log, self._config.fuzzy_similarity_threshold
            )
        except MalformedSignatureError as e:
            logger.warning("Fuzzy matching skipped: %s", e)
            return None
        if match is None:
            return None

        action = await self._catalog.resolve(match.next_id, event_log)
        if action is None:
            return None
        logger.debug(
            "Fuzzy match after %s -> %s (%d/%d)",
            last.signature,
            match.next_id,
            match.votes,
            match.total,
        )
        return Prediction(confidence=match.confidence, action=action, context=context)
