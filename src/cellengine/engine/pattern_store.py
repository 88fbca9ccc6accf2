"""Pattern store: n-gram frequency table over the event log.

Each analysis pass slides windows of length 2..max_pattern_length
across the whole log and adds the occurrences it finds to the stored
counts. Counts accumulate over the lifetime of the store; they are
never reset or decremented.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cellengine.storage.base import PatternKey

if TYPE_CHECKING:
    from cellengine.core.event import Event
    from cellengine.storage.base import KernelStorage

logger = logging.getLogger(__name__)


@dataclass
class RebuildReport:
    """Result of one analysis pass.

    Attributes:
        events_analyzed: Length of the log that was scanned
        patterns_found: Distinct n-grams seen in this pass
        occurrences_added: Sum of counts added to the store
    """

    events_analyzed: int = 0
    patterns_found: int = 0
    occurrences_added: int = 0


def count_ngrams(events: Sequence[Event], max_pattern_length: int) -> Counter[PatternKey]:
    """Count every contiguous id n-gram of length 2..max_pattern_length.

    Args:
        events: Event log, oldest first
        max_pattern_length: Longest n-gram to count

    Returns:
        Counter mapping id tuples to occurrences in *events*
    """
    ids = [e.id for e in events]
    counts: Counter[PatternKey] = Counter()
    for length in range(2, max_pattern_length + 1):
        for i in range(len(ids) - length + 1):
            counts[tuple(ids[i : i + length])] += 1
    return counts


class PatternStore:
    """Frequency table backed by the persistence collaborator."""

    def __init__(self, storage: KernelStorage, max_pattern_length: int = 10) -> None:
        self._storage = storage
        self._max_pattern_length = max_pattern_length

    @property
    def max_pattern_length(self) -> int:
        return self._max_pattern_length

    async def rebuild(self, event_log: Sequence[Event] | None = None) -> RebuildReport:
        """Analyze the event log and add n-gram counts to the store.

        Args:
            event_log: Log to scan (read from storage if omitted)

        Returns:
            RebuildReport describing the pass
        """
        if event_log is None:
            event_log = await self._storage.read_event_log()

        counts = count_ngrams(event_log, self._max_pattern_length)
        await self._storage.add_pattern_counts(counts)

        report = RebuildReport(
            events_analyzed=len(event_log),
            patterns_found=len(counts),
            occurrences_added=sum(counts.values()),
        )
        logger.debug(
            "Analyzed %d events and found %d patterns",
            report.events_analyzed,
            report.patterns_found,
        )
        return report

    async def patterns(self) -> dict[PatternKey, int]:
        return await self._storage.get_patterns()

    async def top(self, limit: int = 10) -> list[tuple[PatternKey, int]]:
        """Most frequent patterns, longest first among equal counts."""
        patterns = await self._storage.get_patterns()
        ranked = sorted(patterns.items(), key=lambda kv: (-kv[1], -len(kv[0]), kv[0]))
        return ranked[:limit]
