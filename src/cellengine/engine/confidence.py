"""Confidence scoring for n-gram predictions.

confidence = 0.6 * frequency + 0.3 * specificity + 0.1 * recency

Each factor is normalized to [0, 1] before weighting, so the blend is
always in [0, 1].
"""

from __future__ import annotations

import math

from cellengine.utils.timeutils import MS_PER_HOUR

FREQUENCY_WEIGHT = 0.6
LENGTH_WEIGHT = 0.3
RECENCY_WEIGHT = 0.1

# Counts / token lengths at which the factor saturates
FREQUENCY_SATURATION = 10
LENGTH_SATURATION = 10


def frequency_factor(frequency: int) -> float:
    return min(max(frequency, 0) / FREQUENCY_SATURATION, 1.0)


def length_factor(token_count: int) -> float:
    return min(max(token_count, 0) / LENGTH_SATURATION, 1.0)


def recency_factor(
    now: float,
    average_timestamp: float | None,
    decay_ms: float = MS_PER_HOUR,
) -> float:
    """Exponential decay on the age of the current context.

    Returns 1.0 for a context that is happening now, approaching 0 as it
    ages. Timestamps in the future count as now.
    """
    if average_timestamp is None:
        return 0.0
    elapsed = max(now - average_timestamp, 0.0)
    return math.exp(-elapsed / decay_ms)


def calculate_confidence(
    frequency: int,
    token_count: int,
    recency: float,
) -> float:
    """Blend the three factors into a confidence score in [0, 1]."""
    recency = min(max(recency, 0.0), 1.0)
    return (
        FREQUENCY_WEIGHT * frequency_factor(frequency)
        + LENGTH_WEIGHT * length_factor(token_count)
        + RECENCY_WEIGHT * recency
    )
