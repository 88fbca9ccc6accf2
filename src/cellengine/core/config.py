"""Kernel configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any

from cellengine.utils.timeutils import MS_PER_HOUR


@dataclass(frozen=True)
class KernelConfig:
    """
    Configuration for kernel behavior.

    Attributes:
        namespace: Storage prefix isolating one application's data
        max_sequence_length: Capacity of the live sequence window
        max_pattern_length: Longest n-gram tracked by the pattern store
        max_stored_events: Capacity of the persisted event log
        min_confidence: Lowest confidence for an n-gram prediction
        suggestion_threshold: Confidence a UI should require before showing a prediction
        rebuild_interval_seconds: Delay before a scheduled pattern rebuild
        step_delay_seconds: Pacing between replayed workflow steps
        repetition_threshold: Transition count that triggers an automation suggestion
        suggestion_cooldown_ms: Minimum gap between suggestions for one transition
        fuzzy_similarity_threshold: Similarity an event must exceed to count as similar
        recency_decay_ms: Time constant of the recency factor
    """

    namespace: str = "cell"
    max_sequence_length: int = 10
    max_pattern_length: int = 10
    max_stored_events: int = 1000
    min_confidence: float = 0.3
    suggestion_threshold: float = 0.7
    rebuild_interval_seconds: float = 30.0
    step_delay_seconds: float = 0.5
    repetition_threshold: int = 3
    suggestion_cooldown_ms: int = MS_PER_HOUR
    fuzzy_similarity_threshold: float = 0.8
    recency_decay_ms: float = float(MS_PER_HOUR)

    def with_updates(self, **kwargs: Any) -> KernelConfig:
        """Create a new config with updated values, ignoring unknown keys."""
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in kwargs.items() if k in known})

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KernelConfig:
        return cls().with_updates(**data)

    @classmethod
    def from_env(cls, base: KernelConfig | None = None) -> KernelConfig:
        """Apply ``CELLENGINE_<FIELD>`` environment overrides to *base*."""
        config = base or cls()
        updates: dict[str, Any] = {}
        for f in fields(config):
            value = os.getenv(f"CELLENGINE_{f.name.upper()}")
            if value is None:
                continue
            current = getattr(config, f.name)
            try:
                if isinstance(current, int):
                    updates[f.name] = int(value)
                elif isinstance(current, float):
                    updates[f.name] = float(value)
                else:
                    updates[f.name] = value
            except ValueError:
                continue
        return config.with_updates(**updates)
