"""In-memory storage backend."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping

from cellengine.core.action import Action
from cellengine.core.event import Event
from cellengine.core.workflow import Workflow
from cellengine.storage.base import KernelStorage, PatternKey


class InMemoryStorage(KernelStorage):
    """Dict-based storage for development and testing.

    Data is lost when the process exits.
    """

    def __init__(self, namespace: str = "cell") -> None:
        super().__init__(namespace)
        self._events: dict[str, list[Event]] = defaultdict(list)
        self._patterns: dict[str, dict[PatternKey, int]] = defaultdict(dict)
        self._actions: dict[str, dict[str, Action]] = defaultdict(dict)
        self._workflows: dict[str, dict[str, Workflow]] = defaultdict(dict)

    # ========== Event Log ==========

    async def append_event(self, event: Event, max_events: int = 1000) -> None:
        log = self._events[self._namespace]
        log.append(event)
        if len(log) > max_events:
            del log[: len(log) - max_events]

    async def read_event_log(self) -> list[Event]:
        return list(self._events[self._namespace])

    # ========== Patterns ==========

    async def get_patterns(self) -> dict[PatternKey, int]:
        return dict(self._patterns[self._namespace])

    async def add_pattern_counts(self, counts: Mapping[PatternKey, int]) -> None:
        patterns = self._patterns[self._namespace]
        for key, count in counts.items():
            patterns[tuple(key)] = patterns.get(tuple(key), 0) + count

    # ========== Actions ==========

    async def get_actions(self) -> dict[str, Action]:
        return dict(self._actions[self._namespace])

    async def save_action(self, action: Action) -> None:
        self._actions[self._namespace][action.id] = action

    # ========== Workflows ==========

    async def get_workflows(self) -> dict[str, Workflow]:
        return dict(self._workflows[self._namespace])

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        return self._workflows[self._namespace].get(workflow_id)

    async def save_workflow(self, workflow: Workflow) -> None:
        self._workflows[self._namespace][workflow.id] = workflow

    # ========== Maintenance ==========

    async def clear(self) -> None:
        ns = self._namespace
        self._events.pop(ns, None)
        self._patterns.pop(ns, None)
        self._actions.pop(ns, None)
        self._workflows.pop(ns, None)
