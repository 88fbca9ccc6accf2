"""Abstract base class for kernel persistence backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cellengine.core.action import Action
    from cellengine.core.event import Event
    from cellengine.core.workflow import Workflow

PatternKey = tuple[str, ...]


class StorageError(RuntimeError):
    """Raised when a write to the backend fails."""


class KernelStorage(ABC):
    """
    Persistence contract the kernel depends on.

    Every backend scopes its data by a namespace prefix so several
    applications can share one store. Read operations must never raise
    into the kernel: a failing read degrades to an empty collection.
    """

    def __init__(self, namespace: str = "cell") -> None:
        self._namespace = namespace

    @property
    def namespace(self) -> str:
        return self._namespace

    def set_namespace(self, namespace: str) -> None:
        """Switch the namespace used by subsequent operations."""
        self._namespace = namespace

    async def close(self) -> None:  # noqa: B027
        """Release backend resources. No-op by default."""

    # ========== Event Log ==========

    @abstractmethod
    async def append_event(self, event: Event, max_events: int = 1000) -> None:
        """
        Append an event to the log, evicting the oldest beyond capacity.

        Args:
            event: The event to append
            max_events: Log capacity
        """
        ...

    @abstractmethod
    async def read_event_log(self) -> list[Event]:
        """Return the event log, oldest first."""
        ...

    # ========== Patterns ==========

    @abstractmethod
    async def get_patterns(self) -> dict[PatternKey, int]:
        """Return all stored n-gram counts."""
        ...

    @abstractmethod
    async def add_pattern_counts(self, counts: Mapping[PatternKey, int]) -> None:
        """
        Add counts to stored patterns.

        Existing counts are incremented, never replaced or decremented.

        Args:
            counts: Occurrences found in one analysis pass
        """
        ...

    # ========== Actions ==========

    @abstractmethod
    async def get_actions(self) -> dict[str, Action]:
        """Return all derived actions keyed by id."""
        ...

    @abstractmethod
    async def save_action(self, action: Action) -> None:
        """Insert or replace an action."""
        ...

    # ========== Workflows ==========

    @abstractmethod
    async def get_workflows(self) -> dict[str, Workflow]:
        """Return all workflows keyed by id, in creation order."""
        ...

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        """Get a workflow by ID, or None if unknown."""
        workflows = await self.get_workflows()
        return workflows.get(workflow_id)

    @abstractmethod
    async def save_workflow(self, workflow: Workflow) -> None:
        """Insert or replace a workflow."""
        ...

    async def increment_workflow_frequency(self, workflow_id: str, now: int) -> Workflow | None:
        """
        Bump a workflow's frequency and last execution time.

        Args:
            workflow_id: Workflow to update
            now: Execution time, epoch ms

        Returns:
            The updated workflow, or None if it does not exist
        """
        workflow = await self.get_workflow(workflow_id)
        if workflow is None:
            return None
        updated = workflow.executed(now)
        await self.save_workflow(updated)
        return updated

    # ========== Maintenance ==========

    @abstractmethod
    async def clear(self) -> None:
        """Remove all data in the current namespace."""
        ...
