"""Workflow executor: queued, paced replay of workflow actions.

A single drain task works through a FIFO queue of action ids, one
step at a time. Calling ``execute_workflow`` while a drain is running
extends the same queue. A ``workflow`` step is expanded in place, ahead
of the steps recorded after it. A failing or missing step is logged
and the drain moves on to the next id; there are no retries.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from cellengine.core.action import Action, ActionType
from cellengine.utils.timeutils import now_ms

if TYPE_CHECKING:
    from cellengine.core.workflow import Workflow
    from cellengine.engine.action_dispatch import ActionExecutor
    from cellengine.storage.base import KernelStorage
    from cellengine.utils.timeutils import Clock

logger = logging.getLogger(__name__)


class ExecutorState(StrEnum):
    IDLE = "idle"
    DRAINING = "draining"


@dataclass(frozen=True)
class QueuedStep:
    """A queued action id and the workflow ids it was expanded from.

    Attributes:
        action_id: Action to run
        lineage: Outermost first; the last entry owns the step
    """

    action_id: str
    lineage: tuple[str, ...]


class WorkflowExecutor:
    """Replays workflows through an injected action executor."""

    def __init__(
        self,
        storage: KernelStorage,
        action_executor: ActionExecutor,
        *,
        step_delay_seconds: float = 0.5,
        clock: Clock = now_ms,
    ) -> None:
        self._storage = storage
        self._action_executor = action_executor
        self._step_delay = step_delay_seconds
        self._clock = clock
        self._queue: deque[QueuedStep] = deque()
        self._state = ExecutorState.IDLE
        self._cancel_requested = False
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> ExecutorState:
        return self._state

    @property
    def step_delay_seconds(self) -> float:
        """Pause after each successful step."""
        return self._step_delay

    @property
    def pending(self) -> tuple[str, ...]:
        """Action ids still waiting in the queue."""
        return tuple(step.action_id for step in self._queue)

    async def execute_workflow(self, workflow_id: str) -> Workflow | None:
        """Queue a workflow's actions and start draining if idle.

        Usage statistics are updated immediately, before any step runs.

        Returns:
            The workflow with updated statistics, or None if it does not exist
        """
        workflow = await self._storage.get_workflow(workflow_id)
        if workflow is None:
            logger.error("Workflow with ID %s not found", workflow_id)
            return None

        self._queue.extend(QueuedStep(action.id, (workflow_id,)) for action in workflow.actions)
        self._cancel_requested = False
        updated = await self._storage.increment_workflow_frequency(workflow_id, self._clock())

        if self._task is None or self._task.done():
            self._state = ExecutorState.DRAINING
            self._task = asyncio.create_task(self._drain())

        logger.info("Executing workflow %r", workflow.name)
        return updated

    def cancel(self) -> int:
        """Drop queued steps. The step in flight finishes first.

        Returns:
            Number of queued steps discarded
        """
        dropped = len(self._queue)
        self._queue.clear()
        if self._state is ExecutorState.DRAINING:
            self._cancel_requested = True
        if dropped:
            logger.info("Cancelled %d queued workflow steps", dropped)
        return dropped

    async def wait_idle(self) -> None:
        """Wait until the current drain (if any) finishes."""
        if self._task is not None and not self._task.done():
            await asyncio.wait({self._task})

    async def close(self) -> None:
        """Cancel queued steps and stop the drain task."""
        self.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.wait({self._task})
        self._task = None
        self._state = ExecutorState.IDLE

    async def _resolve(self, action_id: str) -> Action | None:
        """First action with *action_id* across all known workflows."""
        workflows = await self._storage.get_workflows()
        for workflow in workflows.values():
            action = workflow.find_action(action_id)
            if action is not None:
                return action
        return None

    async def _expand(self, step: QueuedStep) -> None:
        """Put a nested workflow's steps at the front of the queue."""
        workflow_id = step.action_id
        if workflow_id in step.lineage:
            logger.warning(
                "Skipping recursive workflow step %s (via %s)",
                workflow_id,
                " -> ".join(step.lineage),
            )
            return

        workflow = await self._storage.get_workflow(workflow_id)
        if workflow is None:
            logger.error("Workflow with ID %s not found", workflow_id)
            return
        if self._cancel_requested:
            return

        lineage = (*step.lineage, workflow_id)
        self._queue.extendleft(
            QueuedStep(action.id, lineage) for action in reversed(workflow.actions)
        )
        await self._storage.increment_workflow_frequency(workflow_id, self._clock())
        logger.debug("Expanded nested workflow %r", workflow.name)

    async def _drain(self) -> None:
        try:
            while self._queue and not self._cancel_requested:
                step = self._queue.popleft()
                action = await self._resolve(step.action_id)
                if action is None:
                    logger.error("Action with ID %s not found", step.action_id)
                    continue

                if action.type is ActionType.WORKFLOW:
                    await self._expand(step)
                    continue

                try:
                    await self._action_executor(action)
                except Exception:
                    logger.warning("Error executing action %s", step.action_id, exc_info=True)
                    continue

                await asyncio.sleep(self._step_delay)
        finally:
            self._state = ExecutorState.IDLE
            self._cancel_requested = False
