"""Explicit start/stop capture of an action sequence."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import StrEnum
from typing import TYPE_CHECKING

from cellengine.core.workflow import MIN_WORKFLOW_ACTIONS, Workflow
from cellengine.utils.timeutils import now_ms

if TYPE_CHECKING:
    from cellengine.core.action import Action
    from cellengine.storage.base import KernelStorage
    from cellengine.utils.timeutils import Clock

logger = logging.getLogger(__name__)


class RecorderState(StrEnum):
    IDLE = "idle"
    RECORDING = "recording"


class WorkflowRecorder:
    """Two-state machine: idle <-> recording.

    Stopping with at least two recorded actions persists a new
    workflow; fewer actions are discarded without error.
    """

    def __init__(self, storage: KernelStorage, clock: Clock = now_ms) -> None:
        self._storage = storage
        self._clock = clock
        self._state = RecorderState.IDLE
        self._actions: list[Action] = []

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state is RecorderState.RECORDING

    @property
    def pending_actions(self) -> tuple[Action, ...]:
        return tuple(self._actions)

    def start(self) -> bool:
        """Begin recording. Returns False if already recording."""
        if self.is_recording:
            logger.debug("Already recording a workflow")
            return False
        self._state = RecorderState.RECORDING
        self._actions = []
        logger.info("Started workflow recording")
        return True

    def add_action(self, action: Action) -> bool:
        """Append an action while recording. Ignored when idle."""
        if not self.is_recording:
            return False
        self._actions.append(action)
        logger.debug("Added action %r to current workflow", action.description)
        return True

    async def stop(self) -> Workflow | None:
        """Stop recording and persist the workflow if it has enough steps.

        Returns:
            The new workflow, or None when idle or too few actions were recorded
        """
        if not self.is_recording:
            return None

        self._state = RecorderState.IDLE
        actions, self._actions = self._actions, []

        if len(actions) < MIN_WORKFLOW_ACTIONS:
            logger.info("Stopped workflow recording without saving (%d actions)", len(actions))
            return None

        existing = await self._storage.get_workflows()
        workflow = Workflow.create(actions, ordinal=len(existing) + 1, now=self._clock())
        await self._storage.save_workflow(workflow)
        logger.info("Saved workflow %r with %d actions", workflow.name, len(workflow.actions))
        return workflow

    async def record(self, actions: Iterable[Action]) -> Workflow | None:
        """Record *actions* in one go: start, add each, stop."""
        self.start()
        for action in actions:
            self.add_action(action)
        return await self.stop()
