"""Match recent actions against recorded workflows."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from cellengine.core.workflow import MIN_WORKFLOW_ACTIONS

if TYPE_CHECKING:
    from cellengine.core.action import Action
    from cellengine.core.workflow import Workflow


def detect_workflow_match(
    actions: Sequence[Action],
    workflows: Iterable[Workflow],
) -> Workflow | None:
    """Find the first workflow whose steps are the tail of *actions*.

    Args:
        actions: Recent actions, oldest first
        workflows: Candidates, in priority order

    Returns:
        The first matching workflow, or None
    """
    if len(actions) < MIN_WORKFLOW_ACTIONS:
        return None

    recent_ids = [a.id for a in actions]
    for workflow in workflows:
        steps = [a.id for a in workflow.actions]
        if len(steps) > len(recent_ids):
            continue
        if recent_ids[len(recent_ids) - len(steps) :] == steps:
            return workflow
    return None
