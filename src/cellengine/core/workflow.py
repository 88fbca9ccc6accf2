"""Workflow: a named, replayable sequence of actions."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any
from uuid import uuid4

from cellengine.core.action import Action
from cellengine.utils.timeutils import now_ms

MIN_WORKFLOW_ACTIONS = 2


@dataclass(frozen=True)
class Workflow:
    """
    A recorded workflow.

    The action tuple is fixed at creation. Only ``frequency`` and
    ``last_executed`` change, through ``executed``.

    Attributes:
        id: Unique identifier
        name: Display name ("Workflow 3")
        description: First and last step summary
        actions: Ordered steps
        frequency: Times recorded or executed (>= 1)
        last_executed: Epoch ms of the last execution
    """

    id: str
    name: str
    description: str
    actions: tuple[Action, ...]
    frequency: int = 1
    last_executed: int | None = None

    @classmethod
    def create(
        cls,
        actions: Sequence[Action],
        ordinal: int,
        *,
        workflow_id: str | None = None,
        now: int | None = None,
    ) -> Workflow:
        """
        Factory method for a freshly recorded workflow.

        Args:
            actions: Recorded steps, in order (at least two)
            ordinal: 1-based position used for the display name
            workflow_id: Explicit ID (generates UUID if not provided)
            now: Creation time, epoch ms

        Raises:
            ValueError: If fewer than two actions are given
        """
        if len(actions) < MIN_WORKFLOW_ACTIONS:
            raise ValueError(f"A workflow needs at least {MIN_WORKFLOW_ACTIONS} actions")
        return cls(
            id=workflow_id or uuid4().hex,
            name=f"Workflow {ordinal}",
            description=f"{actions[0].description} → {actions[-1].description}",
            actions=tuple(actions),
            frequency=1,
            last_executed=now_ms() if now is None else now,
        )

    def executed(self, now: int) -> Workflow:
        """Return a copy with usage statistics bumped."""
        return replace(self, frequency=self.frequency + 1, last_executed=now)

    def find_action(self, action_id: str) -> Action | None:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "actions": [a.to_dict() for a in self.actions],
            "frequency": self.frequency,
            "last_executed": self.last_executed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Workflow:
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            actions=tuple(Action.from_dict(a) for a in data.get("actions", [])),
            frequency=int(data.get("frequency", 1)),
            last_executed=data.get("last_executed"),
        )
