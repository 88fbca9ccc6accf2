"""Action: an executable step derived from an observed event."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from cellengine.core.event import Event, split_signature


class ActionType(StrEnum):
    """Kinds of side effect an action performs."""

    API = "api"  # Network request: url + options
    UI = "ui"  # DOM event: selector + event name
    WORKFLOW = "workflow"  # Replay of a stored workflow, id = workflow id


@dataclass(frozen=True)
class Action:
    """
    An executable action.

    Attributes:
        id: Identifier (the id of the event it was derived from)
        type: Kind of side effect
        description: Human-readable summary
        url: Target URL for API actions
        options: Request options (method, headers, body) for API actions
        selector: Target selector for UI actions
        event_name: Event to dispatch for UI actions
    """

    id: str
    type: ActionType
    description: str
    url: str | None = None
    options: dict[str, Any] = field(default_factory=dict)
    selector: str | None = None
    event_name: str | None = None

    @classmethod
    def from_event(cls, event: Event) -> Action:
        """
        Derive an API action from a request event.

        Raises:
            MalformedSignatureError: If the event signature has no delimiter
        """
        method, url = split_signature(event.signature)
        return cls(
            id=event.id,
            type=ActionType.API,
            description=f"{method} {url}",
            url=url,
            options={
                "method": method,
                "headers": dict(event.headers),
                "body": event.body,
            },
        )

    @classmethod
    def ui(cls, action_id: str, selector: str, event_name: str, description: str = "") -> Action:
        return cls(
            id=action_id,
            type=ActionType.UI,
            description=description or f"{event_name} on {selector}",
            selector=selector,
            event_name=event_name,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "description": self.description,
            "url": self.url,
            "options": self.options,
            "selector": self.selector,
            "event_name": self.event_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Action:
        return cls(
            id=data["id"],
            type=ActionType(data["type"]),
            description=data.get("description", ""),
            url=data.get("url"),
            options=dict(data.get("options") or {}),
            selector=data.get("selector"),
            event_name=data.get("event_name"),
        )
