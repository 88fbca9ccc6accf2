"""Idempotent event-to-action derivation with caching."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from cellengine.core.action import Action
from cellengine.core.event import MalformedSignatureError

if TYPE_CHECKING:
    from cellengine.core.event import Event
    from cellengine.storage.base import KernelStorage

logger = logging.getLogger(__name__)


class ActionCatalog:
    """In-memory action cache in front of the persisted action table.

    An action is derived from its event the first time it is needed and
    reused by id afterwards.
    """

    def __init__(self, storage: KernelStorage) -> None:
        self._storage = storage
        self._cache: dict[str, Action] = {}

    async def load(self) -> int:
        """Warm the cache from storage. Returns the number of cached actions."""
        self._cache = await self._storage.get_actions()
        return len(self._cache)

    def get(self, action_id: str) -> Action | None:
        return self._cache.get(action_id)

    def __contains__(self, action_id: object) -> bool:
        return action_id in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    async def derive(self, event: Event) -> Action | None:
        """Return the action for *event*, deriving and persisting it once.

        Malformed signatures are logged and yield None.
        """
        cached = self._cache.get(event.id)
        if cached is not None:
            return cached
        try:
            action = Action.from_event(event)
        except MalformedSignatureError as e:
            logger.warning("Cannot derive action from event %s: %s", event.id, e)
            return None
        self._cache[action.id] = action
        await self._storage.save_action(action)
        return action

    async def resolve(self, action_id: str, event_log: Sequence[Event]) -> Action | None:
        """Find the action for *action_id*, deriving it from *event_log* if needed."""
        cached = self._cache.get(action_id)
        if cached is not None:
            return cached
        for event in event_log:
            if event.id == action_id:
                return await self.derive(event)
        logger.debug("No event found for action %s", action_id)
        return None
