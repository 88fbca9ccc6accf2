"""Replay captured events from a JSON-lines file."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from cellengine.core.event import CaptureSource, Event, MalformedSignatureError, split_signature
from cellengine.sources.base import CallbackEventSource

logger = logging.getLogger(__name__)


def parse_event_line(line: str) -> Event | None:
    """Parse one JSON line into an event.

    Blank lines, invalid JSON and malformed signatures are logged and
    skipped.
    """
    line = line.strip()
    if not line:
        return None
    try:
        data = json.loads(line)
        data.setdefault("source", CaptureSource.REPLAY.value)
        event = Event.from_dict(data)
        split_signature(event.signature)
    except (json.JSONDecodeError, KeyError, ValueError, TypeError, AttributeError) as e:
        if isinstance(e, MalformedSignatureError):
            logger.warning("Skipping event with malformed signature: %s", e)
        else:
            logger.warning("Skipping unreadable event line: %s", e)
        return None
    return event


class JsonLinesEventSource(CallbackEventSource):
    """Emits each event of a ``.jsonl`` file, in file order.

    Each line holds an object with ``id``, ``timestamp`` and either a
    ``signature`` or ``method`` + ``url``.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self._path = Path(path)

    async def replay(self) -> int:
        """Start the source and emit every event in the file.

        Returns:
            Number of events emitted
        """
        await self.start()
        emitted = 0
        with open(self._path, encoding="utf-8") as f:
            for line in f:
                event = parse_event_line(line)
                if event is None:
                    continue
                await self.emit(event)
                emitted += 1
        logger.info("Replayed %d events from %s", emitted, self._path)
        return emitted
