"""Event source adapters."""

from cellengine.sources.base import CallbackEventSource, EventSource
from cellengine.sources.jsonl import JsonLinesEventSource, parse_event_line

__all__ = [
    "EventSource",
    "CallbackEventSource",
    "JsonLinesEventSource",
    "parse_event_line",
]
