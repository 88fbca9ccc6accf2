"""Event: a single observed user-triggered operation.

Events are pushed into the kernel by an event source. The ``signature``
(``METHOD:URL``) is the stable grouping key; the ``id`` is unique per
observation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any
from uuid import uuid4

from cellengine.utils.timeutils import now_ms

SIGNATURE_DELIMITER = ":"


class MalformedSignatureError(ValueError):
    """Raised when a signature has no ``METHOD:URL`` delimiter."""


class CaptureSource(StrEnum):
    """Where an event was captured."""

    FETCH = "fetch"
    XHR = "xhr"
    UI = "ui"
    REPLAY = "replay"


def make_signature(method: str, url: str) -> str:
    """Build the grouping key for a request."""
    return f"{method.upper()}{SIGNATURE_DELIMITER}{url}"


def split_signature(signature: str) -> tuple[str, str]:
    """Split a signature into ``(method, url)``.

    Raises:
        MalformedSignatureError: If the delimiter is missing
    """
    index = signature.find(SIGNATURE_DELIMITER)
    if index == -1:
        raise MalformedSignatureError(f"Invalid action signature: {signature!r}")
    return signature[:index], signature[index + 1 :]


@dataclass(frozen=True)
class Event:
    """
    A discrete, timestamped observation.

    Attributes:
        id: Unique identifier of this observation
        signature: Repeatable grouping key (``METHOD:URL``)
        timestamp: When the event occurred, epoch milliseconds
        headers: Request headers captured with the event
        body: Request body, if any
        source: Capture mechanism that produced the event
    """

    id: str
    signature: str
    timestamp: int
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    source: CaptureSource = CaptureSource.FETCH

    @classmethod
    def create(
        cls,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        body: Any = None,
        source: CaptureSource = CaptureSource.FETCH,
        timestamp: int | None = None,
        event_id: str | None = None,
    ) -> Event:
        """
        Factory method for a request event.

        Args:
            method: HTTP method (normalised to upper case)
            url: Request URL
            headers: Optional request headers
            body: Optional request body
            source: Capture mechanism
            timestamp: Epoch ms (defaults to now)
            event_id: Explicit ID (generates UUID if not provided)

        Returns:
            A new Event
        """
        return cls(
            id=event_id or str(uuid4()),
            signature=make_signature(method, url),
            timestamp=now_ms() if timestamp is None else timestamp,
            headers=dict(headers or {}),
            body=body,
            source=source,
        )

    @property
    def method(self) -> str:
        return split_signature(self.signature)[0]

    @property
    def url(self) -> str:
        return split_signature(self.signature)[1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "signature": self.signature,
            "timestamp": self.timestamp,
            "headers": self.headers,
            "body": self.body,
            "source": self.source.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        """Build an event from its serialized form.

        Accepts either a ``signature`` or a ``method``/``url`` pair.
        """
        signature = data.get("signature")
        if signature is None:
            signature = make_signature(data.get("method", "GET"), data["url"])
        return cls(
            id=data.get("id") or str(uuid4()),
            signature=signature,
            timestamp=int(data.get("timestamp", now_ms())),
            headers=dict(data.get("headers") or {}),
            body=data.get("body"),
            source=CaptureSource(data.get("source", CaptureSource.FETCH.value)),
        )
