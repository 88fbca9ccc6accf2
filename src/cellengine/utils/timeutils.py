"""Time helpers.

All kernel timestamps are integer epoch milliseconds.
"""

from __future__ import annotations

import time
from collections.abc import Callable

Clock = Callable[[], int]

MS_PER_HOUR = 3_600_000


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def format_ms(timestamp: int | None) -> str:
    """Render an epoch-ms timestamp for CLI output."""
    if timestamp is None:
        return "never"
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(timestamp / 1000))
