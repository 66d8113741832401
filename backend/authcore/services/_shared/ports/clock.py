from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

#: Zero-argument callable returning an aware UTC ``datetime``.
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Wall-clock time in UTC (the default :data:`Clock`)."""
    return datetime.now(UTC)
