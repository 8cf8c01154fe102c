"""
Wall-clock access for use cases.

Use cases take a ``clock`` callable defaulting to :func:`utcnow` so
tests can pin time. Ledger timestamps are always timezone-aware UTC.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)
