"""Clock source shared by every time-based component.

Rate limiting, failure windows, suspensions and session expiry must all read
the same clock, otherwise "rate limited" and "suspended" computations drift
apart.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol, runtime_checkable


@runtime_checkable
class IClock(Protocol):
    """Protocol for a wall-clock source returning timezone-aware UTC datetimes."""

    def now(self) -> datetime:
        """Return the current time (timezone-aware, UTC)."""
        ...


class SystemClock(IClock):
    """Production clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


__all__: list[str] = ["IClock", "SystemClock"]
