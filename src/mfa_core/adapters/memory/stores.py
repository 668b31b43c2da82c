"""In-memory stores for development and testing.

WARNING: These implementations are NOT suitable for multi-process
deployments. They keep data in local dictionaries; use the Redis adapters
when more than one worker serves requests.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from ...clock import SystemClock
from ...ports import (
    IFailureRepository,
    IRateLimitRepository,
    ISessionStore,
    ISuspensionRepository,
)

if TYPE_CHECKING:
    from ...clock import IClock
    from ...domain.session import MfaSession


class InMemoryMfaSessionStore(ISessionStore):
    """In-memory MFA session store.

    Sessions are copied on the way in and out, so a caller mutating its
    instance does not change the stored record until it calls ``save``.
    """

    def __init__(self, clock: IClock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._sessions: dict[str, MfaSession] = {}

    async def get(self, session_id: str) -> MfaSession | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if session.is_expired(self._clock.now()):
            del self._sessions[session_id]
            return None
        return session.model_copy(deep=True)

    async def save(self, session: MfaSession) -> None:
        self._sessions[session.id] = session.model_copy(deep=True)

    async def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def clear_all(self) -> None:
        """Clear all sessions. Useful for testing cleanup."""
        self._sessions.clear()


class InMemorySuspensionRepository(ISuspensionRepository):
    """Suspension records kept until explicitly removed."""

    def __init__(self) -> None:
        self._records: dict[str, datetime] = {}

    async def get_suspended_since(self, principal: str) -> datetime | None:
        return self._records.get(principal)

    async def set_suspended_since(self, principal: str, suspended_since: datetime) -> None:
        self._records[principal] = suspended_since

    async def remove(self, principal: str) -> None:
        self._records.pop(principal, None)


class InMemoryFailureRepository(IFailureRepository):
    """Failure windows; the caller prunes old entries."""

    def __init__(self) -> None:
        self._failures: dict[str, list[datetime]] = {}

    async def get_failures(self, principal: str) -> list[datetime]:
        return list(self._failures.get(principal, []))

    async def save_failures(self, principal: str, failures: list[datetime]) -> None:
        self._failures[principal] = list(failures)

    async def clear(self, principal: str) -> None:
        self._failures.pop(principal, None)


class InMemoryRateLimitRepository(IRateLimitRepository):
    """``next_allowed_at`` per (principal, factor type); stale entries are dropped on read."""

    def __init__(self, clock: IClock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._entries: dict[tuple[str, str], datetime] = {}

    async def get_next_allowed(self, principal: str, factor_type: str) -> datetime | None:
        key = (principal, factor_type)
        next_allowed = self._entries.get(key)
        if next_allowed is not None and next_allowed <= self._clock.now():
            del self._entries[key]
            return None
        return next_allowed

    async def set_next_allowed(
        self, principal: str, factor_type: str, next_allowed_at: datetime
    ) -> None:
        self._entries[(principal, factor_type)] = next_allowed_at

    async def clear(self, principal: str, factor_type: str) -> None:
        self._entries.pop((principal, factor_type), None)


__all__: list[str] = [
    "InMemoryMfaSessionStore",
    "InMemorySuspensionRepository",
    "InMemoryFailureRepository",
    "InMemoryRateLimitRepository",
]
