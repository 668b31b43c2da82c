"""Ports (protocols) for MFA collaborators and storage.

Collaborators (credential verifier, user directory) are provided by the
application. Storage ports are narrow, per-record repositories; atomicity of
check-and-update sequences is provided by ``ILockStrategy`` in the services
that use them. All ports use @runtime_checkable for isinstance checks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from .audit.events import MfaAuditEvent, MfaAuditEventType
    from .domain.session import MfaSession


# ═══════════════════════════════════════════════════════════════
# EXTERNAL COLLABORATORS
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class ICredentialVerifier(Protocol):
    """Protocol for the primary (username/password) credential check."""

    async def verify(self, username: str, password: str) -> bool:
        """Check a username/password pair.

        Args:
            username: Username as typed by the user.
            password: Plaintext password.

        Returns:
            True if the credentials are valid.

        Raises:
            InvalidCredentialsError: Optionally, instead of returning False.
        """
        ...


@dataclass(frozen=True)
class DirectoryUser:
    """User attributes read from the user directory.

    Attributes:
        username: Principal identifier.
        email: Email address used by the email code factor.
        locale: Preferred language (e.g. ``"fr"``).
        phone: Phone number, for SMS based custom factors.
    """

    username: str
    email: str | None = None
    locale: str | None = None
    phone: str | None = None


@runtime_checkable
class IUserDirectory(Protocol):
    """Protocol for user attribute lookups."""

    async def get_user(self, username: str) -> DirectoryUser | None:
        """Return the user's attributes, or None if the user does not exist."""
        ...


# ═══════════════════════════════════════════════════════════════
# STORAGE
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class ISessionStore(Protocol):
    """Protocol for MFA session storage.

    Implementations should honour ``session.expires_at``: an expired session
    is never returned.
    """

    async def get(self, session_id: str) -> MfaSession | None:
        """Return the session, or None if absent or expired."""
        ...

    async def save(self, session: MfaSession) -> None:
        """Insert or replace a session."""
        ...

    async def delete(self, session_id: str) -> bool:
        """Delete a session. Returns True if something was deleted."""
        ...


@runtime_checkable
class ISuspensionRepository(Protocol):
    """Protocol for the per-principal ``suspended_since`` record."""

    async def get_suspended_since(self, principal: str) -> datetime | None:
        ...

    async def set_suspended_since(self, principal: str, suspended_since: datetime) -> None:
        """Store the suspension start.

        The record must not expire on its own: whether it is still active is
        derived from the duration configured at read time.
        """
        ...

    async def remove(self, principal: str) -> None:
        ...


@runtime_checkable
class IFailureRepository(Protocol):
    """Protocol for the per-principal sliding window of failure timestamps."""

    async def get_failures(self, principal: str) -> list[datetime]:
        """Return failure timestamps, oldest first."""
        ...

    async def save_failures(self, principal: str, failures: list[datetime]) -> None:
        """Replace the window. Pruning against the current window is the caller's job."""
        ...

    async def clear(self, principal: str) -> None:
        ...


@runtime_checkable
class IRateLimitRepository(Protocol):
    """Protocol for per-(principal, factor type) ``next_allowed_at`` entries."""

    async def get_next_allowed(self, principal: str, factor_type: str) -> datetime | None:
        ...

    async def set_next_allowed(
        self, principal: str, factor_type: str, next_allowed_at: datetime
    ) -> None:
        ...

    async def clear(self, principal: str, factor_type: str) -> None:
        ...


@runtime_checkable
class IMfaAuditStore(Protocol):
    """Protocol for MFA audit event storage."""

    async def record(self, event: MfaAuditEvent) -> None:
        """Record an audit event."""
        ...

    async def get_events(
        self,
        principal: str,
        *,
        event_types: list[MfaAuditEventType] | None = None,
        limit: int = 100,
    ) -> list[MfaAuditEvent]:
        """Return the most recent events of a principal, newest first."""
        ...


__all__: list[str] = [
    "ICredentialVerifier",
    "DirectoryUser",
    "IUserDirectory",
    "ISessionStore",
    "ISuspensionRepository",
    "IFailureRepository",
    "IRateLimitRepository",
    "IMfaAuditStore",
]
