"""Audit events for MFA operations.

Events record who did what and with which outcome. One-time codes are never
part of an event.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class MfaAuditEventType(Enum):
    """Types of MFA audit events.

    Event naming follows the pattern: `mfa.<resource>.<action>`
    """

    SESSION_INITIATED = "mfa.session.initiated"
    SESSION_COMPLETED = "mfa.session.completed"
    SESSION_CLEARED = "mfa.session.cleared"
    LOGIN_FAILED = "mfa.login.failed"

    FACTOR_PREPARED = "mfa.factor.prepared"
    FACTOR_RATE_LIMITED = "mfa.factor.rate_limited"
    FACTOR_VERIFIED = "mfa.factor.verified"
    FACTOR_FAILED = "mfa.factor.failed"

    USER_SUSPENDED = "mfa.user.suspended"
    USER_UNSUSPENDED = "mfa.user.unsuspended"


@dataclass(frozen=True)
class MfaAuditEvent:
    """MFA audit event.

    Attributes:
        event_type: The type of event.
        principal: The user concerned.
        timestamp: When the event occurred (UTC).
        session_id: MFA session handle, when one exists.
        factor_type: Factor concerned, for factor events.
        success: Whether the operation succeeded.
        error_code: Structured error code if it failed.
        metadata: Additional event-specific data.
    """

    event_type: MfaAuditEventType
    principal: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: str | None = None
    factor_type: str | None = None
    success: bool = True
    error_code: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.success and not self.error_code:
            object.__setattr__(self, "error_code", "unexpected_error")

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for serialization."""
        return {
            "event_type": self.event_type.value,
            "principal": self.principal,
            "timestamp": self.timestamp.isoformat(),
            "session_id": self.session_id,
            "factor_type": self.factor_type,
            "success": self.success,
            "error_code": self.error_code,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MfaAuditEvent:
        """Create event from dictionary.

        Raises:
            ValueError: If required fields are missing or invalid.
        """
        event_type_str = data.get("event_type")
        if event_type_str is None:
            raise ValueError("Missing required 'event_type'")
        principal = data.get("principal")
        if not principal:
            raise ValueError("Missing required 'principal'")

        try:
            event_type = MfaAuditEventType(event_type_str)
        except ValueError as e:
            raise ValueError(f"Invalid event_type: {event_type_str}") from e

        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
            if timestamp.tzinfo is None:
                timestamp = timestamp.replace(tzinfo=timezone.utc)
        elif timestamp is None:
            timestamp = datetime.now(timezone.utc)

        return cls(
            event_type=event_type,
            principal=principal,
            timestamp=timestamp,
            session_id=data.get("session_id"),
            factor_type=data.get("factor_type"),
            success=data.get("success", True),
            error_code=data.get("error_code"),
            metadata=data.get("metadata", {}),
        )


__all__: list[str] = ["MfaAuditEventType", "MfaAuditEvent"]
