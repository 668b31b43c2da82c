"""MFA audit events and stores."""

from .events import MfaAuditEvent, MfaAuditEventType
from .memory import InMemoryMfaAuditStore

__all__: list[str] = ["MfaAuditEvent", "MfaAuditEventType", "InMemoryMfaAuditStore"]
