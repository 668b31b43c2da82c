"""In-memory audit store for testing and development."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from ..ports import IMfaAuditStore

if TYPE_CHECKING:
    from .events import MfaAuditEvent, MfaAuditEventType


class InMemoryMfaAuditStore(IMfaAuditStore):
    """In-memory implementation of IMfaAuditStore.

    Note:
        Events are stored in memory and will be lost on restart.
        Not suitable for production use.
    """

    def __init__(self) -> None:
        self._events: list[MfaAuditEvent] = []
        self._by_principal: dict[str, list[int]] = defaultdict(list)

    async def record(self, event: MfaAuditEvent) -> None:
        self._by_principal[event.principal].append(len(self._events))
        self._events.append(event)

    async def get_events(
        self,
        principal: str,
        *,
        event_types: list[MfaAuditEventType] | None = None,
        limit: int = 100,
    ) -> list[MfaAuditEvent]:
        """Get audit events for a principal, most recent first."""
        results: list[MfaAuditEvent] = []
        for idx in reversed(self._by_principal.get(principal, [])):
            event = self._events[idx]
            if event_types and event.event_type not in event_types:
                continue
            results.append(event)
            if len(results) >= limit:
                break
        return results

    @property
    def events(self) -> list[MfaAuditEvent]:
        """All recorded events, oldest first."""
        return list(self._events)

    def clear(self) -> None:
        self._events.clear()
        self._by_principal.clear()


__all__: list[str] = ["InMemoryMfaAuditStore"]
