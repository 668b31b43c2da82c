"""MFA session aggregate and one-time code preparations."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import InvariantViolationError


class MfaSessionState(str, Enum):
    """Lifecycle states of an MFA session.

    ``COMPLETED`` and ``FAILED`` are terminal.
    """

    INITIATED = "initiated"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class FactorPreparation(BaseModel):
    """A generated challenge for one (session, factor type) pair.

    ``secret`` is matched against user input and is never exposed to callers.
    ``details`` holds public data such as the masked delivery address.
    """

    model_config = ConfigDict(frozen=True)

    factor_type: str
    secret: str = Field(repr=False)
    generated_at: datetime
    expires_at: datetime
    consumed: bool = False
    details: dict[str, str] = Field(default_factory=dict)

    def is_live(self, now: datetime) -> bool:
        return not self.consumed and now < self.expires_at

    def consume(self) -> FactorPreparation:
        return self.model_copy(update={"consumed": True})


class MfaSession(BaseModel):
    """Server-side record of one multi-factor authentication attempt.

    Invariants:
        - ``completed_factors`` is always a subset of ``required_factors``.
        - ``state`` is ``COMPLETED`` exactly when every required factor is
          completed.

    Only ``MfaService`` mutates sessions, always while holding the
    principal lock.
    """

    id: str
    principal: str
    required_factors: tuple[str, ...] = ()
    completed_factors: list[str] = Field(default_factory=list)
    prepared_factors: list[str] = Field(default_factory=list)
    preparations: dict[str, FactorPreparation] = Field(default_factory=dict)
    state: MfaSessionState = MfaSessionState.INITIATED
    locale: str | None = None
    created_at: datetime
    last_activity_at: datetime
    expires_at: datetime

    @classmethod
    def start(
        cls,
        *,
        session_id: str,
        principal: str,
        required_factors: tuple[str, ...],
        now: datetime,
        ttl_seconds: int,
        locale: str | None = None,
    ) -> MfaSession:
        """Create a session; with no required factor it is completed at once."""
        session = cls(
            id=session_id,
            principal=principal,
            required_factors=required_factors,
            locale=locale,
            created_at=now,
            last_activity_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds),
        )
        if not required_factors:
            session.state = MfaSessionState.COMPLETED
        return session

    # ===== QUERY METHODS =====

    @property
    def is_terminal(self) -> bool:
        return self.state in (MfaSessionState.COMPLETED, MfaSessionState.FAILED)

    @property
    def remaining_factors(self) -> list[str]:
        return [f for f in self.required_factors if f not in self.completed_factors]

    @property
    def current_factor(self) -> str | None:
        """First required factor not yet completed, in declared order."""
        remaining = self.remaining_factors
        return remaining[0] if remaining else None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def is_factor_prepared(self, factor_type: str) -> bool:
        return factor_type in self.prepared_factors

    def is_factor_completed(self, factor_type: str) -> bool:
        return factor_type in self.completed_factors

    def live_preparation(self, factor_type: str, now: datetime) -> FactorPreparation | None:
        preparation = self.preparations.get(factor_type)
        if preparation is None or not preparation.is_live(now):
            return None
        return preparation

    # ===== STATE TRANSITIONS =====

    def touch(self, now: datetime, ttl_seconds: int) -> None:
        """Record activity and slide the expiry (failed sessions keep theirs)."""
        self.last_activity_at = now
        if self.state is not MfaSessionState.FAILED:
            self.expires_at = now + timedelta(seconds=ttl_seconds)

    def record_preparation(self, preparation: FactorPreparation) -> None:
        """Store a new challenge, superseding any previous one for the factor."""
        factor_type = preparation.factor_type
        self._require_factor(factor_type)
        if self.is_terminal:
            raise InvariantViolationError(
                f"Cannot prepare factor {factor_type} on a {self.state.value} session"
            )
        self.preparations[factor_type] = preparation
        if factor_type not in self.prepared_factors:
            self.prepared_factors.append(factor_type)
        self.state = MfaSessionState.IN_PROGRESS

    def mark_factor_completed(self, factor_type: str) -> None:
        """Consume the live challenge and mark the factor as verified."""
        self._require_factor(factor_type)
        if self.is_terminal:
            raise InvariantViolationError(
                f"Cannot complete factor {factor_type} on a {self.state.value} session"
            )
        preparation = self.preparations.get(factor_type)
        if preparation is not None:
            self.preparations[factor_type] = preparation.consume()
        if factor_type not in self.completed_factors:
            self.completed_factors.append(factor_type)
        if not self.remaining_factors:
            self.state = MfaSessionState.COMPLETED
        else:
            self.state = MfaSessionState.IN_PROGRESS

    def fail(self, now: datetime, until: datetime) -> None:
        """Move to ``FAILED``, drop every pending code, keep the record until ``until``."""
        self.preparations.clear()
        self.state = MfaSessionState.FAILED
        self.last_activity_at = now
        self.expires_at = until

    def _require_factor(self, factor_type: str) -> None:
        if factor_type not in self.required_factors:
            raise InvariantViolationError(
                f"Factor {factor_type} is not required by session for {self.principal}"
            )

    def summary(self) -> dict[str, Any]:
        """Public view of the session, without secrets."""
        return {
            "state": self.state.value,
            "required_factors": list(self.required_factors),
            "completed_factors": list(self.completed_factors),
            "remaining_factors": self.remaining_factors,
        }


__all__: list[str] = ["MfaSessionState", "FactorPreparation", "MfaSession"]
