"""Presentation-facing facade.

``MfaApi`` turns ``MfaService`` outcomes into transport-neutral responses
(``{success, ...} | {error{code, arguments[]}, suspensionDurationInSeconds?}``)
that a GraphQL or REST layer can serialize as is. It never raises.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .domain.session import MfaSessionState
from .exceptions import (
    MfaError,
    NoActiveSessionError,
    SuspendedUserError,
    UnexpectedMfaError,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from .domain.session import MfaSession
    from .service import MfaService

logger = logging.getLogger("mfa_core.api")


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys, ``None`` values omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class MfaErrorArgument(_WireModel):
    name: str
    value: str


class MfaErrorDetail(_WireModel):
    code: str
    arguments: list[MfaErrorArgument] = Field(default_factory=list)

    @classmethod
    def from_error(cls, error: MfaError) -> MfaErrorDetail:
        return cls(
            code=error.code,
            arguments=[
                MfaErrorArgument(name=name, value=value)
                for name, value in error.arguments.items()
            ],
        )

    def argument(self, name: str) -> str | None:
        for arg in self.arguments:
            if arg.name == name:
                return arg.value
        return None


class MfaResponse(_WireModel):
    """Response of every ``MfaApi`` operation.

    Attributes:
        success: Whether the operation succeeded.
        session_id: Handle of a newly initiated session.
        session_state: ``failed`` after a session-level error, otherwise the
            state of the session (absent when there is none).
        required_factors: Factors the session requires, in order.
        completed_factors: Factors already verified.
        remaining_factors: Factors still to verify.
        prepared_factors: Factors a challenge has been issued for.
        masked_delivery_address: Where a prepared code was sent.
        error: Structured error, when ``success`` is False.
        suspension_duration_in_seconds: Remaining suspension, for
            ``suspended_user`` errors.
    """

    success: bool
    session_id: str | None = None
    session_state: str | None = None
    required_factors: list[str] = Field(default_factory=list)
    completed_factors: list[str] = Field(default_factory=list)
    remaining_factors: list[str] = Field(default_factory=list)
    prepared_factors: list[str] = Field(default_factory=list)
    masked_delivery_address: str | None = None
    error: MfaErrorDetail | None = None
    suspension_duration_in_seconds: int | None = None

    @classmethod
    def from_session(
        cls,
        session: MfaSession | None,
        *,
        success: bool = True,
        masked_delivery_address: str | None = None,
    ) -> MfaResponse:
        if session is None:
            return cls(success=success)
        return cls(
            success=success,
            session_state=session.state.value,
            required_factors=list(session.required_factors),
            completed_factors=list(session.completed_factors),
            remaining_factors=session.remaining_factors,
            prepared_factors=list(session.prepared_factors),
            masked_delivery_address=masked_delivery_address,
        )


class MfaApi:
    """RPC-style surface over ``MfaService``.

    Session-level errors are reported with ``sessionState = failed`` so the
    caller goes back to the credential step; factor-level errors keep the
    current session state so the user can retry in place.

    Args:
        service: The session manager.
        suspension_rounding_seconds: When set, reported suspension durations
            are rounded up to a multiple of this value (e.g. 3600 to display
            whole hours). The core always works with exact seconds.
    """

    def __init__(
        self,
        service: MfaService,
        *,
        suspension_rounding_seconds: int | None = None,
    ) -> None:
        if suspension_rounding_seconds is not None and suspension_rounding_seconds <= 0:
            raise ValueError("suspension_rounding_seconds must be positive")
        self._service = service
        self._rounding = suspension_rounding_seconds

    def available_factors(self) -> list[str]:
        """Factors a new session would require; empty when MFA is disabled."""
        return list(self._service.available_factors())

    async def initiate(self, username: str, password: str) -> MfaResponse:
        """Check credentials; ``sessionId`` of the response addresses the new session."""

        async def run() -> MfaResponse:
            session = await self._service.initiate(username, password)
            return MfaResponse.from_session(session).model_copy(
                update={"session_id": session.id}
            )

        return await self._guard(run, None)

    async def prepare(
        self,
        session_id: str,
        factor_type: str,
        request_data: dict[str, Any] | None = None,
    ) -> MfaResponse:
        async def run() -> MfaResponse:
            session = await self._service.prepare(
                session_id, factor_type, request_data=request_data
            )
            details = session.preparations[factor_type].details
            return MfaResponse.from_session(
                session, masked_delivery_address=details.get("maskedDeliveryAddress")
            )

        return await self._guard(run, session_id)

    async def verify(self, session_id: str, factor_type: str, code: str) -> MfaResponse:
        async def run() -> MfaResponse:
            return MfaResponse.from_session(
                await self._service.verify(session_id, factor_type, code)
            )

        return await self._guard(run, session_id)

    async def clear(self, session_id: str) -> MfaResponse:
        async def run() -> MfaResponse:
            await self._service.clear(session_id)
            return MfaResponse(success=True)

        return await self._guard(run, session_id)

    async def session(self, session_id: str) -> MfaResponse:
        """Describe the current session, or report ``no_active_session``."""

        async def run() -> MfaResponse:
            session = await self._service.get_session(session_id)
            if session is None:
                raise NoActiveSessionError()
            return MfaResponse.from_session(session)

        return await self._guard(run, session_id)

    # ═══════════════════════════════════════════════════════════════
    # ERROR MAPPING
    # ═══════════════════════════════════════════════════════════════

    async def _guard(
        self,
        operation: Callable[[], Awaitable[MfaResponse]],
        session_id: str | None,
    ) -> MfaResponse:
        try:
            return await operation()
        except MfaError as exc:
            return await self._error_response(exc, session_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Unexpected error during MFA operation: %s", exc)
            logger.debug("Unexpected error details", exc_info=True)
            return await self._error_response(UnexpectedMfaError(), None)

    async def _error_response(self, error: MfaError, session_id: str | None) -> MfaResponse:
        suspension: int | None = None
        if isinstance(error, SuspendedUserError):
            suspension = self.round_suspension(error.remaining_seconds)
            error = SuspendedUserError(suspension)

        detail = MfaErrorDetail.from_error(error)
        if error.is_fatal:
            return MfaResponse(
                success=False,
                session_state=MfaSessionState.FAILED.value,
                error=detail,
                suspension_duration_in_seconds=suspension,
            )

        # Factor-level: the user retries in place, report the current progress.
        session = None
        if session_id:
            try:
                session = await self._service.get_session(session_id)
            except Exception:  # noqa: BLE001
                logger.debug("Session lookup failed while reporting %s", error.code, exc_info=True)
        response = MfaResponse.from_session(session, success=False)
        return response.model_copy(update={"error": detail})

    def round_suspension(self, remaining_seconds: int) -> int:
        """Apply the display rounding policy to an exact remaining duration."""
        if not self._rounding:
            return remaining_seconds
        return math.ceil(remaining_seconds / self._rounding) * self._rounding


__all__: list[str] = [
    "MfaErrorArgument",
    "MfaErrorDetail",
    "MfaResponse",
    "MfaApi",
]
