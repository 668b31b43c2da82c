"""Factor provider protocol and the one-time code provider base class."""

from __future__ import annotations

import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ..codes import generate_numeric_code
from ..exceptions import CodeTooShortError, FactorError, RateLimitExceededError

if TYPE_CHECKING:
    from datetime import datetime

    from ..config import FactorConfig
    from ..domain.session import FactorPreparation, MfaSession
    from ..ports import DirectoryUser
    from ..rate_limit import RateLimiter

logger = logging.getLogger("mfa_core.factors")


@dataclass(frozen=True)
class PreparationContext:
    """Everything a provider needs to issue a challenge.

    Attributes:
        session: The session being prepared (read-only for providers).
        user: Directory attributes of the session principal.
        config: Settings of this factor type.
        now: Current time from the shared clock.
        request_data: Optional caller-supplied data (custom factors).
    """

    session: MfaSession
    user: DirectoryUser
    config: FactorConfig
    now: datetime
    request_data: dict[str, Any] = field(default_factory=dict)

    @property
    def principal(self) -> str:
        return self.session.principal

    @property
    def locale(self) -> str | None:
        return self.session.locale or self.user.locale


@dataclass(frozen=True)
class VerificationContext:
    """Submitted input together with the live challenge it is checked against."""

    session: MfaSession
    preparation: FactorPreparation
    submitted: str
    config: FactorConfig

    @property
    def principal(self) -> str:
        return self.session.principal


@dataclass(frozen=True)
class Challenge:
    """Issued challenge returned by ``IFactorProvider.prepare``.

    Attributes:
        secret: Value to match on verification. Never returned to callers.
        validity_seconds: Lifetime of the challenge.
        details: Public data for the caller, e.g. ``maskedDeliveryAddress``.
    """

    secret: str = field(repr=False)
    validity_seconds: int
    details: dict[str, str] = field(default_factory=dict)


@runtime_checkable
class IFactorProvider(Protocol):
    """Protocol for a factor type (built-in or custom).

    New factor types are added by registering a provider in the
    ``FactorRegistry``; the session manager never changes.
    """

    @property
    def factor_type(self) -> str:
        """Unique factor type identifier (e.g. ``email_code``)."""
        ...

    @property
    def tracks_failures(self) -> bool:
        """Whether failed verifications count toward suspension."""
        ...

    async def prepare(self, context: PreparationContext) -> Challenge:
        """Issue a challenge.

        Raises:
            FactorError: On factor-level refusal (rate limit, missing
                delivery address, delivery failure).
        """
        ...

    async def verify(self, context: VerificationContext) -> bool:
        """Check submitted input against the live challenge.

        Returns:
            True on match, False on mismatch.

        Raises:
            FactorError: If the input is malformed. Malformed input is not
                a failed attempt.
        """
        ...

    def missing_preparation_error(self) -> FactorError:
        """Error reported when the challenge was invalidated or expired."""
        ...


class CodeFactorProvider(ABC):
    """Base class for numeric one-time code factors.

    Handles the resend cooldown, code generation and code comparison.
    Subclasses only implement delivery.
    """

    def __init__(self, rate_limiter: RateLimiter) -> None:
        self._rate_limiter = rate_limiter

    @property
    @abstractmethod
    def factor_type(self) -> str:
        ...

    @property
    def tracks_failures(self) -> bool:
        return True

    def validate(self, context: PreparationContext) -> None:  # noqa: B027
        """Hook run before reserving a generation slot. Raise to refuse."""

    @abstractmethod
    async def deliver(self, context: PreparationContext, code: str) -> dict[str, str]:
        """Deliver ``code`` to the user.

        Returns:
            Public details to return to the caller.
        """
        ...

    async def prepare(self, context: PreparationContext) -> Challenge:
        self.validate(context)

        decision = await self._rate_limiter.check_and_reserve(
            context.principal,
            self.factor_type,
            context.config.resend_cooldown_seconds,
        )
        if not decision.allowed:
            raise RateLimitExceededError(
                self.factor_type, context.principal, decision.retry_after_seconds
            )

        code = generate_numeric_code(context.config.code_length)
        try:
            details = await self.deliver(context, code)
        except Exception:
            # Nothing was delivered, the user may ask again at once.
            await self._rate_limiter.release(context.principal, self.factor_type)
            raise

        logger.info("Code generated for %s/%s", context.principal, self.factor_type)
        return Challenge(
            secret=code,
            validity_seconds=context.config.code_validity_seconds,
            details=details,
        )

    async def verify(self, context: VerificationContext) -> bool:
        submitted = (context.submitted or "").strip()
        if not submitted:
            raise FactorError(f"factor.{self.factor_type}.verification_code_required")
        if len(submitted) < context.config.code_length:
            raise CodeTooShortError(context.config.code_length)
        return secrets.compare_digest(
            submitted.encode("utf-8"), context.preparation.secret.encode("utf-8")
        )

    def missing_preparation_error(self) -> FactorError:
        return FactorError(f"factor.{self.factor_type}.missing_prepared_code")


__all__: list[str] = [
    "PreparationContext",
    "VerificationContext",
    "Challenge",
    "IFactorProvider",
    "CodeFactorProvider",
]
