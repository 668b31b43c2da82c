"""Exception hierarchy for mfa-core.

MFA errors carry a stable string ``code`` plus named ``arguments`` used for
message interpolation by the presentation layer. They never carry free text
meant for end users.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .locking import ResourceIdentifier


class MfaCoreError(Exception):
    """Root exception for the entire mfa-core package."""


# ═══════════════════════════════════════════════════════════════
# STRUCTURED MFA ERRORS
# ═══════════════════════════════════════════════════════════════


class ErrorLevel(Enum):
    """Where an error applies.

    Session-level errors are fatal to the current flow step and send the
    caller back to the credential step. Factor-level errors let the user
    retry in place.
    """

    SESSION = "session"
    FACTOR = "factor"


class MfaError(MfaCoreError):
    """Base class for all structured MFA errors.

    Attributes:
        code: Stable error code (e.g. ``verify.verification_failed``).
        arguments: Key/value pairs for message interpolation.
        level: Session or factor level.
    """

    level: ErrorLevel = ErrorLevel.FACTOR

    def __init__(
        self,
        code: str,
        arguments: dict[str, str] | None = None,
        *,
        level: ErrorLevel | None = None,
    ) -> None:
        self.code = code
        self.arguments: dict[str, str] = dict(arguments or {})
        if level is not None:
            self.level = level
        super().__init__(code)

    @property
    def is_fatal(self) -> bool:
        return self.level is ErrorLevel.SESSION

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, arguments={self.arguments!r})"


class SessionError(MfaError):
    """Base class for session-level errors."""

    level = ErrorLevel.SESSION


class AuthenticationFailedError(SessionError):
    """Raised for any primary credential failure.

    Unknown users, wrong passwords and empty credentials all map here so that
    callers cannot enumerate accounts.
    """

    def __init__(self) -> None:
        super().__init__("authentication_failed")


class NoActiveSessionError(SessionError):
    """Raised when an operation needs a session and none is active."""

    def __init__(self) -> None:
        super().__init__("no_active_session")


class UserNotFoundError(SessionError):
    """Raised when the session principal disappeared from the directory."""

    def __init__(self) -> None:
        super().__init__("user_not_found")


class SuspendedUserError(SessionError):
    """Raised when the principal is temporarily suspended.

    Attributes:
        remaining_seconds: Exact seconds until the suspension ends.
    """

    def __init__(self, remaining_seconds: int) -> None:
        self.remaining_seconds = remaining_seconds
        super().__init__(
            "suspended_user",
            {"suspensionDurationInSeconds": str(remaining_seconds)},
        )


class UnexpectedMfaError(SessionError):
    """Generic error reported when a collaborator fails."""

    def __init__(self) -> None:
        super().__init__("unexpected_error")


class FactorError(MfaError):
    """Factor-level error. Provider-specific codes use this class directly."""

    level = ErrorLevel.FACTOR


class FactorTypeNotSupportedError(FactorError):
    def __init__(self, factor_type: str) -> None:
        super().__init__("factor_type_not_supported", {"factorType": factor_type})


class RateLimitExceededError(FactorError):
    """Raised when a code is requested again before the resend cooldown.

    The previously issued code stays valid.
    """

    def __init__(self, factor_type: str, user: str, next_retry_in_seconds: int) -> None:
        self.next_retry_in_seconds = next_retry_in_seconds
        super().__init__(
            "prepare.rate_limit_exceeded",
            {
                "factorType": factor_type,
                "user": user,
                "nextRetryInSeconds": str(next_retry_in_seconds),
            },
        )


class FactorAlreadyCompletedError(FactorError):
    def __init__(self, factor_type: str) -> None:
        super().__init__("prepare.factor_already_completed", {"factorType": factor_type})


class FactorNotPreparedError(FactorError):
    def __init__(self, factor_type: str) -> None:
        super().__init__("verify.factor_not_prepared", {"factorType": factor_type})


class VerificationFailedError(FactorError):
    def __init__(self, factor_type: str) -> None:
        super().__init__("verify.verification_failed", {"factorType": factor_type})


class CodeTooShortError(FactorError):
    def __init__(self, code_length: int) -> None:
        super().__init__("verify.code_too_short", {"codeLength": str(code_length)})


# ═══════════════════════════════════════════════════════════════
# DOMAIN / INFRASTRUCTURE ERRORS
# ═══════════════════════════════════════════════════════════════


class InvariantViolationError(MfaCoreError):
    """Raised when a session invariant would be broken."""


class ConfigurationError(MfaCoreError):
    """Raised when the MFA configuration is inconsistent."""


class InvalidCredentialsError(MfaCoreError):
    """May be raised by credential verifiers instead of returning False."""


class InfrastructureError(MfaCoreError):
    """Base class for all infrastructure-related errors."""


class ConcurrencyError(InfrastructureError):
    """Base class for lock and concurrency failures."""


class LockAcquisitionError(ConcurrencyError):
    """Failed to acquire a lock within the timeout."""

    def __init__(
        self,
        resource: ResourceIdentifier,
        timeout: float,
        reason: str | None = None,
    ) -> None:
        self.resource = resource
        self.timeout = timeout
        self.reason = reason

        msg = (
            f"Failed to acquire lock on "
            f"{resource.resource_type}:{resource.resource_id} "
            f"within {timeout}s"
        )
        if reason:
            msg += f" - {reason}"

        super().__init__(msg)


class StoreError(InfrastructureError):
    """Raised when a backing store fails."""


class RedisStoreError(StoreError):
    """Raised when a Redis operation fails."""


__all__: list[str] = [
    "MfaCoreError",
    "ErrorLevel",
    "MfaError",
    "SessionError",
    "AuthenticationFailedError",
    "NoActiveSessionError",
    "UserNotFoundError",
    "SuspendedUserError",
    "UnexpectedMfaError",
    "FactorError",
    "FactorTypeNotSupportedError",
    "RateLimitExceededError",
    "FactorAlreadyCompletedError",
    "FactorNotPreparedError",
    "VerificationFailedError",
    "CodeTooShortError",
    "InvariantViolationError",
    "ConfigurationError",
    "InvalidCredentialsError",
    "InfrastructureError",
    "ConcurrencyError",
    "LockAcquisitionError",
    "StoreError",
    "RedisStoreError",
]
