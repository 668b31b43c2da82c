"""mfa-core: multi-factor authentication session manager.

Drives one or more secondary factors after a primary credential check, with
resend throttling, failure tracking and temporary suspension of principals.
"""

from .api import MfaApi, MfaErrorArgument, MfaErrorDetail, MfaResponse
from .audit import InMemoryMfaAuditStore, MfaAuditEvent, MfaAuditEventType
from .clock import IClock, SystemClock
from .codes import generate_numeric_code, mask_email
from .config import ConfigurationHolder, FactorConfig, MfaConfig
from .domain import FactorPreparation, MfaSession, MfaSessionState
from .exceptions import (
    AuthenticationFailedError,
    CodeTooShortError,
    ConfigurationError,
    ErrorLevel,
    FactorAlreadyCompletedError,
    FactorError,
    FactorNotPreparedError,
    FactorTypeNotSupportedError,
    InvalidCredentialsError,
    LockAcquisitionError,
    MfaCoreError,
    MfaError,
    NoActiveSessionError,
    RateLimitExceededError,
    SessionError,
    SuspendedUserError,
    UnexpectedMfaError,
    UserNotFoundError,
    VerificationFailedError,
)
from .factors import (
    EMAIL_CODE_FACTOR,
    CodeFactorProvider,
    EmailCodeFactorProvider,
    FactorRegistry,
    IFactorProvider,
)
from .failures import FailureOutcome, FailureTracker
from .locking import ILockStrategy, ResourceIdentifier
from .notifications import (
    DeliveryRecord,
    INotificationSender,
    NotificationChannel,
    RenderedNotification,
)
from .ports import (
    DirectoryUser,
    ICredentialVerifier,
    IFailureRepository,
    IMfaAuditStore,
    IRateLimitRepository,
    ISessionStore,
    ISuspensionRepository,
    IUserDirectory,
)
from .rate_limit import RateLimitDecision, RateLimiter
from .service import MfaService
from .suspension import SuspensionService, SuspensionStatus

__version__ = "0.1.0"

__all__: list[str] = [
    # Facade
    "MfaApi",
    "MfaResponse",
    "MfaErrorDetail",
    "MfaErrorArgument",
    "MfaService",
    # Domain
    "MfaSession",
    "MfaSessionState",
    "FactorPreparation",
    # Configuration
    "MfaConfig",
    "FactorConfig",
    "ConfigurationHolder",
    # Components
    "generate_numeric_code",
    "mask_email",
    "RateLimiter",
    "RateLimitDecision",
    "FailureTracker",
    "FailureOutcome",
    "SuspensionService",
    "SuspensionStatus",
    "EMAIL_CODE_FACTOR",
    "CodeFactorProvider",
    "EmailCodeFactorProvider",
    "FactorRegistry",
    "IFactorProvider",
    # Ports
    "IClock",
    "SystemClock",
    "ILockStrategy",
    "ResourceIdentifier",
    "ICredentialVerifier",
    "IUserDirectory",
    "DirectoryUser",
    "ISessionStore",
    "ISuspensionRepository",
    "IFailureRepository",
    "IRateLimitRepository",
    "IMfaAuditStore",
    "INotificationSender",
    "NotificationChannel",
    "RenderedNotification",
    "DeliveryRecord",
    # Audit
    "MfaAuditEvent",
    "MfaAuditEventType",
    "InMemoryMfaAuditStore",
    # Errors
    "MfaCoreError",
    "MfaError",
    "ErrorLevel",
    "SessionError",
    "FactorError",
    "AuthenticationFailedError",
    "NoActiveSessionError",
    "UserNotFoundError",
    "SuspendedUserError",
    "UnexpectedMfaError",
    "FactorTypeNotSupportedError",
    "RateLimitExceededError",
    "FactorAlreadyCompletedError",
    "FactorNotPreparedError",
    "VerificationFailedError",
    "CodeTooShortError",
    "InvalidCredentialsError",
    "ConfigurationError",
    "LockAcquisitionError",
]
