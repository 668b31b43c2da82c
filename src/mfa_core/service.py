"""MFA session manager.

``MfaService`` owns the session lifecycle::

    initiate ──> INITIATED ──prepare──> IN_PROGRESS ──verify*──> COMPLETED
                                              │
                                              └── too many failures ──> FAILED

Every operation that reads then writes principal-scoped state runs under a
per-principal lock, and the session is re-read once the lock is held.
"""

from __future__ import annotations

import logging
import secrets
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from .audit.events import MfaAuditEvent, MfaAuditEventType
from .config import ConfigurationHolder, MfaConfig
from .domain.session import FactorPreparation, MfaSession, MfaSessionState
from .exceptions import (
    AuthenticationFailedError,
    FactorAlreadyCompletedError,
    FactorNotPreparedError,
    FactorTypeNotSupportedError,
    InvalidCredentialsError,
    NoActiveSessionError,
    RateLimitExceededError,
    SuspendedUserError,
    UserNotFoundError,
    VerificationFailedError,
)
from .factors.base import PreparationContext, VerificationContext
from .locking import PRINCIPAL_RESOURCE, ResourceIdentifier, hold_lock

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from .clock import IClock
    from .factors.base import IFactorProvider
    from .factors.registry import FactorRegistry
    from .failures import FailureTracker
    from .locking import ILockStrategy
    from .ports import (
        ICredentialVerifier,
        IMfaAuditStore,
        ISessionStore,
        IUserDirectory,
    )
    from .rate_limit import RateLimiter
    from .suspension import SuspensionService

logger = logging.getLogger("mfa_core.service")


class MfaService:
    """Orchestrates primary authentication and the secondary factors.

    Sessions are addressed by an opaque handle (``MfaSession.id``) that the
    caller binds to its own HTTP session or cookie.

    Example:
        ```python
        session = await service.initiate("alice", "secret")
        session = await service.prepare(session.id, "email_code")
        session = await service.verify(session.id, "email_code", "123456")
        assert session.state is MfaSessionState.COMPLETED
        ```
    """

    def __init__(
        self,
        *,
        registry: FactorRegistry,
        credential_verifier: ICredentialVerifier,
        user_directory: IUserDirectory,
        session_store: ISessionStore,
        suspension: SuspensionService,
        failure_tracker: FailureTracker,
        rate_limiter: RateLimiter,
        lock_strategy: ILockStrategy,
        clock: IClock,
        config: MfaConfig | ConfigurationHolder | None = None,
        audit_store: IMfaAuditStore | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            registry: Registered factor providers.
            credential_verifier: Primary username/password check.
            user_directory: User attribute lookups.
            session_store: MFA session storage.
            suspension: Suspension records.
            failure_tracker: Verification failure window.
            rate_limiter: Resend cooldown, released on success and suspension.
            lock_strategy: Per-principal locks.
            clock: Clock shared with the other services.
            config: Policy, or a holder whose current policy is read on
                every call.
            audit_store: Optional audit trail.
        """
        self._registry = registry
        self._verifier = credential_verifier
        self._directory = user_directory
        self._store = session_store
        self._suspension = suspension
        self._failures = failure_tracker
        self._rate_limiter = rate_limiter
        self._locks = lock_strategy
        self._clock = clock
        self._audit_store = audit_store
        if isinstance(config, ConfigurationHolder):
            self._config_holder = config
        else:
            self._config_holder = ConfigurationHolder(config)

    @property
    def config(self) -> MfaConfig:
        return self._config_holder.current

    def available_factors(self) -> tuple[str, ...]:
        """Configured factors that have a registered provider, in declared order."""
        config = self.config
        if not config.enabled:
            return ()
        return tuple(f for f in config.required_factors if f in self._registry)

    # ═══════════════════════════════════════════════════════════════
    # OPERATIONS
    # ═══════════════════════════════════════════════════════════════

    async def initiate(self, username: str, password: str) -> MfaSession:
        """Check primary credentials and open an MFA session.

        Raises:
            AuthenticationFailedError: Empty or wrong credentials, unknown user.
            SuspendedUserError: The principal is suspended; no session is created.
        """
        if not username or not password:
            raise AuthenticationFailedError()

        config = self.config
        async with self._principal_lock(username):
            status = await self._suspension.status(
                username, config.user_temporary_suspension_seconds
            )
            if status.suspended:
                await self._audit(
                    MfaAuditEventType.LOGIN_FAILED,
                    username,
                    success=False,
                    error_code="suspended_user",
                )
                raise SuspendedUserError(status.remaining_seconds)

            try:
                valid = await self._verifier.verify(username, password)
            except InvalidCredentialsError:
                valid = False
            if not valid:
                logger.info("Primary authentication failed for %s", username)
                await self._audit(
                    MfaAuditEventType.LOGIN_FAILED,
                    username,
                    success=False,
                    error_code="authentication_failed",
                )
                raise AuthenticationFailedError()

            user = await self._directory.get_user(username)
            now = self._clock.now()
            session = MfaSession.start(
                session_id=secrets.token_urlsafe(32),
                principal=username,
                required_factors=self.available_factors(),
                now=now,
                ttl_seconds=config.session_ttl_seconds,
                locale=user.locale if user is not None else None,
            )
            await self._store.save(session)

        logger.info(
            "MFA session initiated for %s, required factors %s",
            username,
            list(session.required_factors),
        )
        await self._audit(
            MfaAuditEventType.SESSION_INITIATED,
            username,
            session_id=session.id,
            metadata={"required_factors": list(session.required_factors)},
        )
        if session.state is MfaSessionState.COMPLETED:
            await self._audit(
                MfaAuditEventType.SESSION_COMPLETED, username, session_id=session.id
            )
        return session

    async def prepare(
        self,
        session_id: str,
        factor_type: str,
        *,
        request_data: dict[str, Any] | None = None,
    ) -> MfaSession:
        """Issue a challenge for ``factor_type``.

        A new challenge supersedes the previous one, unless the resend
        cooldown refuses it; then the previous one stays valid.

        Returns:
            The updated session; the public challenge details are in
            ``session.preparations[factor_type].details``.

        Raises:
            NoActiveSessionError: Unknown, expired or cleared session.
            FactorTypeNotSupportedError: No provider, or not required here.
            FactorAlreadyCompletedError: Factor already verified.
            SuspendedUserError: The principal is suspended.
            UserNotFoundError: The principal left the user directory.
            RateLimitExceededError: Resend cooldown not elapsed.
        """
        principal = await self._principal_of(session_id)
        config = self.config
        async with self._principal_lock(principal):
            session = await self._load_active(session_id)
            provider = self._provider_for(session, factor_type)

            if session.state is MfaSessionState.FAILED:
                await self._raise_if_suspended(principal)
                raise NoActiveSessionError()
            if session.is_factor_completed(factor_type):
                raise FactorAlreadyCompletedError(factor_type)

            await self._raise_if_suspended(principal)

            user = await self._directory.get_user(principal)
            if user is None:
                raise UserNotFoundError()

            now = self._clock.now()
            context = PreparationContext(
                session=session,
                user=user,
                config=config.factor(factor_type),
                now=now,
                request_data=dict(request_data or {}),
            )
            try:
                challenge = await provider.prepare(context)
            except RateLimitExceededError as exc:
                await self._audit(
                    MfaAuditEventType.FACTOR_RATE_LIMITED,
                    principal,
                    session_id=session.id,
                    factor_type=factor_type,
                    success=False,
                    error_code=exc.code,
                )
                raise

            session.record_preparation(
                FactorPreparation(
                    factor_type=factor_type,
                    secret=challenge.secret,
                    generated_at=now,
                    expires_at=now + timedelta(seconds=challenge.validity_seconds),
                    details=challenge.details,
                )
            )
            session.touch(now, config.session_ttl_seconds)
            await self._store.save(session)

        await self._audit(
            MfaAuditEventType.FACTOR_PREPARED,
            principal,
            session_id=session.id,
            factor_type=factor_type,
        )
        return session

    async def verify(self, session_id: str, factor_type: str, submitted: str) -> MfaSession:
        """Check a submitted value for ``factor_type``.

        Factors are verified in the declared order. A verified challenge is
        consumed and cannot be reused.

        Raises:
            NoActiveSessionError: Unknown, expired or cleared session.
            FactorTypeNotSupportedError: No provider, or not required here.
            FactorNotPreparedError: Never prepared, or not the current factor.
            FactorError: Invalidated or expired challenge, malformed input.
            SuspendedUserError: The principal is (or just got) suspended.
            VerificationFailedError: Mismatch below the failure limit.
        """
        principal = await self._principal_of(session_id)
        config = self.config
        async with self._principal_lock(principal):
            session = await self._load_active(session_id)
            provider = self._provider_for(session, factor_type)
            now = self._clock.now()

            if session.is_factor_completed(factor_type):
                raise provider.missing_preparation_error()
            if factor_type != session.current_factor:
                raise FactorNotPreparedError(factor_type)
            if not session.is_factor_prepared(factor_type):
                raise FactorNotPreparedError(factor_type)

            preparation = session.live_preparation(factor_type, now)
            if preparation is None:
                raise provider.missing_preparation_error()

            await self._raise_if_suspended(principal)

            matched = await provider.verify(
                VerificationContext(
                    session=session,
                    preparation=preparation,
                    submitted=submitted,
                    config=config.factor(factor_type),
                )
            )
            if matched:
                await self._complete_factor(session, factor_type)
                return session

            await self._handle_mismatch(session, factor_type, provider)
        raise VerificationFailedError(factor_type)

    async def clear(self, session_id: str) -> None:
        """Discard a session without completing it.

        Suspension, failure and rate-limit state are principal-scoped and
        survive.

        Raises:
            NoActiveSessionError: Nothing to clear.
        """
        session = await self._store.get(session_id) if session_id else None
        if session is None:
            raise NoActiveSessionError()
        async with self._principal_lock(session.principal):
            deleted = await self._store.delete(session_id)
        if not deleted:
            raise NoActiveSessionError()

        logger.info("MFA session cleared for %s", session.principal)
        await self._audit(
            MfaAuditEventType.SESSION_CLEARED, session.principal, session_id=session_id
        )

    async def get_session(self, session_id: str) -> MfaSession | None:
        """Return the active session behind ``session_id``, if any."""
        if not session_id:
            return None
        session = await self._store.get(session_id)
        if session is None or session.is_expired(self._clock.now()):
            return None
        return session

    async def lift_suspension(self, principal: str) -> None:
        """Administrative unsuspend; also resets the failure window."""
        await self._suspension.lift(principal)
        await self._failures.clear(principal)
        await self._audit(MfaAuditEventType.USER_UNSUSPENDED, principal)

    # ═══════════════════════════════════════════════════════════════
    # INTERNALS
    # ═══════════════════════════════════════════════════════════════

    @asynccontextmanager
    async def _principal_lock(self, principal: str) -> AsyncIterator[None]:
        resource = ResourceIdentifier(PRINCIPAL_RESOURCE, principal)
        async with hold_lock(
            self._locks, resource, timeout=self.config.lock_timeout_seconds
        ):
            yield

    async def _principal_of(self, session_id: str) -> str:
        return (await self._load_active(session_id)).principal

    async def _load_active(self, session_id: str) -> MfaSession:
        session = await self.get_session(session_id)
        if session is None:
            raise NoActiveSessionError()
        return session

    def _provider_for(self, session: MfaSession, factor_type: str) -> IFactorProvider:
        provider = self._registry.get(factor_type)
        if provider is None or factor_type not in session.required_factors:
            raise FactorTypeNotSupportedError(factor_type)
        return provider

    async def _raise_if_suspended(self, principal: str) -> None:
        status = await self._suspension.status(
            principal, self.config.user_temporary_suspension_seconds
        )
        if status.suspended:
            raise SuspendedUserError(status.remaining_seconds)

    async def _complete_factor(self, session: MfaSession, factor_type: str) -> None:
        session.mark_factor_completed(factor_type)
        session.touch(self._clock.now(), self.config.session_ttl_seconds)
        await self._store.save(session)

        await self._failures.record_success(session.principal)
        await self._rate_limiter.release(session.principal, factor_type)

        logger.info("Factor %s verified for %s", factor_type, session.principal)
        await self._audit(
            MfaAuditEventType.FACTOR_VERIFIED,
            session.principal,
            session_id=session.id,
            factor_type=factor_type,
        )
        if session.state is MfaSessionState.COMPLETED:
            logger.info("MFA session completed for %s", session.principal)
            await self._audit(
                MfaAuditEventType.SESSION_COMPLETED,
                session.principal,
                session_id=session.id,
            )

    async def _handle_mismatch(
        self, session: MfaSession, factor_type: str, provider: IFactorProvider
    ) -> None:
        """Record a failed attempt; raises ``SuspendedUserError`` past the limit."""
        config = self.config
        principal = session.principal
        await self._audit(
            MfaAuditEventType.FACTOR_FAILED,
            principal,
            session_id=session.id,
            factor_type=factor_type,
            success=False,
            error_code="verify.verification_failed",
        )
        if provider.tracks_failures:
            outcome = await self._failures.record_failure(
                principal,
                config.auth_failures_window_seconds,
                config.max_auth_failures_before_lock,
            )
            if outcome.limit_exceeded:
                remaining = await self._suspend(session)
                raise SuspendedUserError(remaining)

        session.touch(self._clock.now(), config.session_ttl_seconds)
        await self._store.save(session)

    async def _suspend(self, session: MfaSession) -> int:
        config = self.config
        principal = session.principal
        status = await self._suspension.suspend(
            principal, config.user_temporary_suspension_seconds
        )
        now = self._clock.now()
        session.fail(now, status.suspended_until or now)
        await self._store.save(session)

        # The window is reset so that it never grows past the limit.
        await self._failures.clear(principal)
        for required in session.required_factors:
            await self._rate_limiter.release(principal, required)

        await self._audit(
            MfaAuditEventType.USER_SUSPENDED,
            principal,
            session_id=session.id,
            metadata={"suspension_seconds": status.remaining_seconds},
        )
        return status.remaining_seconds

    async def _audit(
        self,
        event_type: MfaAuditEventType,
        principal: str,
        **kwargs: Any,
    ) -> None:
        if self._audit_store is None:
            return
        await self._audit_store.record(
            MfaAuditEvent(
                event_type=event_type,
                principal=principal,
                timestamp=self._clock.now(),
                **kwargs,
            )
        )


__all__: list[str] = ["MfaService"]
