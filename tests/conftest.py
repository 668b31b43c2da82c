"""Test configuration and fixtures."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

import pytest

from mfa_core import (
    DirectoryUser,
    EmailCodeFactorProvider,
    FactorRegistry,
    FailureTracker,
    InMemoryMfaAuditStore,
    MfaConfig,
    MfaService,
    RateLimiter,
    SuspensionService,
)
from mfa_core.adapters.memory import (
    InMemoryFailureRepository,
    InMemoryLockStrategy,
    InMemoryMfaSessionStore,
    InMemoryRateLimitRepository,
    InMemorySender,
    InMemorySuspensionRepository,
    InMemoryUserDirectory,
    ManualClock,
    StaticCredentialVerifier,
)

CODE_PATTERN = re.compile(r"\b(\d{4,12})\b")


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests that require external services",
    )


def last_code(sender: InMemorySender) -> str:
    """Extract the code from the last message sent."""
    message = sender.last_message
    assert message is not None, "no message was sent"
    match = CODE_PATTERN.search(message.content.body_text)
    assert match is not None, "no code in message body"
    return match.group(1)


def wrong_code(code: str) -> str:
    """Return a code of the same length that differs from ``code``."""
    return "".join("1" if c == "0" else "0" for c in code)


@dataclass
class MfaHarness:
    """Everything wired around one MfaService, for assertions."""

    service: MfaService
    clock: ManualClock
    sender: InMemorySender
    directory: InMemoryUserDirectory
    verifier: StaticCredentialVerifier
    registry: FactorRegistry
    sessions: InMemoryMfaSessionStore
    suspensions: InMemorySuspensionRepository
    failures: InMemoryFailureRepository
    rate_limits: InMemoryRateLimitRepository
    locks: InMemoryLockStrategy
    rate_limiter: RateLimiter
    failure_tracker: FailureTracker
    suspension: SuspensionService
    audit: InMemoryMfaAuditStore

    def last_code(self) -> str:
        return last_code(self.sender)

    @staticmethod
    def wrong_code(code: str) -> str:
        return wrong_code(code)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def locks() -> InMemoryLockStrategy:
    return InMemoryLockStrategy()


@pytest.fixture
def mfa_config() -> MfaConfig:
    """Default policy used by the scenarios: 3 failures, 3s resend cooldown."""
    return MfaConfig.from_mapping(
        {
            "maxAuthFailuresBeforeLock": 3,
            "authFailuresWindowSeconds": 120,
            "userTemporarySuspensionSeconds": 600,
            "requiredFactors": ["email_code"],
            "factors": {"email_code": {"resendCooldownSeconds": 3}},
        }
    )


@pytest.fixture
def make_harness(clock: ManualClock) -> Callable[..., MfaHarness]:
    """Factory building a fully wired in-memory MfaService."""

    def factory(config: MfaConfig | None = None) -> MfaHarness:
        locks = InMemoryLockStrategy()
        sender = InMemorySender()
        directory = InMemoryUserDirectory(
            [
                DirectoryUser("alice", email="alice@example.com", locale="en"),
                DirectoryUser("bob", email="bob@example.com", locale="fr"),
                DirectoryUser("carol"),
            ]
        )
        verifier = StaticCredentialVerifier(
            {"alice": "correct", "bob": "hunter2", "carol": "carol-pw"}
        )
        sessions = InMemoryMfaSessionStore(clock)
        suspensions = InMemorySuspensionRepository()
        failures = InMemoryFailureRepository()
        rate_limits = InMemoryRateLimitRepository(clock)
        rate_limiter = RateLimiter(rate_limits, locks, clock)
        failure_tracker = FailureTracker(failures, locks, clock)
        suspension = SuspensionService(suspensions, locks, clock)
        registry = FactorRegistry([EmailCodeFactorProvider(rate_limiter, sender)])
        audit = InMemoryMfaAuditStore()
        service = MfaService(
            registry=registry,
            credential_verifier=verifier,
            user_directory=directory,
            session_store=sessions,
            suspension=suspension,
            failure_tracker=failure_tracker,
            rate_limiter=rate_limiter,
            lock_strategy=locks,
            clock=clock,
            config=config,
            audit_store=audit,
        )
        return MfaHarness(
            service=service,
            clock=clock,
            sender=sender,
            directory=directory,
            verifier=verifier,
            registry=registry,
            sessions=sessions,
            suspensions=suspensions,
            failures=failures,
            rate_limits=rate_limits,
            locks=locks,
            rate_limiter=rate_limiter,
            failure_tracker=failure_tracker,
            suspension=suspension,
            audit=audit,
        )

    return factory


@pytest.fixture
def harness(
    make_harness: Callable[..., MfaHarness], mfa_config: MfaConfig
) -> MfaHarness:
    return make_harness(mfa_config)
