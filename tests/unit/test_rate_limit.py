"""Tests for the resend cooldown."""

from __future__ import annotations

import asyncio

import pytest

from mfa_core.adapters.memory import (
    InMemoryLockStrategy,
    InMemoryRateLimitRepository,
    ManualClock,
)
from mfa_core.rate_limit import RateLimitDecision, RateLimiter


@pytest.fixture
def repository(clock: ManualClock) -> InMemoryRateLimitRepository:
    return InMemoryRateLimitRepository(clock)


@pytest.fixture
def limiter(
    repository: InMemoryRateLimitRepository,
    locks: InMemoryLockStrategy,
    clock: ManualClock,
) -> RateLimiter:
    return RateLimiter(repository, locks, clock)


class TestRateLimiter:
    """Test RateLimiter.check_and_reserve and release."""

    @pytest.mark.asyncio
    async def test_first_request_is_allowed(self, limiter: RateLimiter) -> None:
        decision = await limiter.check_and_reserve("alice", "email_code", 30)
        assert decision == RateLimitDecision(allowed=True, retry_after_seconds=0)

    @pytest.mark.asyncio
    async def test_second_request_within_cooldown_is_limited(
        self, limiter: RateLimiter, clock: ManualClock
    ) -> None:
        await limiter.check_and_reserve("alice", "email_code", 30)
        clock.advance(10.2)

        decision = await limiter.check_and_reserve("alice", "email_code", 30)

        assert not decision.allowed
        # 19.8s left, rounded up
        assert decision.retry_after_seconds == 20

    @pytest.mark.asyncio
    async def test_limited_request_does_not_extend_window(
        self, limiter: RateLimiter, clock: ManualClock
    ) -> None:
        await limiter.check_and_reserve("alice", "email_code", 3)

        countdowns = []
        for _ in range(3):
            decision = await limiter.check_and_reserve("alice", "email_code", 3)
            countdowns.append(decision.retry_after_seconds)
            clock.advance(1)

        assert countdowns == [3, 2, 1]
        decision = await limiter.check_and_reserve("alice", "email_code", 3)
        assert decision.allowed

    @pytest.mark.asyncio
    async def test_allowed_once_cooldown_elapsed(
        self, limiter: RateLimiter, clock: ManualClock
    ) -> None:
        await limiter.check_and_reserve("alice", "email_code", 30)
        clock.advance(30)

        decision = await limiter.check_and_reserve("alice", "email_code", 30)
        assert decision.allowed

    @pytest.mark.asyncio
    async def test_keys_are_per_principal_and_factor(self, limiter: RateLimiter) -> None:
        await limiter.check_and_reserve("alice", "email_code", 30)

        assert (await limiter.check_and_reserve("bob", "email_code", 30)).allowed
        assert (await limiter.check_and_reserve("alice", "sms_code", 30)).allowed

    @pytest.mark.asyncio
    async def test_release_allows_immediate_generation(self, limiter: RateLimiter) -> None:
        await limiter.check_and_reserve("alice", "email_code", 30)
        await limiter.release("alice", "email_code")

        assert (await limiter.check_and_reserve("alice", "email_code", 30)).allowed

    @pytest.mark.asyncio
    async def test_concurrent_reservations_only_one_allowed(
        self, limiter: RateLimiter
    ) -> None:
        decisions = await asyncio.gather(
            *(limiter.check_and_reserve("alice", "email_code", 30) for _ in range(10))
        )
        assert sum(1 for d in decisions if d.allowed) == 1
