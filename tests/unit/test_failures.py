"""Tests for the failure tracker."""

from __future__ import annotations

import asyncio

import pytest

from mfa_core.adapters.memory import (
    InMemoryFailureRepository,
    InMemoryLockStrategy,
    ManualClock,
)
from mfa_core.failures import FailureTracker


@pytest.fixture
def tracker(locks: InMemoryLockStrategy, clock: ManualClock) -> FailureTracker:
    return FailureTracker(InMemoryFailureRepository(), locks, clock)


class TestFailureTracker:
    """Test sliding window failure counting."""

    @pytest.mark.asyncio
    async def test_counts_up_to_limit(self, tracker: FailureTracker) -> None:
        outcomes = [await tracker.record_failure("alice", 120, 3) for _ in range(3)]

        assert [o.count for o in outcomes] == [1, 2, 3]
        assert not any(o.limit_exceeded for o in outcomes)

    @pytest.mark.asyncio
    async def test_limit_exceeded_on_max_plus_one(self, tracker: FailureTracker) -> None:
        for _ in range(3):
            await tracker.record_failure("alice", 120, 3)

        outcome = await tracker.record_failure("alice", 120, 3)

        assert outcome.limit_exceeded
        assert outcome.count == 4

    @pytest.mark.asyncio
    async def test_failures_outside_window_do_not_count(
        self, tracker: FailureTracker, clock: ManualClock
    ) -> None:
        for _ in range(3):
            await tracker.record_failure("alice", 120, 3)
        clock.advance(121)

        outcome = await tracker.record_failure("alice", 120, 3)

        assert outcome.count == 1
        assert not outcome.limit_exceeded

    @pytest.mark.asyncio
    async def test_window_slides(self, tracker: FailureTracker, clock: ManualClock) -> None:
        await tracker.record_failure("alice", 120, 3)
        clock.advance(100)
        await tracker.record_failure("alice", 120, 3)
        clock.advance(30)

        # The first failure is now 130s old.
        assert await tracker.failure_count("alice", 120) == 1

    @pytest.mark.asyncio
    async def test_success_resets_window(self, tracker: FailureTracker) -> None:
        await tracker.record_failure("alice", 120, 3)
        await tracker.record_failure("alice", 120, 3)

        await tracker.record_success("alice")

        outcome = await tracker.record_failure("alice", 120, 3)
        assert outcome.count == 1

    @pytest.mark.asyncio
    async def test_principals_are_independent(self, tracker: FailureTracker) -> None:
        await tracker.record_failure("alice", 120, 3)
        outcome = await tracker.record_failure("bob", 120, 3)
        assert outcome.count == 1

    @pytest.mark.asyncio
    async def test_concurrent_failures_trigger_exactly_once(
        self, tracker: FailureTracker
    ) -> None:
        outcomes = await asyncio.gather(
            *(tracker.record_failure("alice", 120, 3) for _ in range(4))
        )

        assert sorted(o.count for o in outcomes) == [1, 2, 3, 4]
        assert sum(1 for o in outcomes if o.limit_exceeded) == 1
