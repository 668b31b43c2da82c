"""Sliding window of failed code verifications per principal."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from .locking import FAILURES_RESOURCE, ResourceIdentifier, hold_lock

if TYPE_CHECKING:
    from datetime import datetime

    from .clock import IClock
    from .locking import ILockStrategy
    from .ports import IFailureRepository

logger = logging.getLogger("mfa_core.failures")


@dataclass(frozen=True)
class FailureOutcome:
    """Result of ``FailureTracker.record_failure``.

    Attributes:
        limit_exceeded: True when the failure count went above the maximum;
            the caller is expected to suspend the principal.
        count: Failures in the window, the new one included.
    """

    limit_exceeded: bool
    count: int


class FailureTracker:
    """Counts verification failures inside a sliding time window.

    Entries older than the window are pruned on every write. Check and
    update run under a per-principal lock so that two concurrent failures
    cannot both read ``max - 1`` and miss the suspension.
    """

    def __init__(
        self,
        repository: IFailureRepository,
        lock_strategy: ILockStrategy,
        clock: IClock,
        *,
        lock_timeout: float = 10.0,
    ) -> None:
        self._repository = repository
        self._locks = lock_strategy
        self._clock = clock
        self._lock_timeout = lock_timeout

    @staticmethod
    def _prune(
        failures: list[datetime], now: datetime, window_seconds: int
    ) -> list[datetime]:
        threshold = now - timedelta(seconds=window_seconds)
        return [ts for ts in failures if ts > threshold]

    async def record_failure(
        self, principal: str, window_seconds: int, max_failures: int
    ) -> FailureOutcome:
        """Append a failure and report whether the limit is now exceeded.

        Args:
            principal: User whose verification failed.
            window_seconds: Length of the sliding window.
            max_failures: Failures tolerated inside the window.

        Returns:
            The new count and whether it is greater than ``max_failures``.
        """
        resource = ResourceIdentifier(FAILURES_RESOURCE, principal)
        async with hold_lock(self._locks, resource, timeout=self._lock_timeout):
            now = self._clock.now()
            failures = self._prune(
                await self._repository.get_failures(principal), now, window_seconds
            )
            failures.append(now)
            await self._repository.save_failures(principal, failures)

        count = len(failures)
        logger.debug("Failure %d/%d recorded for %s", count, max_failures, principal)
        return FailureOutcome(limit_exceeded=count > max_failures, count=count)

    async def record_success(self, principal: str) -> None:
        """Reset the principal's failure window."""
        await self.clear(principal)

    async def clear(self, principal: str) -> None:
        resource = ResourceIdentifier(FAILURES_RESOURCE, principal)
        async with hold_lock(self._locks, resource, timeout=self._lock_timeout):
            await self._repository.clear(principal)

    async def failure_count(self, principal: str, window_seconds: int) -> int:
        failures = await self._repository.get_failures(principal)
        return len(self._prune(failures, self._clock.now(), window_seconds))


__all__: list[str] = ["FailureOutcome", "FailureTracker"]
