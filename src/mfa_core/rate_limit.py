"""Resend cooldown for one-time code generation.

One entry per (principal, factor type) holds the earliest time a new code
may be generated. Entries outlive sessions so that restarting the login flow
does not reset the cooldown.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from .locking import RATE_LIMIT_RESOURCE, ResourceIdentifier, hold_lock

if TYPE_CHECKING:
    from .clock import IClock
    from .locking import ILockStrategy
    from .ports import IRateLimitRepository

logger = logging.getLogger("mfa_core.rate_limit")


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of ``RateLimiter.check_and_reserve``.

    Attributes:
        allowed: True when a new code may be generated now.
        retry_after_seconds: Whole seconds (rounded up) until the next
            allowed generation; 0 when allowed.
    """

    allowed: bool
    retry_after_seconds: int = 0


class RateLimiter:
    """Per (principal, factor type) generation cooldown."""

    def __init__(
        self,
        repository: IRateLimitRepository,
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
    def _resource(principal: str, factor_type: str) -> ResourceIdentifier:
        return ResourceIdentifier(RATE_LIMIT_RESOURCE, f"{principal}:{factor_type}")

    async def check_and_reserve(
        self, principal: str, factor_type: str, cooldown_seconds: int
    ) -> RateLimitDecision:
        """Reserve a generation slot, or report how long to wait.

        A refused request leaves ``next_allowed_at`` untouched, so repeated
        early attempts see a decreasing countdown.
        """
        resource = self._resource(principal, factor_type)
        async with hold_lock(self._locks, resource, timeout=self._lock_timeout):
            now = self._clock.now()
            next_allowed = await self._repository.get_next_allowed(principal, factor_type)
            if next_allowed is not None and now < next_allowed:
                retry_after = math.ceil((next_allowed - now).total_seconds())
                logger.debug(
                    "Code generation rate limited for %s/%s, retry in %ss",
                    principal,
                    factor_type,
                    retry_after,
                )
                return RateLimitDecision(allowed=False, retry_after_seconds=retry_after)

            await self._repository.set_next_allowed(
                principal, factor_type, now + timedelta(seconds=cooldown_seconds)
            )
            return RateLimitDecision(allowed=True)

    async def release(self, principal: str, factor_type: str) -> None:
        """Drop the entry so that the next generation is allowed at once."""
        resource = self._resource(principal, factor_type)
        async with hold_lock(self._locks, resource, timeout=self._lock_timeout):
            await self._repository.clear(principal, factor_type)


__all__: list[str] = ["RateLimitDecision", "RateLimiter"]
