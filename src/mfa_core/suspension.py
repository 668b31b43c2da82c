"""Temporary suspension of principals.

The record only stores ``suspended_since``. Whether the principal is still
suspended is derived from the configured duration at read time.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from .locking import SUSPENSION_RESOURCE, ResourceIdentifier, hold_lock

if TYPE_CHECKING:
    from .clock import IClock
    from .locking import ILockStrategy
    from .ports import ISuspensionRepository

logger = logging.getLogger("mfa_core.suspension")


@dataclass(frozen=True)
class SuspensionStatus:
    """Derived suspension state of a principal.

    Attributes:
        suspended: True while ``now < suspended_since + duration``.
        remaining_seconds: Exact whole seconds left (rounded up), 0 when
            not suspended.
        suspended_since: Start of the active suspension.
        suspended_until: End of the active suspension.
    """

    suspended: bool
    remaining_seconds: int = 0
    suspended_since: datetime | None = None
    suspended_until: datetime | None = None


NOT_SUSPENDED = SuspensionStatus(suspended=False)


class SuspensionService:
    """Reads and writes per-principal suspension records."""

    def __init__(
        self,
        repository: ISuspensionRepository,
        lock_strategy: ILockStrategy,
        clock: IClock,
        *,
        lock_timeout: float = 10.0,
    ) -> None:
        self._repository = repository
        self._locks = lock_strategy
        self._clock = clock
        self._lock_timeout = lock_timeout

    def _derive(
        self, suspended_since: datetime | None, now: datetime, duration_seconds: int
    ) -> SuspensionStatus:
        if suspended_since is None:
            return NOT_SUSPENDED
        until = suspended_since + timedelta(seconds=duration_seconds)
        remaining = (until - now).total_seconds()
        if remaining <= 0:
            return NOT_SUSPENDED
        return SuspensionStatus(
            suspended=True,
            remaining_seconds=math.ceil(remaining),
            suspended_since=suspended_since,
            suspended_until=until,
        )

    async def suspend(self, principal: str, duration_seconds: int) -> SuspensionStatus:
        """Suspend ``principal`` from now on.

        An unexpired earlier suspension is kept as is; re-suspending neither
        shortens nor extends it.
        """
        resource = ResourceIdentifier(SUSPENSION_RESOURCE, principal)
        async with hold_lock(self._locks, resource, timeout=self._lock_timeout):
            now = self._clock.now()
            current = self._derive(
                await self._repository.get_suspended_since(principal),
                now,
                duration_seconds,
            )
            if current.suspended:
                return current
            await self._repository.set_suspended_since(principal, now)

        logger.warning(
            "Principal %s suspended for %d seconds", principal, duration_seconds
        )
        return self._derive(now, now, duration_seconds)

    async def status(self, principal: str, duration_seconds: int) -> SuspensionStatus:
        """Return the current status; expired records are removed lazily."""
        now = self._clock.now()
        suspended_since = await self._repository.get_suspended_since(principal)
        status = self._derive(suspended_since, now, duration_seconds)
        if suspended_since is not None and not status.suspended:
            resource = ResourceIdentifier(SUSPENSION_RESOURCE, principal)
            async with hold_lock(self._locks, resource, timeout=self._lock_timeout):
                # Re-read: a new suspension may have been written meanwhile.
                latest = await self._repository.get_suspended_since(principal)
                if latest == suspended_since:
                    await self._repository.remove(principal)
                    logger.info("Suspension of %s expired", principal)
                else:
                    status = self._derive(latest, self._clock.now(), duration_seconds)
        return status

    async def lift(self, principal: str) -> None:
        """Administrative unsuspend."""
        resource = ResourceIdentifier(SUSPENSION_RESOURCE, principal)
        async with hold_lock(self._locks, resource, timeout=self._lock_timeout):
            await self._repository.remove(principal)
        logger.info("Suspension of %s lifted", principal)


__all__: list[str] = ["SuspensionStatus", "SuspensionService"]
