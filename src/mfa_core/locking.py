"""Per-key locking primitives.

Suspension, failure and rate-limit records as well as sessions are shared,
principal-keyed state. Every check-and-update on them runs while holding a
lock on the corresponding ``ResourceIdentifier``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger("mfa_core.locking")

PRINCIPAL_RESOURCE = "mfa.principal"
FAILURES_RESOURCE = "mfa.failures"
RATE_LIMIT_RESOURCE = "mfa.rate_limit"
SUSPENSION_RESOURCE = "mfa.suspension"


@dataclass(frozen=True)
class ResourceIdentifier:
    """
    Identifies a single lockable resource.

    Examples:
        >>> ResourceIdentifier("mfa.principal", "alice")
        >>> ResourceIdentifier("mfa.rate_limit", "alice:email_code")
    """

    resource_type: str
    resource_id: str

    def __lt__(self, other: ResourceIdentifier) -> bool:
        return (self.resource_type, self.resource_id) < (
            other.resource_type,
            other.resource_id,
        )

    def __str__(self) -> str:
        return f"{self.resource_type}:{self.resource_id}"


@runtime_checkable
class ILockStrategy(Protocol):
    """
    Lock strategy protocol for per-key mutual exclusion.

    Implementations can use Redis (``SET NX PX``) or in-process
    ``asyncio.Lock`` objects for single-process deployments and tests.
    """

    async def acquire(
        self,
        resource: ResourceIdentifier,
        *,
        timeout: float = 10.0,
        ttl: float = 30.0,
    ) -> str:
        """
        Acquire a lock for the given resource.

        Args:
            resource: The resource to lock.
            timeout: Maximum time to wait for the lock.
            ttl: Time-to-live for the lock (seconds). Distributed locks
                auto-expire so a crashed worker cannot hold them forever.

        Returns:
            A unique lock token required for release.

        Raises:
            LockAcquisitionError: If the lock cannot be acquired within the timeout.
        """
        ...

    async def release(self, resource: ResourceIdentifier, token: str) -> None:
        """Release a previously acquired lock."""
        ...

    async def extend(self, resource: ResourceIdentifier, token: str, ttl: float) -> bool:
        """Extend the TTL of a held lock. Returns False if no longer held."""
        ...

    async def health_check(self) -> bool:
        """Verify that the lock service is responsive."""
        ...


@asynccontextmanager
async def hold_lock(
    strategy: ILockStrategy,
    resource: ResourceIdentifier,
    *,
    timeout: float = 10.0,
    ttl: float = 30.0,
) -> AsyncIterator[str]:
    """Hold ``resource`` for the duration of the ``async with`` block."""
    token = await strategy.acquire(resource, timeout=timeout, ttl=ttl)
    logger.debug("Lock held: %s", resource)
    try:
        yield token
    finally:
        await strategy.release(resource, token)


__all__: list[str] = [
    "ResourceIdentifier",
    "ILockStrategy",
    "hold_lock",
    "PRINCIPAL_RESOURCE",
    "FAILURES_RESOURCE",
    "RATE_LIMIT_RESOURCE",
    "SUSPENSION_RESOURCE",
]
