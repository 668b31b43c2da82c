"""InMemoryLockStrategy: single-process implementation of ILockStrategy."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import uuid4

from ...exceptions import LockAcquisitionError
from ...locking import ILockStrategy

if TYPE_CHECKING:
    from ...locking import ResourceIdentifier

logger = logging.getLogger("mfa_core.locking")


@dataclass
class _LockState:
    """State for a single resource lock."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    token: str | None = None
    waiters: int = 0


class InMemoryLockStrategy(ILockStrategy):
    """
    In-memory implementation of ILockStrategy.

    One ``asyncio.Lock`` per resource, created on demand and dropped once
    nobody holds or waits for it. ``asyncio.Lock`` wakes waiters in FIFO
    order. Not reentrant: acquiring a held resource twice from the same task
    waits for the timeout.
    """

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], _LockState] = {}

    async def acquire(
        self,
        resource: ResourceIdentifier,
        *,
        timeout: float = 10.0,
        ttl: float = 30.0,  # noqa: ARG002
    ) -> str:
        key = (resource.resource_type, resource.resource_id)
        state = self._locks.setdefault(key, _LockState())
        state.waiters += 1
        try:
            await asyncio.wait_for(state.lock.acquire(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Lock acquisition timed out after %.1fs: %s", timeout, resource)
            raise LockAcquisitionError(resource, timeout) from None
        finally:
            state.waiters -= 1

        token = str(uuid4())
        state.token = token
        return token

    async def release(self, resource: ResourceIdentifier, token: str) -> None:
        key = (resource.resource_type, resource.resource_id)
        state = self._locks.get(key)
        if state is None or state.token != token:
            logger.warning("Release of a lock not held with this token: %s", resource)
            return

        state.token = None
        state.lock.release()
        if state.waiters == 0 and not state.lock.locked():
            self._locks.pop(key, None)

    async def extend(self, resource: ResourceIdentifier, token: str, ttl: float) -> bool:  # noqa: ARG002
        state = self._locks.get((resource.resource_type, resource.resource_id))
        return state is not None and state.token == token

    async def health_check(self) -> bool:
        return True

    def is_locked(self, resource: ResourceIdentifier) -> bool:
        state = self._locks.get((resource.resource_type, resource.resource_id))
        return state is not None and state.lock.locked()


__all__: list[str] = ["InMemoryLockStrategy"]
