"""Redis-based per-key lock for multi-process deployments."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING

from redis.exceptions import RedisError

from ...exceptions import LockAcquisitionError, RedisStoreError

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from ...locking import ResourceIdentifier

logger = logging.getLogger("mfa_core.redis.locking")

_RELEASE_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
end
return 0
"""

_EXTEND_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("PEXPIRE", KEYS[1], ARGV[2])
end
return 0
"""


class RedisLockStrategy:
    """
    Single-instance Redis lock (``SET NX PX`` + compare-and-delete).

    Features:
    - Automatic Expiration: a crashed worker cannot hold a lock past its TTL.
    - Safe Release: Lua scripts only touch a key still holding our token.
    - Bounded Wait: polling stops at the acquisition timeout.
    """

    def __init__(
        self,
        redis: Redis,  # type: ignore[type-arg]
        prefix: str = "mfa:lock",
        retry_interval: float = 0.05,
    ) -> None:
        """
        Initialize RedisLockStrategy.

        Args:
            redis: An initialized redis.asyncio.Redis client.
            prefix: Key prefix for Redis keys.
            retry_interval: Delay between acquisition attempts.
        """
        self._redis = redis
        self._prefix = prefix
        self._retry_interval = retry_interval

    def _lock_key(self, resource: ResourceIdentifier) -> str:
        return f"{self._prefix}:{resource.resource_type}:{resource.resource_id}"

    async def acquire(
        self,
        resource: ResourceIdentifier,
        *,
        timeout: float = 10.0,
        ttl: float = 30.0,
    ) -> str:
        lock_key = self._lock_key(resource)
        token = str(uuid.uuid4())
        ttl_ms = max(int(ttl * 1000), 1)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            try:
                acquired = await self._redis.set(lock_key, token, nx=True, px=ttl_ms)
            except RedisError as exc:
                raise RedisStoreError(f"Failed to acquire lock {lock_key}: {exc}") from exc
            if acquired:
                return token
            if loop.time() >= deadline:
                raise LockAcquisitionError(resource, timeout, reason="Lock still held")
            await asyncio.sleep(self._retry_interval)

    async def release(self, resource: ResourceIdentifier, token: str) -> None:
        lock_key = self._lock_key(resource)
        try:
            await self._redis.eval(_RELEASE_SCRIPT, 1, lock_key, token)  # type: ignore[no-untyped-call]
        except RedisError as exc:
            # The key expires on its own after the TTL.
            logger.warning("Failed to release lock %s: %s", lock_key, exc)

    async def extend(self, resource: ResourceIdentifier, token: str, ttl: float) -> bool:
        lock_key = self._lock_key(resource)
        try:
            result = await self._redis.eval(  # type: ignore[no-untyped-call]
                _EXTEND_SCRIPT, 1, lock_key, token, str(int(ttl * 1000))
            )
        except RedisError as exc:
            logger.warning("Failed to extend lock %s: %s", lock_key, exc)
            return False
        return int(result) == 1

    async def health_check(self) -> bool:
        """Verify Redis health."""
        try:
            await self._redis.ping()
            return True
        except RedisError:
            return False


__all__: list[str] = ["RedisLockStrategy"]
