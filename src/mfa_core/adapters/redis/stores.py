"""Redis implementations of the MFA storage ports.

Sessions and rate-limit entries carry a Redis expiry. Suspension and failure
records do not: their lifetime depends on the policy in force when they are
read, so the services remove them.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from pydantic import ValidationError
from redis.exceptions import RedisError

from ...clock import SystemClock
from ...domain.session import MfaSession
from ...exceptions import RedisStoreError
from ...ports import (
    IFailureRepository,
    IRateLimitRepository,
    ISessionStore,
    ISuspensionRepository,
)

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from ...clock import IClock

logger = logging.getLogger("mfa_core.redis.stores")


def _text(raw: bytes | str) -> str:
    return raw.decode("utf-8") if isinstance(raw, bytes) else raw


def _parse_datetime(raw: bytes | str) -> datetime:
    value = datetime.fromisoformat(_text(raw))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


class RedisMfaSessionStore(ISessionStore):
    """
    Redis implementation of ISessionStore.
    Sessions are stored as pydantic JSON and expire at ``expires_at``.
    """

    def __init__(
        self,
        redis_client: Redis,  # type: ignore[type-arg]
        prefix: str = "mfa:session",
        clock: IClock | None = None,
    ) -> None:
        self._redis = redis_client
        self._prefix = prefix
        self._clock = clock or SystemClock()

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}:{session_id}"

    async def get(self, session_id: str) -> MfaSession | None:
        key = self._key(session_id)
        try:
            raw = await self._redis.get(key)
        except RedisError as exc:
            raise RedisStoreError(f"Redis get failed for {key}: {exc}") from exc
        if not raw:
            return None
        try:
            session = MfaSession.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable MFA session %s: %s", key, exc)
            return None
        if session.is_expired(self._clock.now()):
            return None
        return session

    async def save(self, session: MfaSession) -> None:
        key = self._key(session.id)
        ttl = math.ceil((session.expires_at - self._clock.now()).total_seconds())
        try:
            if ttl <= 0:
                await self._redis.delete(key)
                return
            await self._redis.setex(key, ttl, session.model_dump_json())
        except RedisError as exc:
            raise RedisStoreError(f"Redis set failed for {key}: {exc}") from exc

    async def delete(self, session_id: str) -> bool:
        key = self._key(session_id)
        try:
            deleted = await self._redis.delete(key)
        except RedisError as exc:
            raise RedisStoreError(f"Redis delete failed for {key}: {exc}") from exc
        return bool(deleted)


class RedisSuspensionRepository(ISuspensionRepository):
    """``suspended_since`` as an ISO timestamp.

    No Redis expiry: ``SuspensionService.status`` removes the record once the
    currently configured duration has elapsed.
    """

    def __init__(
        self,
        redis_client: Redis,  # type: ignore[type-arg]
        prefix: str = "mfa:suspension",
    ) -> None:
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, principal: str) -> str:
        return f"{self._prefix}:{principal}"

    async def get_suspended_since(self, principal: str) -> datetime | None:
        key = self._key(principal)
        try:
            raw = await self._redis.get(key)
        except RedisError as exc:
            raise RedisStoreError(f"Redis get failed for {key}: {exc}") from exc
        return _parse_datetime(raw) if raw else None

    async def set_suspended_since(self, principal: str, suspended_since: datetime) -> None:
        key = self._key(principal)
        try:
            await self._redis.set(key, suspended_since.isoformat())
        except RedisError as exc:
            raise RedisStoreError(f"Redis set failed for {key}: {exc}") from exc

    async def remove(self, principal: str) -> None:
        key = self._key(principal)
        try:
            await self._redis.delete(key)
        except RedisError as exc:
            raise RedisStoreError(f"Redis delete failed for {key}: {exc}") from exc


class RedisFailureRepository(IFailureRepository):
    """Failure timestamps as a JSON list, pruned by ``FailureTracker`` on every write."""

    def __init__(
        self,
        redis_client: Redis,  # type: ignore[type-arg]
        prefix: str = "mfa:failures",
    ) -> None:
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, principal: str) -> str:
        return f"{self._prefix}:{principal}"

    async def get_failures(self, principal: str) -> list[datetime]:
        key = self._key(principal)
        try:
            raw = await self._redis.get(key)
        except RedisError as exc:
            raise RedisStoreError(f"Redis get failed for {key}: {exc}") from exc
        if not raw:
            return []
        return sorted(_parse_datetime(item) for item in json.loads(_text(raw)))

    async def save_failures(self, principal: str, failures: list[datetime]) -> None:
        key = self._key(principal)
        payload = json.dumps([ts.isoformat() for ts in failures])
        try:
            await self._redis.set(key, payload)
        except RedisError as exc:
            raise RedisStoreError(f"Redis set failed for {key}: {exc}") from exc

    async def clear(self, principal: str) -> None:
        key = self._key(principal)
        try:
            await self._redis.delete(key)
        except RedisError as exc:
            raise RedisStoreError(f"Redis delete failed for {key}: {exc}") from exc


class RedisRateLimitRepository(IRateLimitRepository):
    """``next_allowed_at`` per (principal, factor type), expiring at that instant."""

    def __init__(
        self,
        redis_client: Redis,  # type: ignore[type-arg]
        prefix: str = "mfa:rate_limit",
    ) -> None:
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, principal: str, factor_type: str) -> str:
        return f"{self._prefix}:{principal}:{factor_type}"

    async def get_next_allowed(self, principal: str, factor_type: str) -> datetime | None:
        key = self._key(principal, factor_type)
        try:
            raw = await self._redis.get(key)
        except RedisError as exc:
            raise RedisStoreError(f"Redis get failed for {key}: {exc}") from exc
        return _parse_datetime(raw) if raw else None

    async def set_next_allowed(
        self, principal: str, factor_type: str, next_allowed_at: datetime
    ) -> None:
        key = self._key(principal, factor_type)
        try:
            await self._redis.set(
                key, next_allowed_at.isoformat(), pxat=_epoch_ms(next_allowed_at)
            )
        except RedisError as exc:
            raise RedisStoreError(f"Redis set failed for {key}: {exc}") from exc

    async def clear(self, principal: str, factor_type: str) -> None:
        key = self._key(principal, factor_type)
        try:
            await self._redis.delete(key)
        except RedisError as exc:
            raise RedisStoreError(f"Redis delete failed for {key}: {exc}") from exc


__all__: list[str] = [
    "RedisMfaSessionStore",
    "RedisSuspensionRepository",
    "RedisFailureRepository",
    "RedisRateLimitRepository",
]
