"""Redis adapters for multi-process deployments (``pip install mfa-core[redis]``)."""

from .locking import RedisLockStrategy
from .stores import (
    RedisFailureRepository,
    RedisMfaSessionStore,
    RedisRateLimitRepository,
    RedisSuspensionRepository,
)

__all__: list[str] = [
    "RedisLockStrategy",
    "RedisFailureRepository",
    "RedisMfaSessionStore",
    "RedisRateLimitRepository",
    "RedisSuspensionRepository",
]
