"""In-memory adapters for single-process deployments and tests."""

from .collaborators import InMemoryUserDirectory, ManualClock, StaticCredentialVerifier
from .locking import InMemoryLockStrategy
from .senders import InMemorySender, SentMessage
from .stores import (
    InMemoryFailureRepository,
    InMemoryMfaSessionStore,
    InMemoryRateLimitRepository,
    InMemorySuspensionRepository,
)

__all__: list[str] = [
    "InMemoryUserDirectory",
    "ManualClock",
    "StaticCredentialVerifier",
    "InMemoryLockStrategy",
    "InMemorySender",
    "SentMessage",
    "InMemoryFailureRepository",
    "InMemoryMfaSessionStore",
    "InMemoryRateLimitRepository",
    "InMemorySuspensionRepository",
]
