"""In-memory collaborators: user directory, credential verifier, manual clock."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

from ...clock import IClock
from ...ports import DirectoryUser, ICredentialVerifier, IUserDirectory


class ManualClock(IClock):
    """Clock that only moves when told to. Meant for tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> datetime:
        self._now += timedelta(seconds=seconds)
        return self._now

    def set(self, value: datetime) -> None:
        self._now = value


class InMemoryUserDirectory(IUserDirectory):
    """User directory backed by a dictionary."""

    def __init__(self, users: list[DirectoryUser] | None = None) -> None:
        self._users: dict[str, DirectoryUser] = {u.username: u for u in users or []}

    async def get_user(self, username: str) -> DirectoryUser | None:
        return self._users.get(username)

    def add(self, user: DirectoryUser) -> None:
        self._users[user.username] = user

    def remove(self, username: str) -> None:
        self._users.pop(username, None)


class StaticCredentialVerifier(ICredentialVerifier):
    """Checks passwords against a fixed ``{username: password}`` mapping."""

    def __init__(self, passwords: dict[str, str] | None = None) -> None:
        self._passwords = dict(passwords or {})

    async def verify(self, username: str, password: str) -> bool:
        expected = self._passwords.get(username)
        if expected is None:
            return False
        return secrets.compare_digest(expected.encode("utf-8"), password.encode("utf-8"))

    def set_password(self, username: str, password: str) -> None:
        self._passwords[username] = password


__all__: list[str] = ["ManualClock", "InMemoryUserDirectory", "StaticCredentialVerifier"]
