"""MFA policy configuration.

Configuration is loaded once per policy change. Keys are accepted both in
snake_case and in the camelCase form used by deployed configuration
files (``maxAuthFailuresBeforeLock``, ``authFailuresWindowSeconds``, ...).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("mfa_core.config")


class _PolicyModel(BaseModel):
    """Immutable settings accepting snake_case and camelCase keys."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class FactorConfig(_PolicyModel):
    """Per-factor settings.

    Attributes:
        code_length: Number of digits in generated codes.
        code_validity_seconds: How long a generated code stays valid.
        resend_cooldown_seconds: Minimum seconds between two code generations
            for the same principal and factor.
    """

    code_length: int = Field(default=6, ge=4, le=12)
    code_validity_seconds: int = Field(default=900, gt=0)  # 15 minutes
    resend_cooldown_seconds: int = Field(default=30, ge=0)


class MfaConfig(_PolicyModel):
    """MFA policy.

    Attributes:
        enabled: When False no factor is required and sessions complete at
            initiation.
        required_factors: Ordered factor types every session must complete.
        max_auth_failures_before_lock: Failures tolerated inside the window;
            the next one suspends the principal.
        auth_failures_window_seconds: Sliding window for counting failures.
        user_temporary_suspension_seconds: Suspension duration.
        session_ttl_seconds: Idle lifetime of an MFA session.
        lock_timeout_seconds: Maximum wait for a per-principal lock.
        factors: Per-factor overrides keyed by factor type.
    """

    enabled: bool = True
    required_factors: tuple[str, ...] = ("email_code",)
    max_auth_failures_before_lock: int = Field(default=5, ge=0)
    auth_failures_window_seconds: int = Field(default=120, gt=0)
    user_temporary_suspension_seconds: int = Field(default=600, gt=0)
    session_ttl_seconds: int = Field(default=900, gt=0)
    lock_timeout_seconds: float = Field(default=10.0, gt=0)
    factors: dict[str, FactorConfig] = Field(default_factory=dict)

    @field_validator("required_factors", mode="before")
    @classmethod
    def _normalize_factors(cls, value: Any) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            value = value.split(",")
        seen: list[str] = []
        for item in value:
            if item is None:
                continue
            name = str(item).strip()
            if name and name not in seen:
                seen.append(name)
        return tuple(seen)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> MfaConfig:
        """Build a config from a plain mapping.

        Raises:
            ConfigurationError: If a value is missing or out of range.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid MFA configuration: {exc}") from exc

    def factor(self, factor_type: str) -> FactorConfig:
        """Return the settings of ``factor_type`` (defaults when not overridden)."""
        return self.factors.get(factor_type) or FactorConfig()


class ConfigurationHolder:
    """Holds the current ``MfaConfig`` and notifies listeners on change."""

    def __init__(self, config: MfaConfig | None = None) -> None:
        self._config = config or MfaConfig()
        self._listeners: list[Callable[[MfaConfig], None]] = []

    @property
    def current(self) -> MfaConfig:
        return self._config

    def update(self, config: MfaConfig) -> None:
        """Replace the active policy and notify listeners."""
        self._config = config
        logger.info(
            "MFA configuration modified with enabled=%s, factors=%s",
            config.enabled,
            list(config.required_factors),
        )
        for listener in list(self._listeners):
            listener(config)

    def add_change_listener(self, listener: Callable[[MfaConfig], None]) -> None:
        self._listeners.append(listener)

    def remove_change_listener(self, listener: Callable[[MfaConfig], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)


__all__: list[str] = ["FactorConfig", "MfaConfig", "ConfigurationHolder"]
