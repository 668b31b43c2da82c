"""Registry of factor providers keyed by factor type."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .base import IFactorProvider

logger = logging.getLogger("mfa_core.factors")


class FactorRegistry:
    """Maps factor type identifiers to provider instances."""

    def __init__(self, providers: list[IFactorProvider] | None = None) -> None:
        self._providers: dict[str, IFactorProvider] = {}
        for provider in providers or []:
            self.register(provider)

    def register(self, provider: IFactorProvider) -> None:
        """Register a provider.

        Raises:
            ValueError: If a provider is already registered for the type.
        """
        factor_type = provider.factor_type
        if factor_type in self._providers:
            raise ValueError(f"Factor provider already registered for {factor_type}")
        self._providers[factor_type] = provider
        logger.info("Registered MFA factor provider %s", factor_type)

    def unregister(self, factor_type: str) -> None:
        if self._providers.pop(factor_type, None) is not None:
            logger.info("Unregistered MFA factor provider %s", factor_type)

    def get(self, factor_type: str) -> IFactorProvider | None:
        return self._providers.get(factor_type)

    @property
    def factor_types(self) -> list[str]:
        return list(self._providers)

    def __contains__(self, factor_type: object) -> bool:
        return factor_type in self._providers

    def __len__(self) -> int:
        return len(self._providers)


__all__: list[str] = ["FactorRegistry"]
