"""Factor providers: protocol, code base class, email code factor, registry."""

from .base import (
    Challenge,
    CodeFactorProvider,
    IFactorProvider,
    PreparationContext,
    VerificationContext,
)
from .email_code import EMAIL_CODE_FACTOR, EmailCodeFactorProvider
from .registry import FactorRegistry

__all__: list[str] = [
    "Challenge",
    "CodeFactorProvider",
    "IFactorProvider",
    "PreparationContext",
    "VerificationContext",
    "EMAIL_CODE_FACTOR",
    "EmailCodeFactorProvider",
    "FactorRegistry",
]
