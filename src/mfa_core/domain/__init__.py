"""Domain model: the MFA session aggregate."""

from .session import FactorPreparation, MfaSession, MfaSessionState

__all__: list[str] = [
    "MfaSession",
    "MfaSessionState",
    "FactorPreparation",
]
