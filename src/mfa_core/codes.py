"""One-time code generation and delivery address masking."""

from __future__ import annotations

import secrets


def generate_numeric_code(length: int) -> str:
    """Generate a numeric one-time code.

    Uses the ``secrets`` CSPRNG, never ``random``.

    Args:
        length: Number of digits.

    Returns:
        A zero-padded string of exactly ``length`` digits.

    Raises:
        ValueError: If ``length`` is lower than 1.
    """
    if length < 1:
        raise ValueError(f"Code length must be at least 1, got {length}")
    code = secrets.randbelow(10**length)
    return str(code).zfill(length)


def mask_email(address: str) -> str:
    """Hide most of the local part of an email address.

    ``jo@example.com`` becomes ``j***@example.com`` and
    ``alice@example.com`` becomes ``a***e@example.com``.
    """
    local, sep, domain = address.partition("@")
    if not sep or not local:
        return address
    if len(local) <= 2:
        return f"{local[0]}***@{domain}"
    return f"{local[0]}***{local[-1]}@{domain}"


__all__: list[str] = ["generate_numeric_code", "mask_email"]
