"""Utilities for issuing and matching password-reset tokens."""

from __future__ import annotations

import hashlib
import secrets

MIN_RESET_TOKEN_BYTES = 10


def generate_reset_token(num_bytes: int = 32) -> tuple[str, str]:
    """Generate a URL-safe reset token and its SHA-256 hash.

    Parameters
    ----------
    num_bytes:
        Random bytes drawn from :mod:`secrets`; at least 10 (80 bits).

    Returns
    -------
    tuple[str, str]
        The raw token handed to the delivery channel and the digest persisted
        on the account record.
    """

    if num_bytes < MIN_RESET_TOKEN_BYTES:
        raise ValueError(f"reset tokens need at least {MIN_RESET_TOKEN_BYTES} random bytes")
    token = secrets.token_urlsafe(num_bytes)
    return token, hash_reset_token(token)


def hash_reset_token(token: str) -> str:
    """Return the SHA-256 hex digest for a reset token string."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
