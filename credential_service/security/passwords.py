"""Bcrypt credential hashing."""

from __future__ import annotations

import bcrypt

BCRYPT_MAX_PASSWORD_BYTES = 72


class BcryptPasswordHasher:
    """One-way credential hashing with a fixed bcrypt work factor."""

    def __init__(self, rounds: int = 10) -> None:
        """Store the work factor; bcrypt itself accepts 4 through 31."""
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")
        self._rounds = rounds

    def hash_password(self, password: str) -> str:
        """Hash a plaintext password with a fresh salt."""
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES
