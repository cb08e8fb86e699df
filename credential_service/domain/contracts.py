"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class RegisterAccountInput:
    """Raw registration inputs; validation happens inside the service."""

    email: str | None
    password: str | None


@dataclass(slots=True)
class ResetTokenRequestInput:
    email: str | None


@dataclass(slots=True)
class ResetPasswordInput:
    """Token taken from the route plus the replacement password from the body."""

    token: str
    new_password: str | None


@dataclass(slots=True)
class IssuedResetToken:
    """Outcome of a reset-token issuance. The raw token stays server side."""

    email: str
    expires_at: datetime
