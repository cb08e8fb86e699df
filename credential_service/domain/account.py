from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class Account:
    """Aggregate root for a registered credential and its reset-token state."""

    email: str
    credential_hash: str
    reset_token_hash: str | None = None
    reset_token_expires_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
