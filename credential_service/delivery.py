"""Password reset delivery adapters."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol

logger = logging.getLogger(__name__)


class ResetTokenDelivery(Protocol):
    """Delivery interface for freshly issued reset tokens."""

    def send_reset(self, *, email: str, token: str, expires_at: datetime) -> None: ...


class LoggingResetTokenDelivery:
    """Writes the reset link to the service log in place of an email."""

    def __init__(self, public_base_url: str) -> None:
        self._base_url = public_base_url.rstrip("/")

    def reset_link(self, token: str) -> str:
        return f"{self._base_url}/auth/reset-password/{token}"

    def send_reset(self, *, email: str, token: str, expires_at: datetime) -> None:
        logger.info(
            "password reset link for %s (expires %s): %s",
            email,
            expires_at.isoformat(),
            self.reset_link(token),
        )
