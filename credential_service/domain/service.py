"""Account service orchestrating registration and the password-reset token lifecycle."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from email_validator import EmailNotValidError, validate_email

from . import errors
from .account import Account
from .contracts import (
    IssuedResetToken,
    RegisterAccountInput,
    ResetPasswordInput,
    ResetTokenRequestInput,
)
from .errors import ErrorKind, OperationResult
from ..delivery import ResetTokenDelivery
from ..repository import AccountRepository, StoreError
from ..security.passwords import BcryptPasswordHasher, password_too_long
from ..security.tokens import MIN_RESET_TOKEN_BYTES, generate_reset_token, hash_reset_token

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccountService:
    """Account credential workflows backed by Postgres storage.

    Every operation returns an :class:`OperationResult`; store failures are
    reported as ``ErrorKind.store`` rather than raised.
    """

    def __init__(
        self,
        repository: AccountRepository,
        hasher: BcryptPasswordHasher,
        delivery: ResetTokenDelivery,
        *,
        reset_token_ttl_seconds: int = 3600,
        reset_token_bytes: int = 32,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Store dependencies used to orchestrate persistence, hashing and delivery."""
        self._repository = repository
        self._hasher = hasher
        self._delivery = delivery
        if reset_token_bytes < MIN_RESET_TOKEN_BYTES:
            raise ValueError(f"reset tokens need at least {MIN_RESET_TOKEN_BYTES} random bytes")
        self._reset_token_ttl = timedelta(seconds=reset_token_ttl_seconds)
        self._reset_token_bytes = reset_token_bytes
        self._clock = clock

    def register(self, payload: RegisterAccountInput) -> OperationResult[Account]:
        """Create an account for a new email address."""
        if not _present(payload.email) or not payload.password:
            return OperationResult.failure(ErrorKind.validation, errors.MISSING_FIELDS)
        email = normalise_email(payload.email)
        if email is None:
            return OperationResult.failure(ErrorKind.validation, errors.INVALID_EMAIL)
        if password_too_long(payload.password):
            return OperationResult.failure(ErrorKind.validation, errors.PASSWORD_TOO_LONG)

        try:
            if self._repository.find_by_email(email) is not None:
                logger.info("registration rejected: %s already registered", email)
                return OperationResult.failure(ErrorKind.conflict, errors.ACCOUNT_EXISTS)
            credential_hash = self._hasher.hash_password(payload.password)
            account = self._repository.create_account(email, credential_hash)
        except StoreError:
            logger.exception("store failure during registration")
            return OperationResult.failure(ErrorKind.store, errors.STORE_FAILURE)

        if account is None:
            # lost an insert race against a concurrent registration
            logger.info("registration rejected: %s already registered", email)
            return OperationResult.failure(ErrorKind.conflict, errors.ACCOUNT_EXISTS)
        logger.info("registered account %s", email)
        return OperationResult.success(account)

    def issue_reset_token(self, payload: ResetTokenRequestInput) -> OperationResult[IssuedResetToken]:
        """Attach a fresh single-use reset token to the account and hand it to delivery.

        Re-issuing replaces the stored token, so any earlier token stops matching.
        """
        if not _present(payload.email):
            return OperationResult.failure(ErrorKind.validation, errors.MISSING_FIELDS)
        email = normalise_email(payload.email)
        if email is None:
            return OperationResult.failure(ErrorKind.not_found, errors.ACCOUNT_NOT_FOUND)

        try:
            account = self._repository.find_by_email(email)
            if account is None:
                logger.info("reset token requested for unknown account %s", email)
                return OperationResult.failure(ErrorKind.not_found, errors.ACCOUNT_NOT_FOUND)

            token, token_hash = generate_reset_token(self._reset_token_bytes)
            expires_at = self._clock() + self._reset_token_ttl
            if not self._repository.set_reset_token(account.email, token_hash, expires_at):
                return OperationResult.failure(ErrorKind.not_found, errors.ACCOUNT_NOT_FOUND)
        except StoreError:
            logger.exception("store failure while issuing reset token")
            return OperationResult.failure(ErrorKind.store, errors.STORE_FAILURE)

        logger.info("reset token issued for %s, expires %s", account.email, expires_at.isoformat())
        self._delivery.send_reset(email=account.email, token=token, expires_at=expires_at)
        return OperationResult.success(IssuedResetToken(email=account.email, expires_at=expires_at))

    def redeem_reset_token(self, payload: ResetPasswordInput) -> OperationResult[str]:
        """Set a new password using an active reset token and consume the token.

        Unknown, superseded, already-used and expired tokens all produce the same
        ``invalid_or_expired_token`` failure.
        """
        if not payload.new_password:
            return OperationResult.failure(ErrorKind.validation, errors.MISSING_FIELDS)
        if password_too_long(payload.new_password):
            return OperationResult.failure(ErrorKind.validation, errors.PASSWORD_TOO_LONG)
        if not payload.token:
            return OperationResult.failure(
                ErrorKind.invalid_or_expired_token, errors.INVALID_OR_EXPIRED_TOKEN
            )

        token_hash = hash_reset_token(payload.token)
        now = self._clock()
        try:
            account = self._repository.find_by_active_reset_token(token_hash, now)
            if account is None:
                logger.info("rejected password reset with invalid or expired token")
                return OperationResult.failure(
                    ErrorKind.invalid_or_expired_token, errors.INVALID_OR_EXPIRED_TOKEN
                )
            credential_hash = self._hasher.hash_password(payload.new_password)
            redeemed = self._repository.redeem_reset_token(token_hash, now, credential_hash)
        except StoreError:
            logger.exception("store failure while redeeming reset token")
            return OperationResult.failure(ErrorKind.store, errors.STORE_FAILURE)

        if not redeemed:
            logger.info("reset token for %s was consumed concurrently", account.email)
            return OperationResult.failure(
                ErrorKind.invalid_or_expired_token, errors.INVALID_OR_EXPIRED_TOKEN
            )
        logger.info("password reset completed for %s", account.email)
        return OperationResult.success(account.email)


def normalise_email(raw: str) -> str | None:
    """Return the normalised address, or ``None`` when it is not shaped like an email.

    Addresses email-validator refuses only on domain policy (``.local``, ``.test``,
    ``localhost``) are kept as typed, with the domain lowercased.
    """
    candidate = raw.strip()
    local, at, domain = candidate.rpartition("@")
    if not at or not local or not domain or any(ch.isspace() for ch in candidate):
        return None
    try:
        return validate_email(candidate, check_deliverability=False).normalized
    except EmailNotValidError:
        return f"{local}@{domain.lower()}"


def _present(value: str | None) -> bool:
    return bool(value and value.strip())
