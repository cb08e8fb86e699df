"""Error taxonomy and result values returned by account workflows."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    validation = "ValidationError"
    conflict = "ConflictError"
    not_found = "NotFoundError"
    invalid_or_expired_token = "InvalidOrExpiredTokenError"
    store = "StoreError"


@dataclass(slots=True, frozen=True)
class DomainError:
    """A client-presentable failure with its taxonomy kind."""

    kind: ErrorKind
    message: str


@dataclass(slots=True, frozen=True)
class OperationResult(Generic[T]):
    """Either a value or a ``DomainError``; never both."""

    value: T | None = None
    error: DomainError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "OperationResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "OperationResult[T]":
        return cls(error=DomainError(kind=kind, message=message))


MISSING_FIELDS = "Please provide all required fields"
INVALID_EMAIL = "Please provide a valid email address"
PASSWORD_TOO_LONG = "Password must be at most 72 bytes"
ACCOUNT_EXISTS = "User already exists"
ACCOUNT_NOT_FOUND = "User not found"
INVALID_OR_EXPIRED_TOKEN = "Invalid or expired token"
STORE_FAILURE = "Internal server error"
