from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone

import bcrypt
import pytest
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient

from credential_service.domain.account import Account
from credential_service.domain.service import AccountService
from credential_service.api import routes
from credential_service.main import request_validation_handler
from credential_service.repository import StoreError
from credential_service.security.passwords import BcryptPasswordHasher


def _active(account: Account, now: datetime) -> bool:
    return account.reset_token_expires_at is not None and now < account.reset_token_expires_at


def _credential_matches(password: str, credential_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), credential_hash.encode("utf-8"))


class FakeRepository:
    """In-memory repository mimicking Postgres-backed behaviors."""

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self.writes = 0
        self.failure: StoreError | None = None

    def _maybe_fail(self) -> None:
        if self.failure is not None:
            raise self.failure

    def find_by_email(self, email: str) -> Account | None:
        self._maybe_fail()
        account = self._accounts.get(email)
        return replace(account) if account else None

    def create_account(self, email: str, credential_hash: str) -> Account | None:
        self._maybe_fail()
        if email in self._accounts:
            return None
        now = datetime.now(timezone.utc)
        account = Account(email=email, credential_hash=credential_hash, created_at=now, updated_at=now)
        self._accounts[email] = account
        self.writes += 1
        return replace(account)

    def set_reset_token(self, email: str, token_hash: str, expires_at: datetime) -> bool:
        self._maybe_fail()
        account = self._accounts.get(email)
        if account is None:
            return False
        account.reset_token_hash = token_hash
        account.reset_token_expires_at = expires_at
        self.writes += 1
        return True

    def find_by_active_reset_token(self, token_hash: str, now: datetime) -> Account | None:
        self._maybe_fail()
        for account in self._accounts.values():
            if account.reset_token_hash == token_hash and _active(account, now):
                return replace(account)
        return None

    def redeem_reset_token(self, token_hash: str, now: datetime, credential_hash: str) -> bool:
        self._maybe_fail()
        for account in self._accounts.values():
            if account.reset_token_hash == token_hash and _active(account, now):
                account.credential_hash = credential_hash
                account.reset_token_hash = None
                account.reset_token_expires_at = None
                self.writes += 1
                return True
        return False

    def stored(self, email: str) -> Account:
        return self._accounts[email]


@dataclass
class SentReset:
    email: str
    token: str
    expires_at: datetime


class CapturingDelivery:
    """Collects reset tokens instead of logging them."""

    def __init__(self) -> None:
        self.sent: list[SentReset] = []

    def send_reset(self, *, email: str, token: str, expires_at: datetime) -> None:
        self.sent.append(SentReset(email=email, token=token, expires_at=expires_at))

    @property
    def last_token(self) -> str:
        return self.sent[-1].token


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def delivery() -> CapturingDelivery:
    return CapturingDelivery()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hasher() -> BcryptPasswordHasher:
    # minimum work factor keeps the suite fast
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def credential_matches():
    """Check a plaintext against a stored bcrypt credential."""
    return _credential_matches


@pytest.fixture
def service(repository, hasher, delivery, clock) -> AccountService:
    return AccountService(repository, hasher, delivery, clock=clock)


@pytest.fixture
def api_client(service):
    """Provide a FastAPI test client with isolated state."""
    app = FastAPI()
    app.include_router(routes.router)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.state.account_service = service
    with TestClient(app) as client:
        yield client
