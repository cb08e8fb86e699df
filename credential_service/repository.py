"""Database repository for account credential data."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime

import psycopg
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account

ACCOUNT_COLUMNS = (
    "email, credential_hash, reset_token_hash, reset_token_expires_at, created_at, updated_at"
)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS accounts (
        email TEXT PRIMARY KEY,
        credential_hash TEXT NOT NULL,
        reset_token_hash TEXT,
        reset_token_expires_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CONSTRAINT accounts_reset_token_pair
            CHECK ((reset_token_hash IS NULL) = (reset_token_expires_at IS NULL))
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS accounts_reset_token_hash_idx
    ON accounts (reset_token_hash)
    WHERE reset_token_hash IS NOT NULL
    """,
)


class StoreError(Exception):
    """Raised when the underlying Postgres store fails a read or write."""


@dataclass(slots=True)
class AccountRecord:
    """Row projection used when mapping database tuples to domain aggregates."""

    email: str
    credential_hash: str
    reset_token_hash: str | None
    reset_token_expires_at: datetime | None
    created_at: datetime
    updated_at: datetime

    def to_domain(self) -> Account:
        return Account(
            email=self.email,
            credential_hash=self.credential_hash,
            reset_token_hash=self.reset_token_hash,
            reset_token_expires_at=self.reset_token_expires_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class AccountRepository:
    """Postgres-backed account persistence keyed by email."""

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    @contextmanager
    def _cursor(self) -> Iterator[tuple[psycopg.Connection, psycopg.Cursor]]:
        """Borrow a pooled connection and translate driver failures into ``StoreError``."""
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    yield conn, cur
        except psycopg.Error as exc:
            raise StoreError(str(exc)) from exc

    def ensure_schema(self) -> None:
        """Create the accounts table and token index when missing."""
        with self._cursor() as (conn, cur):
            for statement in SCHEMA_STATEMENTS:
                cur.execute(statement)
            conn.commit()

    def find_by_email(self, email: str) -> Account | None:
        """Return the account registered under ``email`` or ``None``."""
        with self._cursor() as (_, cur):
            cur.execute(
                f"SELECT {ACCOUNT_COLUMNS} FROM accounts WHERE email = %s",
                (email,),
            )
            row = cur.fetchone()
        return self._map_record(row) if row else None

    def create_account(self, email: str, credential_hash: str) -> Account | None:
        """Insert a new account; return ``None`` when the email is already taken."""
        with self._cursor() as (conn, cur):
            cur.execute(
                f"""
                INSERT INTO accounts (email, credential_hash)
                VALUES (%s, %s)
                ON CONFLICT (email) DO NOTHING
                RETURNING {ACCOUNT_COLUMNS}
                """,
                (email, credential_hash),
            )
            row = cur.fetchone()
            conn.commit()
        return self._map_record(row) if row else None

    def set_reset_token(self, email: str, token_hash: str, expires_at: datetime) -> bool:
        """Attach a reset token to the account, replacing any previous one."""
        with self._cursor() as (conn, cur):
            cur.execute(
                """
                UPDATE accounts
                SET reset_token_hash = %s, reset_token_expires_at = %s, updated_at = NOW()
                WHERE email = %s
                """,
                (token_hash, expires_at, email),
            )
            updated = cur.rowcount == 1
            conn.commit()
        return updated

    def find_by_active_reset_token(self, token_hash: str, now: datetime) -> Account | None:
        """Return the account holding ``token_hash`` whose expiry is still after ``now``."""
        with self._cursor() as (_, cur):
            cur.execute(
                f"""
                SELECT {ACCOUNT_COLUMNS}
                FROM accounts
                WHERE reset_token_hash = %s AND reset_token_expires_at > %s
                """,
                (token_hash, now),
            )
            row = cur.fetchone()
        return self._map_record(row) if row else None

    def redeem_reset_token(self, token_hash: str, now: datetime, credential_hash: str) -> bool:
        """Swap in a new credential and clear the token if it is still active.

        The token predicate is re-checked inside the ``UPDATE`` so two concurrent
        redemptions of the same token cannot both succeed.
        """
        with self._cursor() as (conn, cur):
            cur.execute(
                """
                UPDATE accounts
                SET credential_hash = %s,
                    reset_token_hash = NULL,
                    reset_token_expires_at = NULL,
                    updated_at = NOW()
                WHERE reset_token_hash = %s AND reset_token_expires_at > %s
                """,
                (credential_hash, token_hash, now),
            )
            updated = cur.rowcount == 1
            conn.commit()
        return updated

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return AccountRecord(*row).to_domain()
