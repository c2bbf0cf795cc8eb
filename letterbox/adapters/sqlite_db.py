"""
SQLite Database Adapter.

Implements the store port interfaces using SQLite.
Uses standard SQL so the schema ports to Postgres unchanged.

Every sqlite3.Error is re-raised as StoreError; the components only ever
see the port's exception type.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any
from uuid import UUID

from letterbox.core.ports.db import StoreError
from letterbox.domain.entities import (
    ConfirmedSubscriberRow,
    Subscriber,
    SubscriberStatus,
    SubscriptionToken,
    User,
)

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def connect(db_path: str) -> sqlite3.Connection:
    try:
        conn = sqlite3.connect(db_path)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
    except sqlite3.Error as exc:
        raise StoreError(f"Failed to open database {db_path}") from exc
    return conn


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn
        return connect(self.db_path)

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None

    @contextmanager
    def _session(self, write: bool = False) -> Iterator[sqlite3.Connection]:
        """
        Yield a connection, committing writes when this repo owns it.

        Inside a unit of work the connection is shared and the unit of work
        decides when to commit.
        """
        conn = self._get_conn()
        try:
            yield conn
            if write and self._should_close():
                conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        finally:
            if self._should_close():
                conn.close()


# -----------------------------------------------------------------------------
# Subscriptions
# -----------------------------------------------------------------------------


class SQLiteSubscriptionRepo(SQLiteRepoBase):
    """SQLite implementation of SubscriptionRepoPort."""

    def add(self, subscriber: Subscriber) -> Subscriber:
        with self._session(write=True) as conn:
            conn.execute(
                """
                INSERT INTO subscriptions (id, email, name, subscribed_at, status)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    str(subscriber.id),
                    subscriber.email,
                    subscriber.name,
                    subscriber.subscribed_at.isoformat(),
                    subscriber.status.value,
                ),
            )
        return subscriber

    def get_by_id(self, subscriber_id: UUID) -> Subscriber | None:
        with self._session() as conn:
            row = conn.execute(
                "SELECT * FROM subscriptions WHERE id = ?", (str(subscriber_id),)
            ).fetchone()
        return self._map_row(row) if row else None

    def confirm(self, subscriber_id: UUID) -> int:
        with self._session(write=True) as conn:
            cursor = conn.execute(
                "UPDATE subscriptions SET status = ? WHERE id = ? AND status = ?",
                (
                    SubscriberStatus.CONFIRMED.value,
                    str(subscriber_id),
                    SubscriberStatus.PENDING_CONFIRMATION.value,
                ),
            )
            return cursor.rowcount

    def list_confirmed(self) -> list[ConfirmedSubscriberRow]:
        with self._session() as conn:
            rows = conn.execute(
                "SELECT name, email FROM subscriptions WHERE status = ? ORDER BY subscribed_at",
                (SubscriberStatus.CONFIRMED.value,),
            ).fetchall()
        return [ConfirmedSubscriberRow(name=r["name"], email=r["email"]) for r in rows]

    def _map_row(self, row: dict[str, Any]) -> Subscriber:
        return Subscriber(
            id=UUID(row["id"]),
            email=row["email"],
            name=row["name"],
            status=SubscriberStatus(row["status"]),
            subscribed_at=datetime.fromisoformat(row["subscribed_at"]),
        )


class SQLiteSubscriptionTokenRepo(SQLiteRepoBase):
    """SQLite implementation of SubscriptionTokenRepoPort."""

    def add(self, token: SubscriptionToken) -> SubscriptionToken:
        with self._session(write=True) as conn:
            conn.execute(
                "INSERT INTO subscription_tokens (subscription_token, subscriber_id) VALUES (?, ?)",
                (token.token, str(token.subscriber_id)),
            )
        return token

    def get_subscriber_id(self, token: str) -> UUID | None:
        with self._session() as conn:
            row = conn.execute(
                "SELECT subscriber_id FROM subscription_tokens WHERE subscription_token = ?",
                (token,),
            ).fetchone()
        return UUID(row["subscriber_id"]) if row else None


# -----------------------------------------------------------------------------
# Users
# -----------------------------------------------------------------------------


class SQLiteUserRepo(SQLiteRepoBase):
    """SQLite implementation of UserRepoPort."""

    def get_by_username(self, username: str) -> User | None:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()
        return self._map_row(row) if row else None

    def get_by_id(self, user_id: UUID) -> User | None:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM users WHERE user_id = ?", (str(user_id),)).fetchone()
        return self._map_row(row) if row else None

    def add(self, user: User) -> User:
        with self._session(write=True) as conn:
            conn.execute(
                "INSERT INTO users (user_id, username, password_hash) VALUES (?, ?, ?)",
                (str(user.user_id), user.username, user.password_hash),
            )
        return user

    def update_password_hash(self, user_id: UUID, password_hash: str) -> None:
        with self._session(write=True) as conn:
            conn.execute(
                "UPDATE users SET password_hash = ? WHERE user_id = ?",
                (password_hash, str(user_id)),
            )

    def _map_row(self, row: dict[str, Any]) -> User:
        return User(
            user_id=UUID(row["user_id"]),
            username=row["username"],
            password_hash=row["password_hash"],
        )


# -----------------------------------------------------------------------------
# Unit of Work
# -----------------------------------------------------------------------------


class SQLiteUnitOfWork:
    """
    SQLite Unit of Work implementation.

    Usage:
        with SQLiteUnitOfWork(db_path) as uow:
            uow.subscriptions.add(subscriber)
            uow.subscription_tokens.add(token)
            uow.commit()

    Leaving the block without commit() rolls back.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def __enter__(self) -> SQLiteUnitOfWork:
        self._conn = connect(self.db_path)
        self.subscriptions = SQLiteSubscriptionRepo(self.db_path, self._conn)
        self.subscription_tokens = SQLiteSubscriptionTokenRepo(self.db_path, self._conn)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._conn is None:
            return
        try:
            # No-op after a successful commit
            self._conn.rollback()
        finally:
            self._conn.close()
            self._conn = None

    def commit(self) -> None:
        if self._conn is None:
            raise StoreError("Unit of work is not active")
        try:
            self._conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

    def rollback(self) -> None:
        if self._conn is not None:
            self._conn.rollback()
