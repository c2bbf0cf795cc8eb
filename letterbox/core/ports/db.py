"""
Database port interfaces.

Protocol-based interfaces for the relational store. Adapters translate
driver exceptions into StoreError so the components never depend on a
specific driver.
"""

from __future__ import annotations

from typing import Any, Protocol
from uuid import UUID

from letterbox.domain.entities import (
    ConfirmedSubscriberRow,
    Subscriber,
    SubscriptionToken,
    User,
)


class StoreError(Exception):
    """The store failed to execute an operation (connection, constraint, I/O)."""


# -----------------------------------------------------------------------------
# Subscriptions
# -----------------------------------------------------------------------------


class SubscriptionRepoPort(Protocol):
    """Repository for subscribers."""

    def add(self, subscriber: Subscriber) -> Subscriber:
        """Insert a new subscriber row."""
        ...

    def get_by_id(self, subscriber_id: UUID) -> Subscriber | None:
        """Get subscriber by ID."""
        ...

    def confirm(self, subscriber_id: UUID) -> int:
        """Flip pending_confirmation -> confirmed. Returns rows updated (0 or 1)."""
        ...

    def list_confirmed(self) -> list[ConfirmedSubscriberRow]:
        """Raw name/email pairs of every confirmed subscriber."""
        ...


class SubscriptionTokenRepoPort(Protocol):
    """Repository for confirmation tokens (append-only)."""

    def add(self, token: SubscriptionToken) -> SubscriptionToken:
        ...

    def get_subscriber_id(self, token: str) -> UUID | None:
        ...


# -----------------------------------------------------------------------------
# Users (read-only for the core; written by operator tooling)
# -----------------------------------------------------------------------------


class UserRepoPort(Protocol):
    def get_by_username(self, username: str) -> User | None:
        ...

    def get_by_id(self, user_id: UUID) -> User | None:
        ...

    def add(self, user: User) -> User:
        ...

    def update_password_hash(self, user_id: UUID, password_hash: str) -> None:
        ...


# -----------------------------------------------------------------------------
# Unit of Work (Transaction Management)
# -----------------------------------------------------------------------------


class UnitOfWorkPort(Protocol):
    """
    Unit of Work pattern for transaction management.

    Usage:
        with uow:
            uow.subscriptions.add(subscriber)
            uow.subscription_tokens.add(token)
            uow.commit()
    """

    subscriptions: SubscriptionRepoPort
    subscription_tokens: SubscriptionTokenRepoPort

    def __enter__(self) -> UnitOfWorkPort:
        """Enter transaction context."""
        ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit transaction context (rollback on exception)."""
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...
