"""
Subscriptions component models.

Inputs, outputs, configuration and errors for the double opt-in flow.
State machine: pending_confirmation -> confirmed (see domain.entities).
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from letterbox.domain.subscriber import SubscriberValidationError

# --- Input Models ---


@dataclass(frozen=True)
class SubscribeInput:
    """Raw subscription form."""

    name: str
    email: str


@dataclass(frozen=True)
class ConfirmInput:
    """Input for confirming a subscription."""

    token: str | None


# --- Output Models ---


@dataclass(frozen=True)
class SubscribeOutput:
    subscriber_id: UUID


@dataclass(frozen=True)
class ConfirmOutput:
    subscriber_id: UUID
    already_confirmed: bool = False  # Idempotent success


# --- Configuration ---


@dataclass(frozen=True)
class SubscriptionConfig:
    base_url: str
    confirmation_path: str = "/subscriptions/confirm"
    site_name: str = "Letterbox"


# --- Error Types ---


class SubscribeError(Exception):
    """Base error for the subscribe operation."""


class SubscribeParseError(SubscribeError):
    """The submitted form did not parse into a valid subscriber."""

    def __init__(self, cause: SubscriberValidationError) -> None:
        self.field = cause.field
        self.reason = cause.message
        super().__init__(cause.message)


class SubscribeDatabaseError(SubscribeError):
    """Persisting the subscriber or its token failed; nothing was committed."""


class SubscribeSendEmailError(SubscribeError):
    """The subscriber was committed but the confirmation email failed."""

    def __init__(self, recipient: str) -> None:
        self.recipient = recipient
        super().__init__(f"Failed to send a confirmation email to {recipient}")


class ConfirmError(Exception):
    """Base error for the confirm operation."""


class ConfirmTokenNotFoundError(ConfirmError):
    """Missing or unknown confirmation token."""

    def __init__(self) -> None:
        super().__init__("Unknown or missing subscription token")


class ConfirmDatabaseError(ConfirmError):
    """The store failed while confirming."""
