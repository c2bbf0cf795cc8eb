"""
Email Adapter Interface.

Protocol-based interface for sending transactional emails.
Used for subscription confirmations and newsletter issues.

Implementation strategies:
1. DevEmailAdapter: Logs emails (dev/test)
2. BrevoEmailAdapter: Sends via a transactional email HTTP API

All strategies implement the same EmailPort interface.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol

from letterbox.domain.subscriber import NewSubscriber


class EmailStatus(Enum):
    """Email send result status."""

    SENT = "sent"
    SKIPPED = "skipped"  # Dev adapter


@dataclass(frozen=True)
class EmailAddress:
    """
    Email address with optional display name.

    Examples:
        EmailAddress("user@example.com")
        EmailAddress("user@example.com", "Ursula Le Guin")
    """

    email: str
    name: str | None = None

    @classmethod
    def from_subscriber(cls, subscriber: NewSubscriber) -> EmailAddress:
        return cls(email=str(subscriber.email), name=str(subscriber.name))

    def __str__(self) -> str:
        """Format as RFC 5322 address."""
        if self.name:
            safe_name = self.name.replace('"', '\\"')
            return f'"{safe_name}" <{self.email}>'
        return self.email


@dataclass(frozen=True)
class EmailMessage:
    """
    Email message to be sent.

    Immutable once built. ``sender`` None means the adapter's configured sender.
    """

    recipients: tuple[EmailAddress, ...]
    subject: str
    body_html: str
    body_text: str = ""
    sender: EmailAddress | None = None

    def __post_init__(self) -> None:
        if not self.recipients:
            raise ValueError("At least one recipient is required")
        if any(not r.email for r in self.recipients):
            raise ValueError("Recipient email is required")
        if not self.subject:
            raise ValueError("Subject is required")
        if not self.body_html and not self.body_text:
            raise ValueError("At least one of body_html or body_text is required")

    @property
    def recipient_emails(self) -> list[str]:
        return [r.email for r in self.recipients]


@dataclass
class EmailResult:
    """Result of a successful email send."""

    status: EmailStatus
    recipient: str = ""
    message_id: str | None = None
    sent_at: datetime | None = None

    @classmethod
    def success(cls, recipient: str, message_id: str | None = None) -> EmailResult:
        return cls(
            status=EmailStatus.SENT,
            recipient=recipient,
            message_id=message_id,
            sent_at=datetime.now(UTC),
        )

    @classmethod
    def skipped(cls, recipient: str, message_id: str | None = None) -> EmailResult:
        return cls(status=EmailStatus.SKIPPED, recipient=recipient, message_id=message_id)


class EmailPort(Protocol):
    """
    Email sending interface.

    Implementations:
    - DevEmailAdapter: Logs only (dev/test)
    - BrevoEmailAdapter: HTTP transactional email provider
    """

    @property
    def sender(self) -> EmailAddress:
        """Default sender used when a message does not set one."""
        ...

    def send(self, message: EmailMessage) -> EmailResult:
        """
        Send an email message.

        Raises:
            EmailSendError: transport failure, timeout or non-2xx provider response
        """
        ...


# --- Error Types ---


class EmailError(Exception):
    """Base exception for email-related errors."""


class EmailSendError(EmailError):
    """Failed to send email."""

    def __init__(self, recipient: str, error: str) -> None:
        self.recipient = recipient
        self.error = error
        super().__init__(f"Failed to send email to {recipient}: {error}")
