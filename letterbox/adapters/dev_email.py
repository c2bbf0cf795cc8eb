"""
Dev Email Adapter.

Logs emails instead of sending.
Used for local development and testing.

Key behaviors:
- Logs email details
- Returns SKIPPED status (not SENT)
- Stores emails in memory for test assertions
- Can be told to fail for given recipients, to exercise delivery errors
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from letterbox.core.ports.email import (
    EmailAddress,
    EmailMessage,
    EmailResult,
    EmailSendError,
)

logger = logging.getLogger(__name__)


@dataclass
class SentEmail:
    """Record of a logged email for test assertions."""

    id: str
    recipients: list[str]
    subject: str
    body_html: str
    body_text: str
    sender: str
    logged_at: datetime

    @property
    def recipient(self) -> str:
        return self.recipients[0]


@dataclass
class DevEmailAdapter:
    """
    Dev email adapter that logs instead of sending.

    Implements EmailPort. Thread-safe enough for TestClient use: list.append
    is atomic and nothing else mutates shared state.
    """

    default_sender: EmailAddress = field(
        default_factory=lambda: EmailAddress("newsletter@letterbox.localhost", "Letterbox")
    )

    # In-memory storage for test assertions
    sent_emails: list[SentEmail] = field(default_factory=list)

    # Recipients whose sends raise EmailSendError
    fail_recipients: set[str] = field(default_factory=set)

    # Configuration
    log_level: int = logging.INFO
    # Body previews are logged at DEBUG only
    log_body: bool = True
    body_preview_length: int = 100

    @property
    def sender(self) -> EmailAddress:
        return self.default_sender

    def send(self, message: EmailMessage) -> EmailResult:
        recipients = message.recipient_emails
        failing = [r for r in recipients if r in self.fail_recipients]
        if failing:
            raise EmailSendError(failing[0], "Dev mode - configured to fail")

        message_id = f"dev-{uuid4().hex[:12]}"
        sender_str = str(message.sender or self.default_sender)

        self.sent_emails.append(
            SentEmail(
                id=message_id,
                recipients=recipients,
                subject=message.subject,
                body_html=message.body_html,
                body_text=message.body_text,
                sender=sender_str,
                logged_at=datetime.now(UTC),
            )
        )
        self._log_email(
            recipient=", ".join(recipients),
            subject=message.subject,
            body_html=message.body_html,
            message_id=message_id,
            sender=sender_str,
        )
        return EmailResult.skipped(", ".join(recipients), message_id=message_id)

    def _log_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        message_id: str,
        sender: str,
    ) -> None:
        parts = [
            f"EMAIL (dev): To={recipient}",
            f"Subject={subject}",
            f"From={sender}",
            f"MessageID={message_id}",
        ]
        logger.log(self.log_level, ", ".join(parts))

        if self.log_body and body_html:
            preview = body_html[: self.body_preview_length]
            if len(body_html) > self.body_preview_length:
                preview += "..."
            logger.debug("EMAIL (dev) %s Body=%s", message_id, preview)

    # --- Test Helper Methods ---

    def get_last_email(self) -> SentEmail | None:
        """Get the most recently logged email."""
        return self.sent_emails[-1] if self.sent_emails else None

    def get_emails_to(self, recipient: str) -> list[SentEmail]:
        return [e for e in self.sent_emails if recipient in e.recipients]

    def clear(self) -> None:
        self.sent_emails.clear()

    @property
    def email_count(self) -> int:
        return len(self.sent_emails)

    def close(self) -> None:
        pass
