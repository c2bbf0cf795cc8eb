"""
Newsletter component models.

Data models for publishing an issue to confirmed subscribers.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PublishInput:
    """A newsletter issue."""

    title: str
    body_html: str


@dataclass(frozen=True)
class SkippedSubscriber:
    """Stored row that failed revalidation at publish time."""

    email: str
    reason: str


@dataclass(frozen=True)
class PublishOutput:
    delivered: int
    skipped: list[SkippedSubscriber] = field(default_factory=list)


# --- Error Types ---


class PublishError(Exception):
    """Base error for the publish operation."""


class PublishDatabaseError(PublishError):
    """Loading confirmed subscribers failed."""


class PublishSendEmailError(PublishError):
    """Delivery to one recipient failed; the remaining recipients were not attempted."""

    def __init__(self, recipient: str, delivered: int = 0) -> None:
        self.recipient = recipient
        self.delivered = delivered
        super().__init__(f"Failed to send newsletter issue to {recipient}")
