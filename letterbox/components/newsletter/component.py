"""
NewsletterDispatcher component.

Delivers an issue to confirmed subscribers only.

Key behaviors:
- Only rows with status = confirmed are loaded
- Each stored row is revalidated; an invalid row is skipped with a warning
- One single-recipient message per subscriber; addresses are never shared
- The first send failure aborts the loop and reports the failing recipient
"""

from __future__ import annotations

import logging

from letterbox.components.newsletter.models import (
    PublishDatabaseError,
    PublishInput,
    PublishOutput,
    PublishSendEmailError,
    SkippedSubscriber,
)
from letterbox.components.newsletter.ports import ConfirmedSubscriberSourcePort, EmailPort
from letterbox.core.ports.db import StoreError
from letterbox.core.ports.email import EmailAddress, EmailMessage, EmailSendError
from letterbox.domain.entities import ConfirmedSubscriberRow
from letterbox.domain.subscriber import NewSubscriber, SubscriberValidationError

logger = logging.getLogger(__name__)


def parse_confirmed_subscribers(
    rows: list[ConfirmedSubscriberRow],
) -> tuple[list[NewSubscriber], list[SkippedSubscriber]]:
    valid: list[NewSubscriber] = []
    skipped: list[SkippedSubscriber] = []

    for row in rows:
        try:
            valid.append(NewSubscriber.parse(name=row.name, email=row.email))
        except SubscriberValidationError as exc:
            logger.warning("Skipping confirmed subscriber %s because %s", row.email, exc)
            skipped.append(SkippedSubscriber(email=row.email, reason=str(exc)))

    return valid, skipped


def build_issue_email(issue: PublishInput, subscriber: NewSubscriber) -> EmailMessage:
    return EmailMessage(
        recipients=(EmailAddress.from_subscriber(subscriber),),
        subject=issue.title,
        body_html=issue.body_html,
    )


def run_publish(
    inp: PublishInput,
    *,
    subscriptions: ConfirmedSubscriberSourcePort,
    email_sender: EmailPort,
) -> PublishOutput:
    """
    Publish an issue.

    Raises:
        PublishDatabaseError: confirmed subscribers could not be loaded
        PublishSendEmailError: a send failed; carries the failing recipient
    """
    try:
        rows = subscriptions.list_confirmed()
    except StoreError as exc:
        raise PublishDatabaseError("Failed to retrieve confirmed subscribers") from exc

    recipients, skipped = parse_confirmed_subscribers(rows)

    delivered = 0
    for subscriber in recipients:
        try:
            email_sender.send(build_issue_email(inp, subscriber))
        except EmailSendError as exc:
            raise PublishSendEmailError(str(subscriber.email), delivered=delivered) from exc
        delivered += 1

    logger.info(
        "Newsletter issue %r delivered to %d subscribers (%d skipped)",
        inp.title,
        delivered,
        len(skipped),
    )
    return PublishOutput(delivered=delivered, skipped=skipped)
