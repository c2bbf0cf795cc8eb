"""
SubscriptionService component.

Functional core for double opt-in subscriptions.

Key behaviors:
- Parse the form into a validated subscriber before touching the store
- Subscriber row and confirmation token are committed in one transaction
- The confirmation email is sent only after commit; a send failure does
  not roll the subscriber back
- Confirmation flips pending_confirmation -> confirmed exactly once;
  re-confirming is a no-op success
"""

from __future__ import annotations

import html
import logging
import secrets
import string
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from urllib.parse import urlencode

from letterbox.components.subscriptions.models import (
    ConfirmDatabaseError,
    ConfirmInput,
    ConfirmOutput,
    ConfirmTokenNotFoundError,
    SubscribeDatabaseError,
    SubscribeInput,
    SubscribeOutput,
    SubscribeParseError,
    SubscribeSendEmailError,
    SubscriptionConfig,
)
from letterbox.components.subscriptions.ports import (
    EmailPort,
    SubscriptionRepoPort,
    SubscriptionTokenRepoPort,
    UnitOfWorkFactory,
)
from letterbox.core.ports.db import StoreError
from letterbox.core.ports.email import EmailAddress, EmailMessage, EmailSendError
from letterbox.domain.entities import Subscriber, SubscriberStatus, SubscriptionToken
from letterbox.domain.subscriber import NewSubscriber, SubscriberValidationError

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_letters + string.digits
SUBSCRIPTION_TOKEN_LENGTH = 20

# --- Pure Functions (Functional Core) ---


def generate_subscription_token(length: int = SUBSCRIPTION_TOKEN_LENGTH) -> str:
    """Unpredictable alphanumeric token drawn from a CSPRNG."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def create_subscriber(new_subscriber: NewSubscriber, now: datetime | None = None) -> Subscriber:
    """New subscriber row in pending_confirmation status."""
    return Subscriber(
        email=str(new_subscriber.email),
        name=str(new_subscriber.name),
        status=SubscriberStatus.PENDING_CONFIRMATION,
        subscribed_at=now or datetime.now(UTC),
    )


def build_confirmation_url(
    base_url: str,
    token: str,
    path: str = "/subscriptions/confirm",
) -> str:
    base = base_url.rstrip("/")
    return f"{base}{path}?{urlencode({'subscription_token': token})}"


def build_confirmation_email(
    subscriber: NewSubscriber,
    confirmation_url: str,
    site_name: str,
) -> EmailMessage:
    link = html.escape(confirmation_url, quote=True)
    return EmailMessage(
        recipients=(EmailAddress.from_subscriber(subscriber),),
        subject=f"Welcome to {site_name}!",
        body_html=(
            f"<p>Welcome to {html.escape(site_name)}!</p>"
            f'<p>Click <a href="{link}">here</a> to confirm your subscription.</p>'
        ),
        body_text=(
            f"Welcome to {site_name}!\n"
            f"Visit {confirmation_url} to confirm your subscription."
        ),
    )


@contextmanager
def _database_stage(description: str) -> Iterator[None]:
    try:
        yield
    except StoreError as exc:
        raise SubscribeDatabaseError(description) from exc


# --- Run Handlers ---


def run_subscribe(
    inp: SubscribeInput,
    *,
    unit_of_work: UnitOfWorkFactory,
    email_sender: EmailPort,
    config: SubscriptionConfig,
) -> SubscribeOutput:
    """
    Handle a subscription form.

    Raises:
        SubscribeParseError: form failed validation; no side effects
        SubscribeDatabaseError: insert/commit failed; nothing committed
        SubscribeSendEmailError: committed, but the confirmation email failed
    """
    try:
        new_subscriber = NewSubscriber.parse(name=inp.name, email=inp.email)
    except SubscriberValidationError as exc:
        raise SubscribeParseError(exc) from exc

    subscriber = create_subscriber(new_subscriber)
    token = generate_subscription_token()

    with _database_stage("Failed to acquire a database connection"):
        with unit_of_work() as uow:
            with _database_stage("Failed to insert new subscriber in the database"):
                uow.subscriptions.add(subscriber)
            with _database_stage("Failed to store the confirmation token for a new subscriber"):
                uow.subscription_tokens.add(
                    SubscriptionToken(token=token, subscriber_id=subscriber.id)
                )
            with _database_stage("Failed to commit SQL transaction to store a new subscriber"):
                uow.commit()

    logger.info("New subscriber %s saved as pending confirmation", subscriber.id)

    # Sent after commit: never hold the transaction open across the HTTP call.
    url = build_confirmation_url(config.base_url, token, config.confirmation_path)
    message = build_confirmation_email(new_subscriber, url, config.site_name)
    try:
        email_sender.send(message)
    except EmailSendError as exc:
        raise SubscribeSendEmailError(str(new_subscriber.email)) from exc

    logger.info("Confirmation email sent to %s", new_subscriber.email)
    return SubscribeOutput(subscriber_id=subscriber.id)


def run_confirm(
    inp: ConfirmInput,
    *,
    subscriptions: SubscriptionRepoPort,
    subscription_tokens: SubscriptionTokenRepoPort,
) -> ConfirmOutput:
    """
    Handle a confirmation link.

    Raises:
        ConfirmTokenNotFoundError: token missing or unknown
        ConfirmDatabaseError: the store failed
    """
    if not inp.token:
        raise ConfirmTokenNotFoundError()

    try:
        subscriber_id = subscription_tokens.get_subscriber_id(inp.token)
    except StoreError as exc:
        raise ConfirmDatabaseError(
            "Failed to retrieve the subscriber id associated with the provided token"
        ) from exc

    if subscriber_id is None:
        raise ConfirmTokenNotFoundError()

    try:
        updated = subscriptions.confirm(subscriber_id)
    except StoreError as exc:
        raise ConfirmDatabaseError("Failed to mark subscriber as confirmed") from exc

    if updated:
        logger.info("Subscriber %s confirmed", subscriber_id)
    return ConfirmOutput(subscriber_id=subscriber_id, already_confirmed=updated == 0)


def run(
    inp: SubscribeInput | ConfirmInput,
    *,
    unit_of_work: UnitOfWorkFactory | None = None,
    subscriptions: SubscriptionRepoPort | None = None,
    subscription_tokens: SubscriptionTokenRepoPort | None = None,
    email_sender: EmailPort | None = None,
    config: SubscriptionConfig | None = None,
) -> SubscribeOutput | ConfirmOutput:
    """
    Main component entry point.

    Args:
        inp: Input command
        unit_of_work: Transaction factory (subscribe)
        subscriptions: Subscriber repository (confirm)
        subscription_tokens: Token repository (confirm)
        email_sender: Email port (subscribe)
        config: Link configuration (subscribe)

    Raises:
        ValueError: unknown input type, or a port the command needs is missing
    """
    if isinstance(inp, SubscribeInput):
        if unit_of_work is None or email_sender is None or config is None:
            raise ValueError("Subscribe requires unit_of_work, email_sender and config")
        return run_subscribe(
            inp,
            unit_of_work=unit_of_work,
            email_sender=email_sender,
            config=config,
        )
    elif isinstance(inp, ConfirmInput):
        if subscriptions is None or subscription_tokens is None:
            raise ValueError("Confirm requires subscriptions and subscription_tokens")
        return run_confirm(
            inp,
            subscriptions=subscriptions,
            subscription_tokens=subscription_tokens,
        )
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
