"""
Subscriptions component.

Double opt-in subscription and confirmation.
"""

from letterbox.components.subscriptions.component import (
    SUBSCRIPTION_TOKEN_LENGTH,
    TOKEN_ALPHABET,
    build_confirmation_email,
    build_confirmation_url,
    create_subscriber,
    generate_subscription_token,
    run,
    run_confirm,
    run_subscribe,
)
from letterbox.components.subscriptions.models import (
    ConfirmDatabaseError,
    ConfirmError,
    ConfirmInput,
    ConfirmOutput,
    ConfirmTokenNotFoundError,
    SubscribeDatabaseError,
    SubscribeError,
    SubscribeInput,
    SubscribeOutput,
    SubscribeParseError,
    SubscribeSendEmailError,
    SubscriptionConfig,
)
from letterbox.components.subscriptions.ports import UnitOfWorkFactory

__all__ = [
    # Component
    "run",
    "run_subscribe",
    "run_confirm",
    # Pure functions
    "generate_subscription_token",
    "create_subscriber",
    "build_confirmation_url",
    "build_confirmation_email",
    # Constants
    "SUBSCRIPTION_TOKEN_LENGTH",
    "TOKEN_ALPHABET",
    # Models
    "SubscribeInput",
    "SubscribeOutput",
    "ConfirmInput",
    "ConfirmOutput",
    "SubscriptionConfig",
    # Errors
    "SubscribeError",
    "SubscribeParseError",
    "SubscribeDatabaseError",
    "SubscribeSendEmailError",
    "ConfirmError",
    "ConfirmTokenNotFoundError",
    "ConfirmDatabaseError",
    # Ports
    "UnitOfWorkFactory",
]
