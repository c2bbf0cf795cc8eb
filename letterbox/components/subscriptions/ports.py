"""
Subscriptions component ports.

Protocol interfaces for the subscription service dependencies.
"""

from __future__ import annotations

from collections.abc import Callable

from letterbox.core.ports.db import (
    SubscriptionRepoPort,
    SubscriptionTokenRepoPort,
    UnitOfWorkPort,
)
from letterbox.core.ports.email import EmailPort

# Opens a fresh transaction each call.
UnitOfWorkFactory = Callable[[], UnitOfWorkPort]

__all__ = [
    "EmailPort",
    "SubscriptionRepoPort",
    "SubscriptionTokenRepoPort",
    "UnitOfWorkFactory",
    "UnitOfWorkPort",
]
