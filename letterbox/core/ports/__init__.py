# letterbox: Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from letterbox.core.ports.db import (
    StoreError,
    SubscriptionRepoPort,
    SubscriptionTokenRepoPort,
    UnitOfWorkPort,
    UserRepoPort,
)
from letterbox.core.ports.email import (
    EmailAddress,
    EmailError,
    EmailMessage,
    EmailPort,
    EmailResult,
    EmailSendError,
    EmailStatus,
)

__all__ = [
    # Store
    "StoreError",
    "SubscriptionRepoPort",
    "SubscriptionTokenRepoPort",
    "UnitOfWorkPort",
    "UserRepoPort",
    # Email
    "EmailAddress",
    "EmailError",
    "EmailMessage",
    "EmailPort",
    "EmailResult",
    "EmailSendError",
    "EmailStatus",
]
