from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class SubscriberStatus(Enum):
    """
    Subscriber lifecycle.

    pending_confirmation -> confirmed, applied only by the conditional UPDATE in
    SQLiteSubscriptionRepo.confirm; confirmed is terminal.
    """

    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"


# --- Subscriptions ---


class Subscriber(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    email: str
    name: str
    status: SubscriberStatus = SubscriberStatus.PENDING_CONFIRMATION
    subscribed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class SubscriptionToken(BaseModel):
    token: str
    subscriber_id: UUID


class ConfirmedSubscriberRow(BaseModel):
    """Raw (name, email) pair as stored; not yet revalidated."""

    name: str
    email: str


# --- Users ---


class User(BaseModel):
    user_id: UUID = Field(default_factory=uuid4)
    username: str
    password_hash: str = Field(repr=False)
