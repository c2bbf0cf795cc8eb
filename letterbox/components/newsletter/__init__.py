"""
Newsletter component.

Publishes an issue to confirmed subscribers.
"""

from letterbox.components.newsletter.component import (
    build_issue_email,
    parse_confirmed_subscribers,
    run_publish,
)
from letterbox.components.newsletter.models import (
    PublishDatabaseError,
    PublishError,
    PublishInput,
    PublishOutput,
    PublishSendEmailError,
    SkippedSubscriber,
)
from letterbox.components.newsletter.ports import ConfirmedSubscriberSourcePort

__all__ = [
    # Component
    "run_publish",
    # Pure functions
    "parse_confirmed_subscribers",
    "build_issue_email",
    # Models
    "PublishInput",
    "PublishOutput",
    "SkippedSubscriber",
    # Errors
    "PublishError",
    "PublishDatabaseError",
    "PublishSendEmailError",
    # Ports
    "ConfirmedSubscriberSourcePort",
]
