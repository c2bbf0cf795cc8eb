"""
Newsletter component ports.
"""

from __future__ import annotations

from typing import Protocol

from letterbox.core.ports.email import EmailPort
from letterbox.domain.entities import ConfirmedSubscriberRow


class ConfirmedSubscriberSourcePort(Protocol):
    """Anything that can list confirmed subscribers (the subscription repo)."""

    def list_confirmed(self) -> list[ConfirmedSubscriberRow]:
        ...


__all__ = ["ConfirmedSubscriberSourcePort", "EmailPort"]
