"""
Brevo Email Adapter.

Sends transactional email through Brevo's HTTP API (``POST /v3/smtp/email``).
One reusable httpx.Client per adapter; every request is bounded by the
configured timeout and fails instead of hanging.

Key behaviors:
- API key travels in the ``api-key`` header and is never logged
- Non-2xx responses and transport errors (timeouts included) raise EmailSendError
- No retries; the caller decides what a failed send means
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import SecretStr

from letterbox.core.ports.email import (
    EmailAddress,
    EmailMessage,
    EmailResult,
    EmailSendError,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.brevo.com/v3/smtp/email"
DEFAULT_TIMEOUT_SECONDS = 10.0


def _person(address: EmailAddress) -> dict[str, str]:
    person = {"email": address.email}
    if address.name:
        person["name"] = address.name
    return person


def build_payload(message: EmailMessage, sender: EmailAddress) -> dict[str, Any]:
    """Brevo request body: ``{sender, to, subject, htmlContent[, textContent]}``."""
    payload: dict[str, Any] = {
        "sender": _person(message.sender or sender),
        "to": [_person(r) for r in message.recipients],
        "subject": message.subject,
        "htmlContent": message.body_html,
    }
    if message.body_text:
        payload["textContent"] = message.body_text
    return payload


class BrevoEmailAdapter:
    """Implements EmailPort over Brevo's transactional API."""

    def __init__(
        self,
        *,
        api_key: SecretStr,
        sender: EmailAddress,
        api_url: str = DEFAULT_API_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._sender = sender
        self.api_url = api_url
        self._client = client or httpx.Client(timeout=timeout_seconds)
        self._owns_client = client is None

    @property
    def sender(self) -> EmailAddress:
        return self._sender

    def send(self, message: EmailMessage) -> EmailResult:
        recipient = ", ".join(message.recipient_emails)
        try:
            response = self._client.post(
                self.api_url,
                headers={
                    "api-key": self._api_key.get_secret_value(),
                    "accept": "application/json",
                    "content-type": "application/json",
                },
                json=build_payload(message, self._sender),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise EmailSendError(
                recipient, f"provider responded {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise EmailSendError(recipient, f"{type(exc).__name__}: {exc}") from exc

        message_id = _message_id(response)
        logger.debug("Brevo accepted email to %s (message_id=%s)", recipient, message_id)
        return EmailResult.success(recipient, message_id=message_id)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


def _message_id(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    return body.get("messageId") if isinstance(body, dict) else None
