"""
Signed error messages for redirects.

An error message rides in the redirect URL as ``error=<url-encoded>`` next to
``tag=<hex HMAC-SHA256>``. The MAC is computed over the exact query-string
bytes ``error=<url-encoded message>``, so the login page can tell a message
it issued apart from one an attacker put in a crafted link.

Pages other than the login page sign with ``derive_page_secret(secret, path)``,
so a message issued for one page is not accepted by another.

Verification fails closed: a missing tag, a tag that is not hex, and a tag
that does not match are all just "invalid".
"""

from __future__ import annotations

import hashlib
import hmac
from urllib.parse import quote, urlencode

ERROR_PARAM = "error"
TAG_PARAM = "tag"


def encode_error_query(message: str) -> str:
    """Canonical signed content: ``error=<url-encoded message>``."""
    return urlencode({ERROR_PARAM: message}, quote_via=quote)


def sign(message: str, secret: bytes) -> bytes:
    """HMAC-SHA256 tag over the encoded query string."""
    return hmac.new(secret, encode_error_query(message).encode("utf-8"), hashlib.sha256).digest()


def verify(message: str, tag: bytes | None, secret: bytes) -> bool:
    if not tag:
        return False
    return hmac.compare_digest(sign(message, secret), tag)


def verify_hex(message: str | None, tag_hex: str | None, secret: bytes) -> bool:
    """Verify a tag as received in a query string (hex encoded)."""
    if message is None or not tag_hex:
        return False
    try:
        tag = bytes.fromhex(tag_hex)
    except ValueError:
        return False
    return verify(message, tag, secret)


def derive_page_secret(secret: bytes, path: str) -> bytes:
    """Key for messages shown on ``path`` only; its tags do not verify elsewhere."""
    return hmac.new(secret, f"redirect-page:{path}".encode("utf-8"), hashlib.sha256).digest()


def build_error_redirect(path: str, message: str, secret: bytes) -> str:
    """``<path>?error=<encoded>&tag=<hex>``"""
    query = encode_error_query(message)
    return f"{path}?{query}&{TAG_PARAM}={sign(message, secret).hex()}"


def read_verified_error(message: str | None, tag_hex: str | None, secret: bytes) -> str | None:
    """Return the message only if its tag verifies; never an unverified message."""
    if verify_hex(message, tag_hex, secret):
        return message
    return None
