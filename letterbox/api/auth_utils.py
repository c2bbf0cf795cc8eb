from datetime import UTC, datetime, timedelta
from typing import Any, cast

from jose import jwt

ALGORITHM = "HS256"
SESSION_COOKIE_NAME = "letterbox_session"


def create_session_token(
    user_id: str,
    secret: str,
    expires_delta: timedelta,
    now_utc: datetime | None = None,
) -> str:
    """
    Create a signed session JWT.

    Args:
        user_id: Becomes the ``sub`` claim
        secret: HMAC key for HS256
        expires_delta: Lifetime of the token
        now_utc: Current UTC time (for testing/determinism). Defaults to datetime.now(UTC).
    """
    current_time = now_utc if now_utc is not None else datetime.now(UTC)
    claims = {"sub": user_id, "iat": current_time, "exp": current_time + expires_delta}
    encoded_jwt: str = jwt.encode(claims, secret, algorithm=ALGORITHM)
    return encoded_jwt


def decode_session_token(token: str, secret: str) -> dict[str, Any] | None:
    """Claims of a valid, unexpired token; None for anything else."""
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
        return cast(dict[str, Any], payload)
    except jwt.JWTError:
        return None
