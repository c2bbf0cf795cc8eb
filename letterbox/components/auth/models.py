from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

MIN_PASSWORD_LENGTH = 12
MAX_PASSWORD_LENGTH = 128


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class ChangePasswordInput:
    user_id: UUID
    current_password: str = field(repr=False)
    new_password: str = field(repr=False)
    new_password_check: str = field(repr=False)


# --- Error Types ---


class AuthError(Exception):
    """Base error for credential verification."""


class InvalidCredentialsError(AuthError):
    """Unknown username or wrong password. The two cases are never told apart."""

    def __init__(self, detail: str = "Invalid credentials") -> None:
        super().__init__(detail)


class UnexpectedAuthError(AuthError):
    """Store or hash failure while authenticating. Internal, never shown as a hint."""


class PasswordHashError(Exception):
    """A stored hash could not be parsed or verified."""


class PasswordPolicyError(ValueError):
    """A proposed new password was rejected before any credential check."""
