"""
Auth component.

Timing-safe credential verification and password changes.
"""

from letterbox.components.auth.component import (
    authenticate,
    change_password,
    parse_basic_authorization,
    validate_new_password,
)
from letterbox.components.auth.models import (
    MAX_PASSWORD_LENGTH,
    MIN_PASSWORD_LENGTH,
    AuthError,
    ChangePasswordInput,
    Credentials,
    InvalidCredentialsError,
    PasswordHashError,
    PasswordPolicyError,
    UnexpectedAuthError,
)
from letterbox.components.auth.ports import PasswordVerifierPort

__all__ = [
    # Component
    "authenticate",
    "change_password",
    "parse_basic_authorization",
    "validate_new_password",
    # Models
    "Credentials",
    "ChangePasswordInput",
    "MIN_PASSWORD_LENGTH",
    "MAX_PASSWORD_LENGTH",
    # Errors
    "AuthError",
    "InvalidCredentialsError",
    "UnexpectedAuthError",
    "PasswordHashError",
    "PasswordPolicyError",
    # Ports
    "PasswordVerifierPort",
]
