"""
CredentialVerifier component.

Authenticates a username/password pair without leaking, through timing or
error shape, whether the username exists.

Key behaviors:
- An unknown username is verified against the verifier's dummy hash instead
  of returning early, so both branches pay for one verification at the
  configured cost
- The outcome is decided only after verification completes
- Store and hash-format failures are UnexpectedAuthError, never a hint
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from uuid import UUID

from letterbox.components.auth.models import (
    MAX_PASSWORD_LENGTH,
    MIN_PASSWORD_LENGTH,
    ChangePasswordInput,
    Credentials,
    InvalidCredentialsError,
    PasswordHashError,
    PasswordPolicyError,
    UnexpectedAuthError,
)
from letterbox.components.auth.ports import PasswordVerifierPort, UserRepoPort
from letterbox.core.ports.db import StoreError

logger = logging.getLogger(__name__)


async def authenticate(
    credentials: Credentials,
    *,
    user_repo: UserRepoPort,
    password_verifier: PasswordVerifierPort,
) -> UUID:
    """
    Return the user id for valid credentials.

    Raises:
        InvalidCredentialsError: unknown username or wrong password
        UnexpectedAuthError: the store or the stored hash failed
    """
    try:
        user = await asyncio.to_thread(user_repo.get_by_username, credentials.username)
    except StoreError as exc:
        raise UnexpectedAuthError("Failed to perform a query to retrieve stored credentials") from exc

    user_id = user.user_id if user is not None else None
    expected_hash = user.password_hash if user is not None else password_verifier.dummy_hash

    try:
        matched = await password_verifier.verify(credentials.password, expected_hash)
    except PasswordHashError as exc:
        raise UnexpectedAuthError("Failed to parse hash in PHC string format") from exc

    if user_id is None:
        raise InvalidCredentialsError("Unknown username")
    if not matched:
        raise InvalidCredentialsError("Invalid password")
    return user_id


def parse_basic_authorization(header: str | None) -> Credentials:
    """
    Extract credentials from an ``Authorization: Basic ...`` header.

    Every malformed header is an InvalidCredentialsError so the caller can
    answer 401 uniformly.
    """
    if not header:
        raise InvalidCredentialsError("The 'Authorization' header was missing")

    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded.strip():
        raise InvalidCredentialsError("The authorization scheme was not 'Basic'")

    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, ValueError) as exc:
        # UnicodeDecodeError is a ValueError
        raise InvalidCredentialsError("Failed to decode 'Basic' credentials") from exc

    username, sep, password = decoded.partition(":")
    if not sep:
        raise InvalidCredentialsError("A password must be provided in 'Basic' auth")
    if not username:
        raise InvalidCredentialsError("A username must be provided in 'Basic' auth")

    return Credentials(username=username, password=password)


def validate_new_password(new_password: str, new_password_check: str) -> None:
    if new_password != new_password_check:
        raise PasswordPolicyError(
            "You entered two different new passwords - the field values must match."
        )
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise PasswordPolicyError(
            f"The new password must be at least {MIN_PASSWORD_LENGTH} characters long."
        )
    if len(new_password) > MAX_PASSWORD_LENGTH:
        raise PasswordPolicyError(
            f"The new password must be at most {MAX_PASSWORD_LENGTH} characters long."
        )


async def change_password(
    inp: ChangePasswordInput,
    *,
    user_repo: UserRepoPort,
    password_verifier: PasswordVerifierPort,
) -> None:
    """
    Replace a user's password after re-checking the current one.

    Raises:
        PasswordPolicyError: new passwords differ or have a bad length
        InvalidCredentialsError: the current password is wrong
        UnexpectedAuthError: the store or the hasher failed
    """
    validate_new_password(inp.new_password, inp.new_password_check)

    try:
        user = await asyncio.to_thread(user_repo.get_by_id, inp.user_id)
    except StoreError as exc:
        raise UnexpectedAuthError("Failed to retrieve the current user") from exc
    if user is None:
        raise UnexpectedAuthError(f"User {inp.user_id} no longer exists")

    await authenticate(
        Credentials(username=user.username, password=inp.current_password),
        user_repo=user_repo,
        password_verifier=password_verifier,
    )

    new_hash = await password_verifier.hash(inp.new_password)
    try:
        await asyncio.to_thread(user_repo.update_password_hash, user.user_id, new_hash)
    except StoreError as exc:
        raise UnexpectedAuthError("Failed to change user's password in the database") from exc

    logger.info("Password changed for user %s", user.user_id)
