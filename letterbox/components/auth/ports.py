from typing import Protocol

from letterbox.core.ports.db import UserRepoPort


class PasswordVerifierPort(Protocol):
    """
    CPU-bound password hashing, run off the event loop.

    Implementations own their worker pool and must not let cancellation
    cut a verification short.
    """

    # Hash of a random password at the same cost as stored hashes; unknown
    # usernames are verified against it.
    dummy_hash: str

    async def verify(self, password: str, password_hash: str) -> bool:
        """True on match, False on mismatch. Raises PasswordHashError for a malformed hash."""
        ...

    async def hash(self, password: str) -> str:
        ...


__all__ = ["PasswordVerifierPort", "UserRepoPort"]
