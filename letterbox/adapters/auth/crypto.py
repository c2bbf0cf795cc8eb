from __future__ import annotations

import asyncio
import secrets
from concurrent.futures import ThreadPoolExecutor

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from letterbox.components.auth.models import PasswordHashError

DEFAULT_TIME_COST = 2
DEFAULT_MEMORY_COST = 15000  # KiB
DEFAULT_PARALLELISM = 1


class Argon2AuthAdapter:
    """
    argon2id hashing on a dedicated worker pool.

    Verification is deliberately slow, so it never runs on the event loop or
    in the general request thread pool. Awaited calls are shielded: a
    cancelled request still lets its verification finish.

    ``dummy_hash`` is computed with this hasher, so verifying against it costs
    the same as verifying a stored hash created with the same parameters.
    """

    def __init__(
        self,
        time_cost: int = DEFAULT_TIME_COST,
        memory_cost: int = DEFAULT_MEMORY_COST,
        parallelism: int = DEFAULT_PARALLELISM,
        max_workers: int = 4,
    ) -> None:
        self.ph = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            type=Type.ID,
        )
        self.dummy_hash = self.hash_password(secrets.token_urlsafe(32))
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="password-verifier"
        )

    def hash_password(self, password: str) -> str:
        return str(self.ph.hash(password))

    def verify_password(self, password: str, hash_str: str) -> bool:
        try:
            self.ph.verify(hash_str, password)
            return True
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError) as exc:
            raise PasswordHashError(str(exc)) from exc

    async def verify(self, password: str, password_hash: str) -> bool:
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._executor, self.verify_password, password, password_hash)
        return await asyncio.shield(future)

    async def hash(self, password: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self.hash_password, password)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
