from __future__ import annotations

import logging
from dataclasses import dataclass

from letterbox.adapters.auth.crypto import Argon2AuthAdapter
from letterbox.adapters.brevo_email import BrevoEmailAdapter
from letterbox.adapters.dev_email import DevEmailAdapter
from letterbox.adapters.sqlite_db import (
    SQLiteSubscriptionRepo,
    SQLiteSubscriptionTokenRepo,
    SQLiteUnitOfWork,
    SQLiteUserRepo,
)
from letterbox.app_shell.config import EmailBackend, Settings
from letterbox.components.subscriptions import SubscriptionConfig
from letterbox.core.ports.email import EmailPort

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    """
    Everything a request needs, built once at process start.

    Routes reach it through ``app.state.context``; nothing here is global.
    """

    settings: Settings
    subscriptions: SQLiteSubscriptionRepo
    subscription_tokens: SQLiteSubscriptionTokenRepo
    user_repo: SQLiteUserRepo
    email_sender: EmailPort
    password_verifier: Argon2AuthAdapter

    @classmethod
    def create(cls, settings: Settings, email_sender: EmailPort | None = None) -> ServiceContext:
        db_path = settings.database.path
        auth = settings.auth

        return cls(
            settings=settings,
            subscriptions=SQLiteSubscriptionRepo(db_path),
            subscription_tokens=SQLiteSubscriptionTokenRepo(db_path),
            user_repo=SQLiteUserRepo(db_path),
            email_sender=email_sender or build_email_sender(settings),
            password_verifier=Argon2AuthAdapter(
                time_cost=auth.time_cost,
                memory_cost=auth.memory_cost,
                parallelism=auth.parallelism,
                max_workers=auth.verifier_workers,
            ),
        )

    def unit_of_work(self) -> SQLiteUnitOfWork:
        return SQLiteUnitOfWork(self.settings.database.path)

    @property
    def subscription_config(self) -> SubscriptionConfig:
        return SubscriptionConfig(base_url=self.settings.application.base_url)

    @property
    def hmac_secret(self) -> bytes:
        return self.settings.application.hmac_secret.get_secret_value().encode("utf-8")

    def close(self) -> None:
        self.password_verifier.shutdown()
        close = getattr(self.email_sender, "close", None)
        if callable(close):
            close()


def build_email_sender(settings: Settings) -> EmailPort:
    email = settings.email
    if email.backend is EmailBackend.BREVO:
        if not email.api_key.get_secret_value():
            raise ValueError("email.api_key is required for the brevo backend")
        return BrevoEmailAdapter(
            api_key=email.api_key,
            sender=email.sender,
            api_url=email.api_url,
            timeout_seconds=email.timeout_seconds,
        )

    logger.warning("Using the dev email backend: emails are logged, not sent")
    return DevEmailAdapter(default_sender=email.sender)
