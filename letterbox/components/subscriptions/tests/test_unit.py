"""
Subscriptions component unit tests.

Covers:
- Token generation (length, alphabet, uniqueness)
- Confirmation link and email construction
- Subscribe: parse errors have no side effects, store stages map to
  SubscribeDatabaseError, email failures happen after commit
- Confirm: missing/unknown token, idempotent re-confirmation, store failures
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qs, urlparse
from uuid import UUID, uuid4

import pytest

from letterbox.components.subscriptions import (
    SUBSCRIPTION_TOKEN_LENGTH,
    TOKEN_ALPHABET,
    ConfirmDatabaseError,
    ConfirmInput,
    ConfirmOutput,
    ConfirmTokenNotFoundError,
    SubscribeDatabaseError,
    SubscribeInput,
    SubscribeOutput,
    SubscribeParseError,
    SubscribeSendEmailError,
    SubscriptionConfig,
    build_confirmation_email,
    build_confirmation_url,
    generate_subscription_token,
    run,
    run_confirm,
    run_subscribe,
)
from letterbox.core.ports.db import StoreError
from letterbox.core.ports.email import EmailAddress, EmailMessage, EmailResult, EmailSendError
from letterbox.domain.entities import Subscriber, SubscriberStatus, SubscriptionToken
from letterbox.domain.subscriber import NewSubscriber

# --- Mock Store ---


class MockStore:
    """In-memory subscriptions + tokens with commit/rollback semantics."""

    def __init__(self) -> None:
        self.subscribers: dict[UUID, Subscriber] = {}
        self.tokens: dict[str, UUID] = {}
        self.fail_on: set[str] = set()


class MockSubscriptionRepo:
    def __init__(self, store: MockStore, staged: dict[UUID, Subscriber] | None = None) -> None:
        self._store = store
        self._target = store.subscribers if staged is None else staged

    def add(self, subscriber: Subscriber) -> Subscriber:
        if "insert_subscriber" in self._store.fail_on:
            raise StoreError("disk I/O error")
        self._target[subscriber.id] = subscriber
        return subscriber

    def get_by_id(self, subscriber_id: UUID) -> Subscriber | None:
        return self._store.subscribers.get(subscriber_id)

    def confirm(self, subscriber_id: UUID) -> int:
        if "confirm" in self._store.fail_on:
            raise StoreError("database is locked")
        sub = self._store.subscribers.get(subscriber_id)
        if sub is None or sub.status is not SubscriberStatus.PENDING_CONFIRMATION:
            return 0
        self._store.subscribers[subscriber_id] = sub.model_copy(
            update={"status": SubscriberStatus.CONFIRMED}
        )
        return 1

    def list_confirmed(self) -> list[Any]:
        return []


class MockTokenRepo:
    def __init__(self, store: MockStore, staged: dict[str, UUID] | None = None) -> None:
        self._store = store
        self._target = store.tokens if staged is None else staged

    def add(self, token: SubscriptionToken) -> SubscriptionToken:
        if "insert_token" in self._store.fail_on:
            raise StoreError("UNIQUE constraint failed: subscription_tokens.subscription_token")
        self._target[token.token] = token.subscriber_id
        return token

    def get_subscriber_id(self, token: str) -> UUID | None:
        if "lookup_token" in self._store.fail_on:
            raise StoreError("no such table: subscription_tokens")
        return self._store.tokens.get(token)


class MockUnitOfWork:
    """Stages writes and only publishes them to the store on commit."""

    def __init__(self, store: MockStore) -> None:
        self._store = store
        self._subs: dict[UUID, Subscriber] = {}
        self._tokens: dict[str, UUID] = {}
        self.subscriptions = MockSubscriptionRepo(store, self._subs)
        self.subscription_tokens = MockTokenRepo(store, self._tokens)
        self.committed = False

    def __enter__(self) -> MockUnitOfWork:
        if "connect" in self._store.fail_on:
            raise StoreError("unable to open database file")
        return self

    def __exit__(self, *exc: Any) -> None:
        self.rollback()

    def commit(self) -> None:
        if "commit" in self._store.fail_on:
            raise StoreError("database is locked")
        self._store.subscribers.update(self._subs)
        self._store.tokens.update(self._tokens)
        self.committed = True
        self.rollback()

    def rollback(self) -> None:
        self._subs.clear()
        self._tokens.clear()


class MockEmailSender:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.messages: list[EmailMessage] = []

    @property
    def sender(self) -> EmailAddress:
        return EmailAddress("newsletter@example.com", "Letterbox")

    def send(self, message: EmailMessage) -> EmailResult:
        if self.fail:
            raise EmailSendError(message.recipient_emails[0], "provider responded 500")
        self.messages.append(message)
        return EmailResult.success(message.recipient_emails[0])


# --- Fixtures ---


@pytest.fixture
def store() -> MockStore:
    return MockStore()


@pytest.fixture
def email_sender() -> MockEmailSender:
    return MockEmailSender()


@pytest.fixture
def config() -> SubscriptionConfig:
    return SubscriptionConfig(base_url="https://letterbox.example.com/")


def _subscribe(
    store: MockStore,
    email_sender: MockEmailSender,
    config: SubscriptionConfig,
    name: str = "le guin",
    email: str = "ursula_le_guin@gmail.com",
) -> SubscribeOutput:
    return run_subscribe(
        SubscribeInput(name=name, email=email),
        unit_of_work=lambda: MockUnitOfWork(store),
        email_sender=email_sender,
        config=config,
    )


def _token_from(message: EmailMessage) -> str:
    url = message.body_text.split("Visit ", 1)[1].split(" ", 1)[0]
    return parse_qs(urlparse(url).query)["subscription_token"][0]


# --- Token Tests ---


class TestSubscriptionToken:
    def test_length_and_alphabet(self) -> None:
        token = generate_subscription_token()
        assert len(token) == SUBSCRIPTION_TOKEN_LENGTH == 20
        assert all(c in TOKEN_ALPHABET for c in token)

    def test_tokens_are_unique(self) -> None:
        tokens = {generate_subscription_token() for _ in range(200)}
        assert len(tokens) == 200

    def test_alphabet_is_alphanumeric(self) -> None:
        assert TOKEN_ALPHABET.isalnum()
        assert len(TOKEN_ALPHABET) == 62


# --- Confirmation Link Tests ---


class TestConfirmationEmail:
    def test_url_shape(self) -> None:
        url = build_confirmation_url("http://127.0.0.1:8000/", "abc123")
        assert url == "http://127.0.0.1:8000/subscriptions/confirm?subscription_token=abc123"

    def test_email_contains_link_in_html_and_text(self) -> None:
        subscriber = NewSubscriber.parse(name="le guin", email="ursula_le_guin@gmail.com")
        url = build_confirmation_url("https://x.test", "tok")
        message = build_confirmation_email(subscriber, url, "Letterbox")

        assert message.recipient_emails == ["ursula_le_guin@gmail.com"]
        assert f'href="{url}"' in message.body_html
        assert url in message.body_text

    def test_email_has_single_recipient(self) -> None:
        subscriber = NewSubscriber.parse(name="le guin", email="ursula_le_guin@gmail.com")
        message = build_confirmation_email(subscriber, "https://x.test/c?t=1", "Letterbox")
        assert len(message.recipients) == 1


# --- Subscribe Tests ---


class TestSubscribe:
    def test_persists_pending_subscriber_and_token(
        self, store: MockStore, email_sender: MockEmailSender, config: SubscriptionConfig
    ) -> None:
        out = _subscribe(store, email_sender, config)

        sub = store.subscribers[out.subscriber_id]
        assert sub.status is SubscriberStatus.PENDING_CONFIRMATION
        assert sub.email == "ursula_le_guin@gmail.com"
        assert sub.name == "le guin"
        assert list(store.tokens.values()) == [out.subscriber_id]

    def test_sends_one_confirmation_email_with_stored_token(
        self, store: MockStore, email_sender: MockEmailSender, config: SubscriptionConfig
    ) -> None:
        _subscribe(store, email_sender, config)

        assert len(email_sender.messages) == 1
        token = _token_from(email_sender.messages[0])
        assert token in store.tokens
        assert "https://letterbox.example.com/subscriptions/confirm?" in (
            email_sender.messages[0].body_text
        )

    @pytest.mark.parametrize(
        ("name", "email", "field"),
        [
            ("", "ursula_le_guin@gmail.com", "name"),
            ("Ursula", "", "email"),
            ("", "", "email"),
            ("Ursula", "definitely-not-an-email", "email"),
            ("<script>", "ursula@example.com", "name"),
        ],
    )
    def test_parse_error_has_no_side_effects(
        self,
        store: MockStore,
        email_sender: MockEmailSender,
        config: SubscriptionConfig,
        name: str,
        email: str,
        field: str,
    ) -> None:
        with pytest.raises(SubscribeParseError) as exc_info:
            _subscribe(store, email_sender, config, name=name, email=email)

        assert exc_info.value.field == field
        assert store.subscribers == {}
        assert store.tokens == {}
        assert email_sender.messages == []

    @pytest.mark.parametrize(
        ("stage", "message"),
        [
            ("connect", "Failed to acquire a database connection"),
            ("insert_subscriber", "Failed to insert new subscriber in the database"),
            ("insert_token", "Failed to store the confirmation token for a new subscriber"),
            ("commit", "Failed to commit SQL transaction to store a new subscriber"),
        ],
    )
    def test_store_failure_commits_nothing(
        self,
        store: MockStore,
        email_sender: MockEmailSender,
        config: SubscriptionConfig,
        stage: str,
        message: str,
    ) -> None:
        store.fail_on.add(stage)

        with pytest.raises(SubscribeDatabaseError) as exc_info:
            _subscribe(store, email_sender, config)

        assert str(exc_info.value) == message
        assert isinstance(exc_info.value.__cause__, StoreError)
        assert store.subscribers == {}
        assert store.tokens == {}
        assert email_sender.messages == []

    def test_email_failure_keeps_committed_subscriber(
        self, store: MockStore, config: SubscriptionConfig
    ) -> None:
        sender = MockEmailSender(fail=True)

        with pytest.raises(SubscribeSendEmailError) as exc_info:
            _subscribe(store, sender, config)

        assert exc_info.value.recipient == "ursula_le_guin@gmail.com"
        assert isinstance(exc_info.value.__cause__, EmailSendError)
        assert len(store.subscribers) == 1
        assert len(store.tokens) == 1

    def test_duplicate_email_creates_second_pending_row(
        self, store: MockStore, email_sender: MockEmailSender, config: SubscriptionConfig
    ) -> None:
        first = _subscribe(store, email_sender, config)
        second = _subscribe(store, email_sender, config)

        assert first.subscriber_id != second.subscriber_id
        assert len(store.subscribers) == 2
        assert len(store.tokens) == 2

    def test_email_is_normalised_before_storage(
        self, store: MockStore, email_sender: MockEmailSender, config: SubscriptionConfig
    ) -> None:
        out = _subscribe(store, email_sender, config, email="  Ursula@Example.COM ")
        assert store.subscribers[out.subscriber_id].email == "Ursula@example.com"


# --- Confirm Tests ---


class TestConfirm:
    def _confirm(self, store: MockStore, token: str | None) -> ConfirmOutput:
        return run_confirm(
            ConfirmInput(token=token),
            subscriptions=MockSubscriptionRepo(store),
            subscription_tokens=MockTokenRepo(store),
        )

    def test_confirm_flips_status(
        self, store: MockStore, email_sender: MockEmailSender, config: SubscriptionConfig
    ) -> None:
        out = _subscribe(store, email_sender, config)
        token = _token_from(email_sender.messages[0])

        result = self._confirm(store, token)

        assert result.subscriber_id == out.subscriber_id
        assert result.already_confirmed is False
        assert store.subscribers[out.subscriber_id].status is SubscriberStatus.CONFIRMED

    def test_reconfirm_is_idempotent(
        self, store: MockStore, email_sender: MockEmailSender, config: SubscriptionConfig
    ) -> None:
        out = _subscribe(store, email_sender, config)
        token = _token_from(email_sender.messages[0])

        self._confirm(store, token)
        again = self._confirm(store, token)

        assert again.already_confirmed is True
        assert store.subscribers[out.subscriber_id].status is SubscriberStatus.CONFIRMED

    @pytest.mark.parametrize("token", [None, "", "unknownToken12345678"])
    def test_missing_or_unknown_token(self, store: MockStore, token: str | None) -> None:
        with pytest.raises(ConfirmTokenNotFoundError):
            self._confirm(store, token)

    def test_lookup_failure_is_database_error(self, store: MockStore) -> None:
        store.fail_on.add("lookup_token")
        with pytest.raises(ConfirmDatabaseError) as exc_info:
            self._confirm(store, "sometoken")
        assert isinstance(exc_info.value.__cause__, StoreError)

    def test_update_failure_is_database_error(self, store: MockStore) -> None:
        sid = uuid4()
        store.subscribers[sid] = Subscriber(id=sid, email="a@b.com", name="A")
        store.tokens["tok"] = sid
        store.fail_on.add("confirm")

        with pytest.raises(ConfirmDatabaseError):
            self._confirm(store, "tok")
        assert store.subscribers[sid].status is SubscriberStatus.PENDING_CONFIRMATION


# --- Dispatcher ---


class TestRun:
    def test_dispatches_subscribe(
        self, store: MockStore, email_sender: MockEmailSender, config: SubscriptionConfig
    ) -> None:
        out = run(
            SubscribeInput(name="le guin", email="ursula_le_guin@gmail.com"),
            unit_of_work=lambda: MockUnitOfWork(store),
            email_sender=email_sender,
            config=config,
        )
        assert isinstance(out, SubscribeOutput)

    def test_dispatches_confirm(self, store: MockStore) -> None:
        with pytest.raises(ConfirmTokenNotFoundError):
            run(
                ConfirmInput(token="nope"),
                subscriptions=MockSubscriptionRepo(store),
                subscription_tokens=MockTokenRepo(store),
            )

    def test_unknown_input(self) -> None:
        with pytest.raises(ValueError, match="Unknown input type"):
            run(object())  # type: ignore[arg-type]

    def test_subscribe_without_ports_is_rejected(self, store: MockStore) -> None:
        with pytest.raises(ValueError, match="Subscribe requires"):
            run(
                SubscribeInput(name="le guin", email="ursula_le_guin@gmail.com"),
                unit_of_work=lambda: MockUnitOfWork(store),
            )
        assert store.subscribers == {}

    def test_confirm_without_ports_is_rejected(self, store: MockStore) -> None:
        with pytest.raises(ValueError, match="Confirm requires"):
            run(ConfirmInput(token="tok"), subscriptions=MockSubscriptionRepo(store))
