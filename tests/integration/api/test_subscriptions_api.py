import re
import sqlite3
from urllib.parse import parse_qs, urlsplit

import pytest

BASE_URL = "http://testserver"

LINK_RE = re.compile(r'href="([^"]+)"')


def _rows(db_path):
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute("SELECT email, name, status FROM subscriptions").fetchall()
    finally:
        conn.close()


def _confirmation_link(email_sender) -> str:
    sent = email_sender.get_last_email()
    assert sent is not None
    match = LINK_RE.search(sent.body_html)
    assert match, sent.body_html
    return match.group(1)


def _subscribe(client, name="le guin", email="ursula_le_guin@gmail.com"):
    return client.post("/subscriptions", data={"name": name, "email": email})


def test_subscribe_persists_pending_and_sends_one_email(client, db_path, email_sender):
    response = _subscribe(client)

    assert response.status_code == 200
    assert _rows(db_path) == [("ursula_le_guin@gmail.com", "le guin", "pending_confirmation")]
    assert email_sender.email_count == 1

    link = _confirmation_link(email_sender)
    assert link.startswith(f"{BASE_URL}/subscriptions/confirm?")
    token = parse_qs(urlsplit(link).query)["subscription_token"][0]
    assert len(token) == 20 and token.isalnum()


def test_confirmation_email_goes_only_to_the_subscriber(client, email_sender):
    _subscribe(client)
    sent = email_sender.get_last_email()
    assert sent.recipients == ["ursula_le_guin@gmail.com"]
    assert sent.subject == "Welcome to Letterbox!"


def test_confirm_link_confirms_and_is_idempotent(client, db_path, email_sender):
    _subscribe(client)
    link = _confirmation_link(email_sender)
    path = link[len(BASE_URL):]

    first = client.get(path)
    assert first.status_code == 200
    assert _rows(db_path)[0][2] == "confirmed"

    second = client.get(path)
    assert second.status_code == 200
    assert _rows(db_path)[0][2] == "confirmed"


@pytest.mark.parametrize(
    "path",
    [
        "/subscriptions/confirm",
        "/subscriptions/confirm?subscription_token=",
        "/subscriptions/confirm?subscription_token=doesNotExist1234567",
    ],
)
def test_confirm_without_valid_token_is_rejected(client, path):
    assert client.get(path).status_code == 400


@pytest.mark.parametrize(
    "name,email",
    [
        ("", "ursula_le_guin@gmail.com"),
        ("   ", "ursula_le_guin@gmail.com"),
        ("Ursula", ""),
        ("Ursula", "definitely-not-an-email"),
        ("<script>", "ursula_le_guin@gmail.com"),
        ("a" * 257, "ursula_le_guin@gmail.com"),
    ],
)
def test_invalid_fields_are_rejected_without_side_effects(
    client, db_path, email_sender, name, email
):
    response = _subscribe(client, name=name, email=email)

    assert response.status_code == 400
    assert _rows(db_path) == []
    assert email_sender.email_count == 0


@pytest.mark.parametrize("data", [{"name": "le guin"}, {"email": "ursula_le_guin@gmail.com"}, {}])
def test_missing_form_fields_are_rejected(client, data):
    response = client.post("/subscriptions", data=data)
    assert response.status_code == 400


def test_email_is_normalised(client, db_path):
    _subscribe(client, email="  Ursula_Le_Guin@Gmail.COM ")
    assert _rows(db_path)[0][0] == "Ursula_Le_Guin@gmail.com"


def test_failed_confirmation_email_returns_500_but_keeps_row(client, db_path, email_sender):
    email_sender.fail_recipients.add("ursula_le_guin@gmail.com")

    response = _subscribe(client)

    assert response.status_code == 500
    assert response.json()["detail"] == "Something went wrong"
    assert _rows(db_path) == [("ursula_le_guin@gmail.com", "le guin", "pending_confirmation")]


def test_database_failure_returns_500(client, db_path, email_sender):
    conn = sqlite3.connect(db_path)
    conn.execute("DROP TABLE subscription_tokens")
    conn.commit()
    conn.close()

    response = _subscribe(client)

    assert response.status_code == 500
    assert _rows(db_path) == []
    assert email_sender.email_count == 0


def test_resubscribing_creates_a_second_pending_row(client, db_path, email_sender):
    _subscribe(client)
    _subscribe(client)

    assert [r[2] for r in _rows(db_path)] == ["pending_confirmation", "pending_confirmation"]
    assert email_sender.email_count == 2
