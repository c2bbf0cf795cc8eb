from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from letterbox.adapters.dev_email import DevEmailAdapter
from letterbox.adapters.sqlite.migrator import SQLiteMigrator
from letterbox.api.main import create_app
from letterbox.app_shell.config import Settings
from letterbox.app_shell.context import ServiceContext
from letterbox.core.ports.email import EmailAddress
from letterbox.domain.entities import User

PROJECT_ROOT = Path(__file__).resolve().parent.parent
MIGRATIONS_DIR = PROJECT_ROOT / "migrations"

BASE_URL = "http://testserver"
HMAC_SECRET = "test-hmac-secret"
SESSION_SECRET = "test-session-secret"

OPERATOR_USERNAME = "ursula"
OPERATOR_PASSWORD = "the left hand of darkness"


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Fresh, fully migrated SQLite database."""
    path = str(tmp_path / "letterbox.db")
    SQLiteMigrator(path, MIGRATIONS_DIR).run_migrations()
    return path


@pytest.fixture
def settings(db_path: str) -> Settings:
    return Settings.model_validate(
        {
            "application": {
                "base_url": BASE_URL,
                "hmac_secret": HMAC_SECRET,
                "session_secret": SESSION_SECRET,
            },
            "database": {"path": db_path},
            "email": {
                "backend": "dev",
                "sender_name": "Letterbox",
                "sender_email": "newsletter@letterbox.test",
            },
        }
    )


@pytest.fixture
def email_sender() -> DevEmailAdapter:
    return DevEmailAdapter(default_sender=EmailAddress("newsletter@letterbox.test", "Letterbox"))


@pytest.fixture
def context(settings: Settings, email_sender: DevEmailAdapter) -> Iterator[ServiceContext]:
    ctx = ServiceContext.create(settings, email_sender=email_sender)
    yield ctx
    ctx.password_verifier.shutdown()


@pytest.fixture
def operator(context: ServiceContext) -> User:
    """An operator account hashed with the configured argon2 parameters."""
    user = User(
        username=OPERATOR_USERNAME,
        password_hash=context.password_verifier.hash_password(OPERATOR_PASSWORD),
    )
    return context.user_repo.add(user)


@pytest.fixture
def client(context: ServiceContext) -> Iterator[TestClient]:
    app = create_app(context)
    with TestClient(app, base_url=BASE_URL, follow_redirects=False) as c:
        yield c


@pytest.fixture
def logged_in_client(client: TestClient, operator: User) -> TestClient:
    response = client.post(
        "/login", data={"username": OPERATOR_USERNAME, "password": OPERATOR_PASSWORD}
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/admin/dashboard"
    return client
