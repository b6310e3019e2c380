from collections.abc import Iterator

import pytest

from app import create_app
from app.security import hash_password
from models import create_user, reset_engine


@pytest.fixture()
def app(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    monkeypatch.setenv("PROGRESS_SYNC_PROVIDER", "inline")
    monkeypatch.setenv("SESSION_COOKIE_SECURE", "false")
    monkeypatch.delenv("LOCAL_CACHE_DIR", raising=False)

    reset_engine()

    application = create_app()
    application.config.update(TESTING=True)

    yield application

    application.extensions["vocaboplay"].sync.shutdown()
    reset_engine()


@pytest.fixture()
def client(app) -> Iterator:
    with app.test_client() as client:
        yield client


@pytest.fixture()
def app_context(app):
    with app.app_context():
        yield


@pytest.fixture()
def admin_user(app_context):
    return create_user(
        email="admin@example.com",
        password_hash=hash_password("AdminPass123"),
        role="admin",
        display_name="Site Admin",
    )

