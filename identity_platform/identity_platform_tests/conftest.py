"""
Shared fixtures: explicit settings, a temporary SQLite database and an
in-memory email sender in place of SMTP.
"""
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from identity_platform.identity_platform.identity_service.config import Settings
from identity_platform.identity_platform.identity_service.db import (
    Base,
    build_session_factory,
    create_db_engine,
    init_db,
)
from identity_platform.identity_platform.identity_service.email_service import EmailReceipt
from identity_platform.identity_platform.identity_service.main import create_app
from identity_platform.identity_platform.identity_service.passwords import PasswordHasher
from identity_platform.identity_platform.identity_service.store import CredentialStore
from identity_platform.identity_platform.identity_service.tokens import TokenIssuer

ACCESS_SECRET = "test-access-secret-0123456789abcdef"  # pragma: allowlist secret
REFRESH_SECRET = "test-refresh-secret-0123456789abcdef"  # pragma: allowlist secret


class RecordingEmailSender:
    """Collects messages instead of talking to an SMTP server."""

    def __init__(self):
        self.messages = []

    def send(self, message):
        self.messages.append(message)
        return EmailReceipt(
            message_id=f"<test-{len(self.messages)}@identity.local>",
            accepted=[message.to],
            rejected=[],
            sent_at=datetime.utcnow(),
        )


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        ACCESS_TOKEN_SECRET=ACCESS_SECRET,
        REFRESH_TOKEN_SECRET=REFRESH_SECRET,
        ACCESS_TOKEN_DURATION_MINUTES=15,
        REFRESH_TOKEN_DURATION_HOURS=24,
        RESET_PASSWORD_TOKEN_DURATION_MINUTES=15,
        PASSWORD_HASH_ROUNDS=1000,
        DATABASE_URL=f"sqlite:///{tmp_path / 'identity_test.db'}",
        EMAIL_FROM="no-reply@identity.test",
        RESET_PASSWORD_URL="https://app.identity.test/reset-password",
    )


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings.DATABASE_URL)
    init_db(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(db_session, settings):
    return CredentialStore(db_session, settings, hasher=PasswordHasher(settings.PASSWORD_HASH_ROUNDS))


@pytest.fixture
def issuer(settings):
    return TokenIssuer(settings)


@pytest.fixture
def test_user(store):
    return store.create("Ana", "Lee", "ana@example.com", "pw1234")


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def app(settings, engine, email_sender):
    return create_app(settings, email_sender=email_sender)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
