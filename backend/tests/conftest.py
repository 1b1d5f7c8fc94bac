"""
Pytest fixtures for Lako backend tests.

Provides an in-memory database, a per-test clean slate, two independent
accounts (alice, bob) with bearer headers, and access to the mail outbox.
"""

import pytest

from lako import create_app
from lako.extensions import current_mailer, current_settings, db
from lako.services import auth_service
from lako.services.credentials import issue_token


TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    "JWT_SECRET_KEY": "test-jwt-secret",
    "BCRYPT_ROUNDS": 4,
    "MAIL_TRANSPORT": "memory",
    "MAIL_WORKER_ENABLED": False,
    "MAIL_RETRY_BACKOFF": 0,
    "CONFIRM_URL_BASE": "https://lako.test/confirm/",
    "LOG_LEVEL": "WARNING",
}

PASSWORD = "correct-horse-battery"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Empty every table (and the mail queue) before each test."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    mailer = current_mailer()
    mailer.process_pending()
    mailer.transport.outbox.clear()

    yield db.session

    db.session.rollback()


@pytest.fixture(scope='function')
def settings(app):
    return current_settings()


@pytest.fixture(scope='function')
def outbox(app, db_session):
    """Delivered mail; call flush() to drain the queue first."""
    mailer = current_mailer()

    class Outbox(list):
        def flush(self):
            mailer.process_pending()
            self[:] = list(mailer.transport.outbox)
            return self

    return Outbox()


def make_user(username: str, email: str, password: str = PASSWORD):
    return auth_service.register_user(
        username=username,
        email=email,
        password=password,
        settings=current_settings(),
        mailer=current_mailer(),
    )


def auth_headers(user_id: int) -> dict:
    """Authorization header for user_id, signed with the test secret."""
    settings = current_settings()
    token = issue_token(user_id, settings.jwt_expires_seconds, settings.jwt_secret_key)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def alice(db_session):
    return make_user("alice", "alice@example.com")


@pytest.fixture(scope='function')
def bob(db_session):
    return make_user("bobby", "bob@example.com")


@pytest.fixture(scope='function')
def alice_headers(alice):
    return auth_headers(alice.id)


@pytest.fixture(scope='function')
def bob_headers(bob):
    return auth_headers(bob.id)


@pytest.fixture(scope='function')
def alice_client_id(client, alice_headers):
    resp = client.post(
        "/api/v1/clients",
        json={"name": "Acme Ltd", "email": "billing@acme.test"},
        headers=alice_headers,
    )
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["id"]


@pytest.fixture(scope='function')
def alice_company_id(client, alice_headers):
    resp = client.post(
        "/api/v1/companies",
        json={"name": "Alice Consulting"},
        headers=alice_headers,
    )
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["id"]
