"""Shared fixtures: an in-memory database, a signed-webhook helper and an API client."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from twilio.request_validator import RequestValidator

from config.settings import settings
from scambait.api.auth import require_dashboard_session
from scambait.api.main import app
from scambait.database.db import get_db
from scambait.database.models import Base
from scambait.database.repository import CallRepository
from scambait.personas.selection import InMemorySettingsStore, get_settings_store

TWILIO_TOKEN = "test-auth-token"


def sign(path, params):
    """Signature Twilio would send for a form POST to ``path`` on the test server."""
    return RequestValidator(TWILIO_TOKEN).compute_signature(f"http://testserver{path}", params)


def post_webhook(client, path, params, signature=None):
    headers = {"X-Twilio-Signature": signature if signature is not None else sign(path, params)}
    return client.post(path, data=params, headers=headers)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_call(db):
    """Create a call row, then apply any extra column values."""
    repo = CallRepository(db)
    counter = {"n": 0}

    def _make(twilio_sid=None, from_number="+15551234567", to_number="+15550000000", persona="earl", **fields):
        counter["n"] += 1
        call = repo.create(twilio_sid or f"CA{counter['n']:032d}", from_number, to_number, persona=persona)
        if fields:
            call = repo.update_fields(call, **fields)
        return call

    return _make


@pytest.fixture
def twilio_settings(monkeypatch):
    monkeypatch.setattr(settings, "twilio_account_sid", "ACtest")
    monkeypatch.setattr(settings, "twilio_auth_token", TWILIO_TOKEN)
    monkeypatch.setattr(settings, "public_base_url", None)
    monkeypatch.setattr(settings, "environment", "test")


@pytest.fixture
def settings_store():
    return InMemorySettingsStore()


@pytest.fixture
def app_client(session_factory, settings_store, twilio_settings):
    """Client with the database and settings store swapped out but auth still enforced."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings_store] = lambda: settings_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def client(app_client):
    """Client that is already logged in to the dashboard."""
    app.dependency_overrides[require_dashboard_session] = lambda: None
    return app_client
