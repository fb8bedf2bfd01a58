"""Dashboard login, session cookies and route protection."""

import bcrypt
import pytest

from config.settings import settings
from scambait.api.auth import SESSION_COOKIE, issue_session_token, verify_password, verify_session_token


@pytest.fixture
def password(monkeypatch):
    monkeypatch.setattr(settings, "dashboard_password", "hunter2")
    monkeypatch.setattr(settings, "dashboard_password_hash", None)
    monkeypatch.setattr(settings, "session_secret", "test-session-secret")
    return "hunter2"


def test_login_sets_session_cookie(app_client, password):
    response = app_client.post("/api/auth/login", json={"password": password})

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert SESSION_COOKIE in response.cookies
    assert "httponly" in response.headers["set-cookie"].lower()


def test_session_cookie_unlocks_dashboard(app_client, password):
    app_client.post("/api/auth/login", json={"password": password})

    assert app_client.get("/api/calls").status_code == 200
    assert app_client.get("/api/settings").status_code == 200


def test_wrong_password(app_client, password):
    response = app_client.post("/api/auth/login", json={"password": "letmein"})

    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_CREDENTIALS"
    assert app_client.get("/api/calls").status_code == 401


def test_missing_password(app_client, password):
    response = app_client.post("/api/auth/login", json={})

    assert response.status_code == 400
    assert response.json()["details"] == {"password": "Required"}


def test_login_unconfigured(app_client, monkeypatch):
    monkeypatch.setattr(settings, "dashboard_password", None)
    monkeypatch.setattr(settings, "dashboard_password_hash", None)

    response = app_client.post("/api/auth/login", json={"password": "anything"})

    assert response.status_code == 401


def test_logout_clears_cookie(app_client, password):
    app_client.post("/api/auth/login", json={"password": password})

    response = app_client.post("/api/auth/logout")

    assert response.status_code == 200
    assert app_client.get("/api/calls").status_code == 401


def test_tampered_token_rejected(password):
    token = issue_session_token()

    assert verify_session_token(token)
    assert not verify_session_token(token[:-2] + "xx")
    assert not verify_session_token(None)


def test_bcrypt_hash(monkeypatch):
    hashed = bcrypt.hashpw(b"s3cret", bcrypt.gensalt(rounds=4)).decode()
    monkeypatch.setattr(settings, "dashboard_password_hash", hashed)
    monkeypatch.setattr(settings, "dashboard_password", None)

    assert verify_password("s3cret")
    assert not verify_password("S3cret")


def test_public_routes_need_no_login(app_client):
    assert app_client.get("/api/health").status_code in (200, 503)
    assert app_client.get("/api/public/hall-of-fame").status_code == 200
