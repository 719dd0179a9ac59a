"""Tests for registration, login and the current-user endpoint."""
from urllib.parse import parse_qs, urlparse

from gomeal.config import get_settings
from gomeal.main import app
from gomeal.services import line_login_service
from tests.conftest import auth_headers, register_user


class TestRegisterAndLogin:

    def test_register_returns_token_and_user(self, client):
        body = register_user(client, "alice@example.com", name="Alice")
        assert body["token"]
        assert body["user"]["email"] == "alice@example.com"
        assert body["user"]["name"] == "Alice"
        assert body["user"]["isAdmin"] is False
        assert body["user"]["lineLinked"] is False

    def test_register_sets_auth_cookie(self, client):
        resp = client.post("/api/auth/register", json={"email": "c@example.com", "password": "password123"})
        assert resp.status_code == 201
        assert "gohan_auth_token" in resp.cookies

    def test_register_duplicate_email(self, client):
        register_user(client, "dup@example.com")
        resp = client.post("/api/auth/register", json={"email": "DUP@example.com", "password": "password123"})
        assert resp.status_code == 409

    def test_register_short_password_is_invalid_input(self, client):
        resp = client.post("/api/auth/register", json={"email": "x@example.com", "password": "short"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["message"] == "Invalid input"
        assert body["issues"]

    def test_login(self, client):
        register_user(client, "bob@example.com", password="password123")
        resp = client.post("/api/auth/login", json={"email": "bob@example.com", "password": "password123"})
        assert resp.status_code == 200
        assert resp.json()["user"]["email"] == "bob@example.com"

    def test_login_wrong_password(self, client):
        register_user(client, "bob@example.com")
        resp = client.post("/api/auth/login", json={"email": "bob@example.com", "password": "wrong-password"})
        assert resp.status_code == 401


class TestCurrentUser:

    def test_me_with_bearer(self, client):
        body = register_user(client, "me@example.com", name="Me")
        resp = client.get("/api/auth/me", headers=body["headers"])
        assert resp.status_code == 200
        assert resp.json()["id"] == body["user"]["id"]

    def test_me_with_cookie(self, client):
        resp = client.post("/api/auth/register", json={"email": "cookie@example.com", "password": "password123"})
        assert resp.status_code == 201
        resp = client.get("/api/auth/me")
        assert resp.status_code == 200
        assert resp.json()["email"] == "cookie@example.com"

    def test_me_without_token(self, client):
        assert client.get("/api/auth/me").status_code == 401

    def test_me_with_garbage_token(self, client):
        assert client.get("/api/auth/me", headers=auth_headers("not-a-jwt")).status_code == 401

    def test_logout_clears_cookie(self, client):
        client.post("/api/auth/register", json={"email": "out@example.com", "password": "password123"})
        resp = client.post("/api/auth/logout")
        assert resp.status_code == 204
        client.cookies.clear()
        assert client.get("/api/auth/me").status_code == 401


class TestAdminRegistration:

    def test_register_admin_with_code(self, client):
        resp = client.post("/api/auth/register-admin", json={
            "email": "root@example.com", "password": "password123", "inviteCode": "ADMINCODE",
        })
        assert resp.status_code == 201
        assert resp.json()["user"]["isAdmin"] is True

    def test_register_admin_wrong_code(self, client):
        resp = client.post("/api/auth/register-admin", json={
            "email": "root@example.com", "password": "password123", "inviteCode": "nope",
        })
        assert resp.status_code == 403


def _line_settings():
    return get_settings().model_copy(update={
        "LINE_CHANNEL_ID": "1234567890",
        "LINE_CHANNEL_SECRET": "line-secret",
        "LINE_REDIRECT_URI": "http://testserver/api/auth/line/callback",
    })


class TestLineLoginRedirect:

    def test_line_login_unconfigured(self, client):
        assert client.get("/api/auth/line/login", follow_redirects=False).status_code == 500

    def test_line_login_redirects_to_authorize(self, client):
        app.dependency_overrides[get_settings] = _line_settings
        resp = client.get("/api/auth/line/register", follow_redirects=False)
        assert resp.status_code == 307
        assert resp.headers["cache-control"] == "no-store"
        location = resp.headers["location"]
        assert location.startswith(line_login_service.LINE_AUTHORIZE_URL)
        state = parse_qs(urlparse(location).query)["state"][0]
        payload = line_login_service.verify_state(state, _line_settings().line_state_secret)
        assert payload["mode"] == "register"

    def test_callback_with_forged_state(self, client):
        app.dependency_overrides[get_settings] = _line_settings
        resp = client.get("/api/auth/line/callback?code=abc&state=forged.state", follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == "http://localhost:3000/login?error=invalid_state"

    def test_callback_without_code(self, client):
        app.dependency_overrides[get_settings] = _line_settings
        resp = client.get("/api/auth/line/callback", follow_redirects=False)
        assert resp.headers["location"].endswith("error=missing_code")


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}
