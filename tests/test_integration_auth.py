"""Integration tests for the account and token routes.

Tests the complete flow including:
- User signup and update
- Login with password
- Token refresh and revocation
"""

import pytest
from fastapi.testclient import TestClient

from chirpy import app as app_module


@pytest.fixture
def client():
    """Create a test client for the API."""
    return TestClient(app_module.app)


@pytest.fixture
def test_user_email():
    return "walt@breakingbad.com"


@pytest.fixture
def test_user_password():
    return "bad-password"


@pytest.fixture
def created_user(client, test_user_email, test_user_password):
    response = client.post(
        "/api/users", json={"email": test_user_email, "password": test_user_password}
    )
    assert response.status_code == 201
    return response.json()["data"]


@pytest.fixture
def logged_in(client, created_user, test_user_email, test_user_password):
    response = client.post(
        "/api/login", json={"email": test_user_email, "password": test_user_password}
    )
    assert response.status_code == 200
    return response.json()["data"]


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


class TestSignupFlow:
    def test_signup_returns_user(self, created_user, test_user_email):
        assert created_user["email"] == test_user_email
        assert created_user["is_chirpy_red"] is False
        assert set(created_user) == {"id", "email", "created_at", "updated_at", "is_chirpy_red"}

    def test_signup_never_exposes_password(self, client):
        response = client.post(
            "/api/users", json={"email": "jesse@example.com", "password": "yo"}
        )
        assert "password" not in response.text
        assert "argon2" not in response.text

    def test_signup_rejects_duplicate_email(self, client, created_user, test_user_email):
        response = client.post(
            "/api/users", json={"email": test_user_email, "password": "other"}
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "conflict"

    def test_signup_rejects_invalid_email(self, client):
        response = client.post("/api/users", json={"email": "walt", "password": "pw"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"

    def test_signup_rejects_missing_fields(self, client):
        response = client.post("/api/users", json={"email": "walt@breakingbad.com"})
        assert response.status_code == 400


class TestLoginFlow:
    def test_login_returns_user_and_tokens(self, logged_in, created_user):
        assert logged_in["id"] == created_user["id"]
        assert logged_in["token"].count(".") == 2
        assert len(logged_in["refresh_token"]) == 64

    def test_login_wrong_password(self, client, created_user, test_user_email):
        response = client.post(
            "/api/login", json={"email": test_user_email, "password": "good-password"}
        )
        assert response.status_code == 401
        body = response.json()
        assert body["status"] == "error"
        assert body["error"]["message"] == "invalid credentials"

    def test_login_unknown_email(self, client):
        response = client.post(
            "/api/login", json={"email": "nobody@example.com", "password": "bad-password"}
        )
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "invalid credentials"

    def test_login_rejects_negative_lifetime(self, client, created_user, test_user_email):
        response = client.post(
            "/api/login",
            json={
                "email": test_user_email,
                "password": "bad-password",
                "expires_in_seconds": -5,
            },
        )
        assert response.status_code == 400

    def test_login_rejects_huge_lifetime(self, client, created_user, test_user_email):
        response = client.post(
            "/api/login",
            json={
                "email": test_user_email,
                "password": "bad-password",
                "expires_in_seconds": 10**12,
            },
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"


class TestRefreshFlow:
    def test_refresh_returns_new_access_token(self, client, logged_in):
        response = client.post("/api/refresh", headers=_bearer(logged_in["refresh_token"]))
        assert response.status_code == 200
        token = response.json()["data"]["token"]
        chirp = client.post("/api/chirps", json={"body": "hi"}, headers=_bearer(token))
        assert chirp.status_code == 201

    def test_refresh_without_header(self, client):
        assert client.post("/api/refresh").status_code == 401

    def test_refresh_rejects_access_token(self, client, logged_in):
        response = client.post("/api/refresh", headers=_bearer(logged_in["token"]))
        assert response.status_code == 401

    def test_revoke_then_refresh_fails(self, client, logged_in):
        headers = _bearer(logged_in["refresh_token"])
        revoke = client.post("/api/revoke", headers=headers)
        assert revoke.status_code == 204
        assert revoke.content == b""
        assert client.post("/api/refresh", headers=headers).status_code == 401

    def test_revoke_without_header(self, client):
        assert client.post("/api/revoke").status_code == 400

    def test_revoke_unknown_token(self, client):
        response = client.post("/api/revoke", headers=_bearer("f" * 64))
        assert response.status_code == 400


class TestUpdateUser:
    def test_update_requires_auth(self, client):
        response = client.put("/api/users", json={"email": "x@example.com"})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "unauthorized"

    def test_update_with_garbage_token(self, client):
        response = client.put(
            "/api/users", json={"email": "x@example.com"}, headers=_bearer("not.a.jwt")
        )
        assert response.status_code == 401

    def test_update_email_and_password(self, client, logged_in):
        response = client.put(
            "/api/users",
            json={"email": "heisenberg@example.com", "password": "new-password"},
            headers=_bearer(logged_in["token"]),
        )
        assert response.status_code == 200
        assert response.json()["data"]["email"] == "heisenberg@example.com"
        login = client.post(
            "/api/login",
            json={"email": "heisenberg@example.com", "password": "new-password"},
        )
        assert login.status_code == 200
