from __future__ import annotations

from fastapi.testclient import TestClient

from oorbforms.auth import JWTAuthProvider
from oorbforms.config import Settings


def test_register_returns_token_and_user(client: TestClient):
    resp = client.post(
        "/api/auth/register",
        json={"email": "Alice@Example.com", "password": "secret123", "name": "Alice"},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["token"]
    assert body["user"]["email"] == "alice@example.com"
    assert body["user"]["name"] == "Alice"
    assert "password_hash" not in body["user"]


def test_register_rejects_duplicate_email(client: TestClient, auth_headers):
    resp = client.post(
        "/api/auth/register",
        json={"email": "OWNER@example.com", "password": "secret123"},
    )
    assert resp.status_code == 409


def test_register_validates_input(client: TestClient):
    resp = client.post("/api/auth/register", json={"email": "nope", "password": "secret123"})
    assert resp.status_code == 400
    resp = client.post("/api/auth/register", json={"email": "a@b.co", "password": "123"})
    assert resp.status_code == 400


def test_login_and_me(client: TestClient, auth_headers):
    resp = client.post(
        "/api/auth/login", json={"email": "owner@example.com", "password": "secret123"}
    )
    assert resp.status_code == 200
    token = resp.json()["token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "owner@example.com"


def test_login_with_wrong_password(client: TestClient, auth_headers):
    resp = client.post(
        "/api/auth/login", json={"email": "owner@example.com", "password": "wrong-pass"}
    )
    assert resp.status_code == 401


def test_protected_route_requires_token(client: TestClient):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/forms").status_code == 401
    resp = client.get("/api/forms", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"


def test_expired_token_is_rejected(client: TestClient, auth_headers):
    user_id = client.get("/api/auth/me", headers=auth_headers).json()["id"]
    expired = JWTAuthProvider(
        Settings(secret_key="test-secret", access_token_expire_minutes=-5)
    ).issue_token(user_id)
    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token has expired"


def test_token_for_unknown_user_is_rejected(client: TestClient):
    token = JWTAuthProvider(Settings(secret_key="test-secret")).issue_token("missing")
    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_register_with_null_name_uses_email_prefix(client: TestClient):
    resp = client.post(
        "/api/auth/register",
        json={"email": "bob@example.com", "password": "secret123", "name": None},
    )
    assert resp.status_code == 201
    assert resp.json()["user"]["name"] == "bob"
