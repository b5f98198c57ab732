"""Test fixtures"""
from __future__ import annotations

from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from oorbforms.app import create_app
from oorbforms.config import Settings

SAMPLE_FIELDS: list[dict[str, Any]] = [
    {"id": "name", "type": "text", "label": "Name", "required": True},
    {"id": "email", "type": "email", "label": "Email"},
    {"id": "age", "type": "number", "label": "Age", "validation": {"min": 0, "max": 120}},
    {"id": "color", "type": "radio", "label": "Favourite colour", "options": ["red", "blue"]},
    {"id": "tags", "type": "checkbox", "label": "Tags", "options": ["a", "b", "c"]},
]


@pytest.fixture(params=["json", "sqlite"])
def client(tmp_path, request) -> TestClient:
    """A client against a fresh store, once per storage backend."""
    settings = Settings(
        storage_backend=request.param,
        json_path=tmp_path / "store.json",
        sqlite_path=tmp_path / "store.db",
        secret_key="test-secret",
    )
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def register(client: TestClient) -> Callable[..., dict[str, str]]:
    def _register(email: str, password: str = "secret123") -> dict[str, str]:
        resp = client.post(
            "/api/auth/register",
            json={"email": email, "password": password, "name": "Owner"},
        )
        assert resp.status_code == 201, resp.text
        return {"Authorization": f"Bearer {resp.json()['token']}"}

    return _register


@pytest.fixture
def auth_headers(register) -> dict[str, str]:
    return register("owner@example.com")


@pytest.fixture
def other_headers(register) -> dict[str, str]:
    return register("other@example.com")


@pytest.fixture
def published_form(client: TestClient, auth_headers) -> Callable[..., dict[str, Any]]:
    """Factory creating a published form with SAMPLE_FIELDS."""

    def _create(title: str = "Survey") -> dict[str, Any]:
        resp = client.post("/api/forms", json={"title": title}, headers=auth_headers)
        assert resp.status_code == 201, resp.text
        form_id = resp.json()["id"]
        resp = client.put(
            f"/api/forms/{form_id}", json={"fields": SAMPLE_FIELDS}, headers=auth_headers
        )
        assert resp.status_code == 200, resp.text
        resp = client.post(f"/api/forms/{form_id}/publish", headers=auth_headers)
        assert resp.status_code == 200, resp.text
        return resp.json()

    return _create
