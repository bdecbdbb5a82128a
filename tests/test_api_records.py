"""
tests/test_api_records.py -- Integration tests for /api/contacts and /api/tasks.

Covers:
  - CRUD for contacts and tasks, shared across authenticated users
  - 401 without a token, 404 for unknown ids, 400 on invalid bodies
  - store failures and unexpected exceptions -> 500 with a generic body
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from conftest import bearer, register_and_login


class TestContacts:
    def test_crud(self, api_client):
        client, token, _ = api_client
        created = client.post(
            "/api/contacts",
            headers=bearer(token),
            json={"name": "Ada Lovelace", "email": "ada@example.com"},
        )
        assert created.status_code == 201
        contact_id = created.json()["id"]

        resp = client.put(
            f"/api/contacts/{contact_id}",
            headers=bearer(token),
            json={"name": "Ada Lovelace", "phone": "555-0100"},
        )
        assert resp.status_code == 200
        assert resp.json()["phone"] == "555-0100"

        assert client.delete(f"/api/contacts/{contact_id}", headers=bearer(token)).status_code == 204
        assert client.get(f"/api/contacts/{contact_id}", headers=bearer(token)).status_code == 404

    def test_visible_to_other_users(self, api_client):
        client, token, _ = api_client
        contact_id = client.post("/api/contacts", headers=bearer(token), json={"name": "Shared"}).json()["id"]
        other = register_and_login(client, "colleague@example.com", "colleague-pass")
        resp = client.get(f"/api/contacts/{contact_id}", headers=bearer(other))
        assert resp.status_code == 200
        assert resp.json()["name"] == "Shared"

    def test_requires_token(self, api_client):
        client, _, _ = api_client
        assert client.get("/api/contacts").status_code == 401
        assert client.post("/api/contacts", json={"name": "x"}).status_code == 401

    def test_name_required(self, api_client):
        client, token, _ = api_client
        resp = client.post("/api/contacts", headers=bearer(token), json={"email": "a@example.com"})
        assert resp.status_code == 400
        assert "name" in resp.json()["fields"]


class TestTasks:
    def test_crud(self, api_client):
        client, token, _ = api_client
        created = client.post(
            "/api/tasks",
            headers=bearer(token),
            json={"title": "File taxes", "priority": "high", "due_date": "2026-04-15"},
        )
        assert created.status_code == 201
        task = created.json()
        assert task["completed"] is False
        assert task["priority"] == "high"

        resp = client.put(
            f"/api/tasks/{task['id']}",
            headers=bearer(token),
            json={"title": "File taxes", "completed": True},
        )
        assert resp.status_code == 200
        assert resp.json()["completed"] is True

        listed = client.get("/api/tasks", headers=bearer(token)).json()
        assert task["id"] in [t["id"] for t in listed]

        assert client.delete(f"/api/tasks/{task['id']}", headers=bearer(token)).status_code == 204
        assert client.delete(f"/api/tasks/{task['id']}", headers=bearer(token)).status_code == 404

    def test_invalid_priority(self, api_client):
        client, token, _ = api_client
        resp = client.post("/api/tasks", headers=bearer(token), json={"title": "x", "priority": "urgent"})
        assert resp.status_code == 400
        assert "priority" in resp.json()["fields"]

    def test_non_integer_id(self, api_client):
        client, token, _ = api_client
        resp = client.get("/api/tasks/abc", headers=bearer(token))
        assert resp.status_code == 400
        assert "task_id" in resp.json()["fields"]


class TestServerErrors:
    def test_store_failure_is_generic_500(self, api_client, monkeypatch):
        client, token, _ = api_client

        def broken(*args, **kwargs):
            raise OperationalError("SELECT * FROM contacts", {}, Exception("disk I/O error at /var/db"))

        monkeypatch.setattr(client.app.state.records, "list_contacts", broken)
        resp = client.get("/api/contacts", headers=bearer(token))
        assert resp.status_code == 500
        assert resp.json() == {"code": "internal_error", "message": "An unexpected error occurred."}
        assert "disk" not in resp.text
        assert "SELECT" not in resp.text

    def test_unexpected_exception_is_generic_500(self, api_client, monkeypatch):
        client, token, _ = api_client

        def broken(*args, **kwargs):
            raise RuntimeError("secret internal detail")

        monkeypatch.setattr(client.app.state.records, "list_tasks", broken)
        # Without raise_server_exceptions=False the TestClient re-raises
        # after the handler has produced its response.
        quiet = TestClient(client.app, raise_server_exceptions=False)
        resp = quiet.get("/api/tasks", headers=bearer(token))
        assert resp.status_code == 500
        assert resp.json()["code"] == "internal_error"
        assert "secret internal detail" not in resp.text


@pytest.mark.parametrize("path", ["/api/contacts", "/api/tasks"])
def test_no_token_with_bad_body_is_401(api_client, path):
    client, _, _ = api_client
    resp = client.post(path, content=b"{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "unauthorized"


@pytest.mark.parametrize(
    "path, getter, body",
    [
        ("/api/contacts", "get_contact", {"name": "Gone"}),
        ("/api/tasks", "get_task", {"title": "Gone"}),
    ],
)
def test_row_gone_after_insert(api_client, monkeypatch, path, getter, body):
    client, token, _ = api_client
    monkeypatch.setattr(client.app.state.records, getter, lambda record_id: None)
    resp = client.post(path, headers=bearer(token), json=body)
    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


@pytest.mark.parametrize("path", ["/api/contacts", "/api/tasks", "/api/passwords"])
def test_error_responses_not_cached(api_client, path):
    client, _, _ = api_client
    resp = client.get(path)
    assert resp.headers["cache-control"] == "no-store"
