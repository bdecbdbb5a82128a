"""
tests/test_api_passwords.py -- Integration tests for /api/passwords.

Covers:
  - CRUD for the caller's own entries
  - cross-user access: GET/PUT/DELETE on another user's entry returns the
    same 404 body as an id that does not exist, and changes nothing
  - an owner supplied in the request body is ignored
  - access-control guard: missing, malformed, tampered and expired tokens,
    and tokens for deleted users, all get 401 before any handler runs
  - a token without the write scope gets 403
"""

from __future__ import annotations

import pytest

from auth.models import Permission
from auth.tokens import TokenCodec
from conftest import TEST_SECRET, bearer, register_and_login

ENTRY = {"title": "GitHub", "username": "octocat", "password": "s3cret", "url": "https://github.com"}


def _create(client, token, **overrides) -> dict:
    resp = client.post("/api/passwords", headers=bearer(token), json={**ENTRY, **overrides})
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture(scope="module")
def other_token(api_client) -> str:
    client, _, _ = api_client
    return register_and_login(client, "mallory@example.com", "mallory-pass")


class TestOwnEntries:
    def test_create_and_get(self, api_client):
        client, token, _ = api_client
        created = _create(client, token)
        assert "owner_id" not in created
        resp = client.get(f"/api/passwords/{created['id']}", headers=bearer(token))
        assert resp.status_code == 200
        assert resp.json()["password"] == "s3cret"

    def test_update(self, api_client):
        client, token, _ = api_client
        created = _create(client, token, title="Old title")
        resp = client.put(
            f"/api/passwords/{created['id']}",
            headers=bearer(token),
            json={**ENTRY, "title": "New title"},
        )
        assert resp.status_code == 200
        assert resp.json()["title"] == "New title"

    def test_delete(self, api_client):
        client, token, _ = api_client
        created = _create(client, token)
        resp = client.delete(f"/api/passwords/{created['id']}", headers=bearer(token))
        assert resp.status_code == 204
        assert client.get(f"/api/passwords/{created['id']}", headers=bearer(token)).status_code == 404

    def test_validation(self, api_client):
        client, token, _ = api_client
        resp = client.post("/api/passwords", headers=bearer(token), json={"title": ""})
        assert resp.status_code == 400
        assert {"title", "username", "password"} <= set(resp.json()["fields"])

    def test_secret_round_trips_verbatim(self, api_client):
        client, token, _ = api_client
        created = _create(client, token, title="  Padded  ", password=" pad-secret ")
        assert created["title"] == "Padded"
        assert created["password"] == " pad-secret "
        fetched = client.get(f"/api/passwords/{created['id']}", headers=bearer(token)).json()
        assert fetched["password"] == " pad-secret "

    def test_row_gone_after_insert(self, api_client, monkeypatch):
        client, token, _ = api_client
        monkeypatch.setattr(client.app.state.records, "get_password", lambda entry_id, owner_id: None)
        resp = client.post("/api/passwords", headers=bearer(token), json=ENTRY)
        assert resp.status_code == 404
        assert resp.json()["code"] == "not_found"


class TestOwnership:
    def test_list_shows_only_own(self, api_client, other_token):
        client, token, _ = api_client
        mine = _create(client, token, title="Mine only")
        listed = client.get("/api/passwords", headers=bearer(other_token)).json()
        assert mine["id"] not in [e["id"] for e in listed]

    @pytest.mark.parametrize("method", ["get", "put", "delete"])
    def test_foreign_entry_looks_missing(self, api_client, other_token, method):
        client, token, _ = api_client
        entry_id = _create(client, token)["id"]
        kwargs = {"json": ENTRY} if method == "put" else {}

        foreign = getattr(client, method)(f"/api/passwords/{entry_id}", headers=bearer(other_token), **kwargs)
        missing = getattr(client, method)("/api/passwords/999999", headers=bearer(other_token), **kwargs)

        assert foreign.status_code == missing.status_code == 404
        assert foreign.content == missing.content

        # The owner's copy is untouched.
        still_there = client.get(f"/api/passwords/{entry_id}", headers=bearer(token))
        assert still_there.status_code == 200
        assert still_there.json()["title"] == ENTRY["title"]

    def test_body_owner_ignored(self, api_client, other_token):
        client, token, owner_id = api_client
        created = client.post(
            "/api/passwords",
            headers=bearer(other_token),
            json={**ENTRY, "owner_id": owner_id, "title": "Smuggled"},
        ).json()
        own_titles = [e["title"] for e in client.get("/api/passwords", headers=bearer(token)).json()]
        assert "Smuggled" not in own_titles
        assert client.get(f"/api/passwords/{created['id']}", headers=bearer(other_token)).status_code == 200


class TestAccessGuard:
    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"Authorization": ""},
            {"Authorization": "Bearer"},
            {"Authorization": "Basic dXNlcjpwYXNz"},
            {"Authorization": "Bearer a b"},
            {"Authorization": "Bearer not-a-token"},
        ],
    )
    def test_missing_or_malformed(self, api_client, headers):
        client, _, _ = api_client
        resp = client.get("/api/passwords", headers=headers)
        assert resp.status_code == 401
        assert resp.json() == {"code": "unauthorized", "message": "Authentication required."}
        assert resp.headers["www-authenticate"] == "Bearer"

    @pytest.mark.parametrize("method", ["post", "put"])
    def test_no_token_with_bad_body_is_401(self, api_client, method):
        client, _, _ = api_client
        path = "/api/passwords" if method == "post" else "/api/passwords/1"
        resp = getattr(client, method)(path, content=b"{not json", headers={"Content-Type": "application/json"})
        assert resp.status_code == 401
        assert resp.json()["code"] == "unauthorized"
        assert resp.headers["www-authenticate"] == "Bearer"

    def test_expired_token_with_invalid_body_is_401(self, api_client):
        client, _, owner_id = api_client
        expired = TokenCodec(TEST_SECRET).issue(str(owner_id), ttl=0, permissions=Permission)
        resp = client.post("/api/passwords", headers=bearer(expired), json={"title": ""})
        assert resp.status_code == 401

    def test_valid_token_with_bad_body_is_400(self, api_client):
        client, token, _ = api_client
        resp = client.post(
            "/api/passwords",
            content=b"{not json",
            headers={**bearer(token), "Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert list(resp.json()["fields"]) == ["body"]

    def test_tampered_token(self, api_client):
        client, token, _ = api_client
        replacement = "A" if token[-1] not in "ABCD" else "Q"
        resp = client.get("/api/passwords", headers=bearer(token[:-1] + replacement))
        assert resp.status_code == 401

    def test_expired_token(self, api_client):
        client, _, owner_id = api_client
        expired = TokenCodec(TEST_SECRET).issue(str(owner_id), ttl=0, permissions=Permission)
        resp = client.get("/api/passwords", headers=bearer(expired))
        assert resp.status_code == 401
        assert resp.json()["code"] == "unauthorized"

    def test_token_for_deleted_user(self, api_client):
        client, _, _ = api_client
        token = register_and_login(client, "leaver@example.com", "leaver-pass")
        user_id = client.get("/api/auth/me", headers=bearer(token)).json()["id"]
        client.app.state.user_store.delete_user(user_id)
        resp = client.get("/api/passwords", headers=bearer(token))
        assert resp.status_code == 401

    def test_read_only_scope_cannot_write(self, api_client):
        client, _, owner_id = api_client
        read_only = TokenCodec(TEST_SECRET).issue(str(owner_id), permissions={Permission.passwords_read})
        assert client.get("/api/passwords", headers=bearer(read_only)).status_code == 200
        resp = client.post("/api/passwords", headers=bearer(read_only), json=ENTRY)
        assert resp.status_code == 403
        assert resp.json()["code"] == "forbidden"
