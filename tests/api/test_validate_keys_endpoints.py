"""
Tests for the validate-keys endpoint and the supplementary key routes.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.api_keys.repository import APIKeyRepository
from app.api_keys.schemas import KeyStatus


@pytest.fixture
def client(api_app) -> TestClient:
    return TestClient(api_app)


def _row_count(db_manager) -> int:
    with db_manager.session_scope() as session:
        return APIKeyRepository(session).count()


class TestValidateKeysEndpoint:
    """Test cases for POST /api/v1/validate-keys."""

    def test_validate_returns_chunk_results(self, client, fake_gemini, make_key):
        valid_key, bad_key = make_key(1), make_key(2)
        fake_gemini.forbidden(bad_key)

        response = client.post(
            "/api/v1/validate-keys",
            json={"keys": [valid_key, bad_key], "action": "validateAndSave", "count": 2},
        )

        assert response.status_code == 200
        body = response.json()
        assert [item["keyString"] for item in body] == [valid_key, bad_key]
        assert body[0]["status"] == "valid"
        assert body[0]["errorMessage"] is None
        assert body[1]["status"] == "invalid"
        assert body[1]["errorMessage"]

    def test_missing_action_validates(self, client, make_key):
        response = client.post("/api/v1/validate-keys", json={"keys": [make_key(3)]})

        assert response.status_code == 200
        assert response.json()[0]["status"] == "valid"

    def test_revalidation_keeps_row_count(self, client, db_manager, fake_gemini, make_key):
        key = make_key(4)
        fake_gemini.forbidden(key)
        client.post("/api/v1/validate-keys", json={"keys": [key]})
        assert _row_count(db_manager) == 1

        fake_gemini.valid(key)
        response = client.post("/api/v1/validate-keys", json={"keys": [key]})

        assert response.json()[0]["status"] == "valid"
        assert _row_count(db_manager) == 1

    def test_fetch_all_returns_stored_records(self, client, make_key):
        client.post("/api/v1/validate-keys", json={"keys": [make_key(1), make_key(2)]})

        response = client.post("/api/v1/validate-keys", json={"keys": [], "action": "fetchAll"})

        assert response.status_code == 200
        records = response.json()
        assert {r["keyString"] for r in records} == {make_key(1), make_key(2)}
        for record in records:
            assert {"id", "status", "errorMessage", "createdAt", "lastValidatedAt"} <= set(record)

    def test_clear_invalid_reports_count(self, client, fake_gemini, make_key):
        keys = [make_key(i) for i in range(4)]
        fake_gemini.forbidden(keys[0])
        fake_gemini.unreachable(keys[1])
        client.post("/api/v1/validate-keys", json={"keys": keys})

        response = client.post("/api/v1/validate-keys", json={"keys": [], "action": "clearInvalid"})

        assert response.status_code == 200
        assert response.json()["count"] == 2
        remaining = client.post("/api/v1/validate-keys", json={"action": "fetchAll"}).json()
        assert sorted(r["keyString"] for r in remaining) == sorted(keys[2:])

    @pytest.mark.parametrize(
        "payload",
        [
            {"keys": []},
            {"keys": "AIzaSy"},
            {"action": "validateAndSave"},
            {"keys": ["k"], "action": "explode"},
            ["AIzaSy"],
        ],
    )
    def test_malformed_bodies_are_rejected(self, client, payload):
        response = client.post("/api/v1/validate-keys", json=payload)

        assert response.status_code == 400
        assert response.json()["error"]

    def test_invalid_json_is_rejected(self, client):
        response = client.post(
            "/api/v1/validate-keys",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert "valid JSON" in response.json()["error"]

    def test_unhandled_variant_is_rejected(self, client, monkeypatch):
        from types import SimpleNamespace

        from app.api.v1.endpoints import validate_keys_endpoints

        monkeypatch.setattr(
            validate_keys_endpoints,
            "parse_key_action_request",
            lambda payload: SimpleNamespace(action="archive"),
        )

        response = client.post("/api/v1/validate-keys", json={"action": "archive"})

        assert response.status_code == 400
        assert response.json() == {"error": "Unsupported action: archive"}

    def test_empty_keys_message(self, client):
        response = client.post("/api/v1/validate-keys", json={"keys": []})

        assert response.json()["error"] == "Provide a non-empty array of API keys to validate."


class TestKeyRoutes:
    """Test cases for the extract/list/delete/export routes."""

    def test_extract(self, client, make_key):
        text = f"{make_key(1)};\n{make_key(1)}, junk : {make_key(2)}"

        response = client.post("/api/v1/keys/extract", json={"text": text})

        assert response.status_code == 200
        body = response.json()
        assert body["keys"] == [make_key(1), make_key(2)]
        assert body["count"] == 2

    def test_extract_nothing_found(self, client):
        response = client.post("/api/v1/keys/extract", json={"text": "no keys here"})

        assert response.status_code == 200
        assert response.json()["count"] == 0

    def test_list_keys_uses_camel_case(self, client, make_key):
        client.post("/api/v1/validate-keys", json={"keys": [make_key(1)]})

        response = client.get("/api/v1/keys")

        assert response.status_code == 200
        assert response.json()[0]["keyString"] == make_key(1)

    def test_delete_invalid(self, client, fake_gemini, make_key):
        fake_gemini.forbidden(make_key(2))
        client.post("/api/v1/validate-keys", json={"keys": [make_key(1), make_key(2)]})

        response = client.delete("/api/v1/keys/invalid")

        assert response.status_code == 200
        assert response.json() == {"message": "Deleted 1 invalid key(s).", "count": 1}

    def test_export_valid_keys(self, client, fake_gemini, make_key):
        fake_gemini.forbidden(make_key(2))
        client.post("/api/v1/validate-keys", json={"keys": [make_key(1), make_key(2), make_key(3)]})

        response = client.get("/api/v1/keys/export")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "gemini_valid_keys_" in response.headers["content-disposition"]
        assert sorted(response.text.split("\n")) == [make_key(1), make_key(3)]

    def test_export_without_valid_keys_is_404(self, client):
        response = client.get("/api/v1/keys/export")

        assert response.status_code == 404


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_db_error_is_reported_per_key(client, make_key, monkeypatch):
    def _broken_upsert(self, key_string, status, error_message):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(APIKeyRepository, "upsert", _broken_upsert)

    response = client.post("/api/v1/validate-keys", json={"keys": [make_key(1)]})

    assert response.status_code == 200
    item = response.json()[0]
    assert item["status"] == KeyStatus.DB_ERROR.value
    assert item["attemptedStatus"] == "valid"
    assert "database is locked" in item["errorMessage"]
