from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from signal_gateway.core.app_factory import create_app
from signal_gateway.core.config import settings


@pytest.fixture
def client(fake_backend, tmp_path, monkeypatch):
    monkeypatch.setattr(settings.app, "upload_dir", str(tmp_path / "uploads"))
    with TestClient(create_app(backend_client=fake_backend)) as test_client:
        yield test_client


def test_preserves_incoming_request_id_header(client: TestClient):
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing(client: TestClient):
    resp = client.get("/health")

    assert resp.status_code == 200
    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_error_body_carries_request_id(client: TestClient):
    resp = client.post(
        "/send",
        json={"recipients": [], "message": "hi"},
        headers={"X-Request-ID": "req-err-1"},
    )

    assert resp.status_code == 400
    assert resp.json()["request_id"] == "req-err-1"
    assert resp.headers.get("X-Request-ID") == "req-err-1"
