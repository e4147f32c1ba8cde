"""Integration tests for POST /send."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from signal_gateway.core.app_factory import create_app
from signal_gateway.core.config import QueueSettings, settings
from signal_gateway.core.errors import BackendRejectedError


@pytest.fixture
def upload_dir(tmp_path: Path, monkeypatch) -> Path:
    target = tmp_path / "uploads"
    monkeypatch.setattr(settings.app, "upload_dir", str(target))
    return target


@pytest.fixture
def client(fake_backend, upload_dir) -> Iterator[TestClient]:
    app = create_app(backend_client=fake_backend, queue_settings=QueueSettings(min_interval_ms=0))
    with TestClient(app) as test_client:
        yield test_client


# ======================== JSON Body Tests ========================


class TestSendJson:
    """POST /send with a JSON body."""

    def test_send_to_individual_and_group(self, client: TestClient, fake_backend) -> None:
        response = client.post(
            "/send",
            json={"recipients": ["+15551234567", "group.abc"], "message": "Hello"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["job_id"].startswith("job-")
        assert data["summary"] == {"total": 2, "successful": 2, "failed": 0}
        assert [r["recipient"] for r in data["results"]] == ["+15551234567", "group.abc"]
        assert [r["is_group"] for r in data["results"]] == [False, True]
        assert [(s["kind"], s["target"]) for s in fake_backend.sent] == [
            ("individual", "+15551234567"),
            ("group", "abc"),
        ]

    def test_recipients_as_comma_separated_string(self, client: TestClient, fake_backend) -> None:
        response = client.post("/send", json={"recipients": "+1555, +1666", "message": "Hi"})

        assert response.status_code == 200
        assert response.json()["summary"]["total"] == 2

    def test_partial_failure_still_returns_200(self, client: TestClient, fake_backend) -> None:
        fake_backend.failures["XYZ"] = BackendRejectedError(
            code="backend_rejected",
            message="Not found: Group not found",
            status_code=404,
        )

        response = client.post(
            "/send",
            json={"recipients": ["+15551234567", "group.XYZ"], "message": "Hello"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["summary"] == {"total": 2, "successful": 1, "failed": 1}
        failed = data["results"][1]
        assert failed["success"] is False
        assert failed["error"].startswith("Not found")
        assert failed["error_code"] == "backend_rejected"

    def test_media_path_is_attached(self, client: TestClient, fake_backend, tmp_path: Path) -> None:
        media = tmp_path / "note.txt"
        media.write_bytes(b"hi")

        response = client.post(
            "/send",
            json={"recipients": ["+1555"], "message": "file", "media": str(media)},
        )

        assert response.status_code == 200
        assert fake_backend.sent[0]["attachment"] == "data:text/plain;base64,aGk="
        assert media.exists()

    def test_missing_media_path_reports_per_recipient_failure(self, client: TestClient, fake_backend) -> None:
        response = client.post(
            "/send",
            json={"recipients": ["+1555"], "message": "file", "media": "/nonexistent/file.png"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["results"][0]["error_code"] == "media_not_found"
        assert fake_backend.sent == []


class TestSendValidation:
    """Invalid send requests are rejected with 400 before queueing."""

    @pytest.mark.parametrize(
        "body,code",
        [
            ({"message": "Hello"}, "invalid_recipients"),
            ({"recipients": [], "message": "Hello"}, "invalid_recipients"),
            ({"recipients": ["+1555", "  "], "message": "Hello"}, "invalid_recipients"),
            ({"recipients": ["+1555"]}, "invalid_message"),
            ({"recipients": ["+1555"], "message": "   "}, "invalid_message"),
            ({"recipients": 5, "message": "Hello"}, "invalid_request"),
        ],
    )
    def test_invalid_body(self, client: TestClient, fake_backend, body: dict, code: str) -> None:
        response = client.post("/send", json=body)

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["code"] == code
        assert isinstance(data["error"], str) and data["error"]
        assert fake_backend.sent == []

    def test_malformed_json(self, client: TestClient) -> None:
        response = client.post(
            "/send",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_json"

    def test_nothing_is_queued_on_validation_error(self, client: TestClient) -> None:
        client.post("/send", json={"recipients": [], "message": "Hello"})

        assert client.get("/status").json()["queue"]["initialized"] is False

    def test_missing_sender_returns_500(self, client: TestClient, fake_backend, monkeypatch) -> None:
        monkeypatch.setattr(settings.backend, "sender_id", None)

        response = client.post("/send", json={"recipients": ["+1555"], "message": "Hello"})

        assert response.status_code == 500
        data = response.json()
        assert data["code"] == "sender_not_configured"
        assert "BACKEND_SENDER_ID" in data["error"]
        assert fake_backend.sent == []


# ======================== Multipart Tests ========================


class TestSendMultipart:
    """POST /send with form data and uploaded media."""

    def test_upload_is_attached_and_removed(self, client: TestClient, fake_backend, upload_dir: Path) -> None:
        response = client.post(
            "/send",
            data={"recipients": '["+1555", "group:team"]', "message": "photo"},
            files={"media": ("pic.png", b"\x89PNG", "image/png")},
        )

        assert response.status_code == 200
        assert response.json()["summary"]["successful"] == 2
        assert [s["attachment"] for s in fake_backend.sent] == [
            "data:image/png;base64,iVBORw==",
            "data:image/png;base64,iVBORw==",
        ]
        assert list(upload_dir.iterdir()) == []

    def test_repeated_recipients_field(self, client: TestClient, fake_backend) -> None:
        response = client.post(
            "/send",
            data={"recipients": ["+15550001111", "+15550002222, group.team"], "message": "hi"},
            files={"media": ("note.txt", b"hi", "text/plain")},
        )

        assert response.status_code == 200
        assert response.json()["summary"] == {"total": 3, "successful": 3, "failed": 0}
        assert [s["target"] for s in fake_backend.sent] == ["+15550001111", "+15550002222", "team"]

    def test_repeated_recipients_field_urlencoded(self, client: TestClient, fake_backend) -> None:
        response = client.post(
            "/send",
            data={"recipients": ["+15550001111", "+15550002222"], "message": "hi"},
        )

        assert response.status_code == 200
        assert response.json()["summary"]["total"] == 2
        assert [s["target"] for s in fake_backend.sent] == ["+15550001111", "+15550002222"]

    def test_form_without_file(self, client: TestClient, fake_backend) -> None:
        response = client.post("/send", data={"recipients": "+1555,+1666", "message": "text only"})

        assert response.status_code == 200
        assert [s["attachment"] for s in fake_backend.sent] == [None, None]

    def test_upload_removed_when_validation_fails(self, client: TestClient, upload_dir: Path) -> None:
        response = client.post(
            "/send",
            data={"recipients": "+1555", "message": " "},
            files={"media": ("pic.png", b"\x89PNG", "image/png")},
        )

        assert response.status_code == 400
        assert list(upload_dir.iterdir()) == []

    def test_upload_too_large(self, client: TestClient, fake_backend, upload_dir: Path, monkeypatch) -> None:
        monkeypatch.setattr(settings.app, "max_upload_size_mb", 1)

        response = client.post(
            "/send",
            data={"recipients": "+1555", "message": "big"},
            files={"media": ("big.bin", b"x" * (1024 * 1024 + 1), "application/octet-stream")},
        )

        assert response.status_code == 413
        data = response.json()
        assert data["error"] == "File too large. Maximum size is 1MB"
        assert fake_backend.sent == []
        assert list(upload_dir.iterdir()) == []
