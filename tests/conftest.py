"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment defaults are set before any import that builds settings.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

os.environ.setdefault("BACKEND_BASE_URL", "http://backend.test")
os.environ.setdefault("BACKEND_SENDER_ID", "+15550000000")
os.environ.setdefault("QUEUE_MIN_INTERVAL_MS", "0")
os.environ.setdefault("LOG_OUTPUT", "stdout")
os.environ.setdefault("LOG_LEVEL", "warning")
os.environ.setdefault("APP_UPLOAD_DIR", os.path.join(os.getcwd(), ".pytest-uploads"))

from typing import Any  # noqa: E402

import pytest  # noqa: E402

from signal_gateway.adapters.backend.base import AbstractBackendClient  # noqa: E402


class FakeBackendClient(AbstractBackendClient):
    """In-memory backend double recording every call.

    ``failures`` maps a recipient (individual address or group id) to the
    exception raised when sending to it.
    """

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.failures: dict[str, Exception] = {}
        self.groups: list[dict[str, Any]] = []
        self.contacts: list[dict[str, Any]] = []
        self.received: list[dict[str, Any]] = []
        self.created_groups: list[dict[str, Any]] = []
        self.health: dict[str, Any] = {"healthy": True, "version": {"versions": ["v1", "v2"]}}
        self.closed = False

    async def _send(self, kind: str, target: str, text: str, attachment: str | None) -> dict[str, Any]:
        self.sent.append({"kind": kind, "target": target, "text": text, "attachment": attachment})
        if target in self.failures:
            raise self.failures[target]
        return {"timestamp": "1700000000000"}

    async def send_individual(self, recipient: str, text: str, attachment: str | None = None) -> dict[str, Any]:
        return await self._send("individual", recipient, text, attachment)

    async def send_group(self, group_id: str, text: str, attachment: str | None = None) -> dict[str, Any]:
        return await self._send("group", group_id, text, attachment)

    async def list_groups(self) -> list[dict[str, Any]]:
        return self.groups

    async def list_contacts(self) -> list[dict[str, Any]]:
        return self.contacts

    async def list_received(self) -> list[dict[str, Any]]:
        return self.received

    async def create_group(self, name: str, members: list[str]) -> dict[str, Any]:
        self.created_groups.append({"name": name, "members": members})
        return {"id": "group-new-1", "name": name}

    def device_link_url(self, device_name: str = "signal-api") -> str:
        return f"http://backend.test/v1/qrcodelink?device_name={device_name}"

    async def health_check(self) -> dict[str, Any]:
        return self.health

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_backend() -> FakeBackendClient:
    return FakeBackendClient()
