"""HTTP adapter for a signal-cli REST API backend."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from signal_gateway.adapters.backend.base import AbstractBackendClient
from signal_gateway.core.errors import (
    BackendRejectedError,
    BackendUnreachableError,
    ConfigurationAppError,
)

logger = logging.getLogger(__name__)

GROUP_PREFIX = "group."


def _extract_error_message(response: httpx.Response) -> str:
    """Pull the most useful error text out of a backend error response."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, str) and data:
        return data
    if isinstance(data, dict):
        for key in ("error", "message"):
            if data.get(key):
                return str(data[key])

    text = response.text.strip()
    return text or f"HTTP {response.status_code}"


def _prefix_for_status(status_code: int) -> str:
    if status_code == 404:
        return "Not found"
    if status_code >= 500:
        return "Backend error"
    return "Invalid request"


class HttpBackendClient(AbstractBackendClient):
    """Client for the messaging backend's REST API.

    Uses a shared ``httpx.AsyncClient``. Transport and HTTP failures are
    classified into ``BackendUnreachableError`` / ``BackendRejectedError``
    with human-readable messages.
    """

    def __init__(
        self,
        base_url: str,
        sender_id: str | None,
        timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            base_url: Backend base URL (e.g. http://localhost:8080).
            sender_id: Registered sender account; may be None until configured.
            timeout_seconds: Per-request timeout.
            transport: Optional custom transport (used by tests).
        """
        self.base_url = base_url.rstrip("/")
        self.sender_id = sender_id
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_seconds,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    def _require_sender(self) -> str:
        if not self.sender_id:
            raise ConfigurationAppError(
                code="sender_not_configured",
                message="BACKEND_SENDER_ID not configured. Set it in your environment or .env file.",
            )
        return self.sender_id

    def _account_path(self, resource: str) -> str:
        return f"/v1/{resource}/{quote(self._require_sender(), safe='')}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        target: str | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Issue a request and classify failures.

        Returns:
            Decoded JSON body, or None for empty responses.

        Raises:
            BackendUnreachableError: On connection failures and timeouts.
            BackendRejectedError: On HTTP error statuses.
        """
        try:
            response = await self.client.request(method, path, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            message = f"{_prefix_for_status(status_code)}: {_extract_error_message(exc.response)}"
            logger.error(
                "backend.request_rejected",
                extra={
                    "operation": operation,
                    "target": target,
                    "status_code": status_code,
                    "error_message": message,
                },
            )
            raise BackendRejectedError(
                code="backend_rejected",
                message=message,
                details={"operation": operation, "http_status": status_code},
                status_code=status_code,
            ) from exc
        except httpx.ConnectError as exc:
            logger.error(
                "backend.unreachable",
                extra={"operation": operation, "target": target, "error_message": str(exc)},
            )
            raise BackendUnreachableError(
                code="backend_unreachable",
                message="Cannot connect to messaging backend. Is the backend service running?",
                details={"operation": operation},
            ) from exc
        except httpx.TimeoutException as exc:
            logger.error(
                "backend.timeout",
                extra={"operation": operation, "target": target},
            )
            raise BackendUnreachableError(
                code="backend_timeout",
                message="Messaging backend request timed out",
                details={"operation": operation},
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(
                "backend.transport_error",
                extra={"operation": operation, "target": target, "error_message": str(exc)},
            )
            raise BackendUnreachableError(
                code="backend_transport_error",
                message=f"Messaging backend request failed: {exc}",
                details={"operation": operation},
            ) from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _send_payload(self, recipient: str, text: str, attachment: str | None) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "message": text,
            "number": self._require_sender(),
            "recipients": [recipient],
        }
        if attachment:
            payload["base64_attachments"] = [attachment]
        return payload

    async def send_individual(
        self,
        recipient: str,
        text: str,
        attachment: str | None = None,
    ) -> dict[str, Any]:
        payload = self._send_payload(recipient, text, attachment)
        data = await self._request(
            "POST", "/v2/send", operation="send_individual", target=recipient, json=payload
        )
        return data if isinstance(data, dict) else {}

    async def send_group(
        self,
        group_id: str,
        text: str,
        attachment: str | None = None,
    ) -> dict[str, Any]:
        formatted = group_id if group_id.startswith(GROUP_PREFIX) else f"{GROUP_PREFIX}{group_id}"
        payload = self._send_payload(formatted, text, attachment)
        data = await self._request(
            "POST", "/v2/send", operation="send_group", target=formatted, json=payload
        )
        return data if isinstance(data, dict) else {}

    async def list_groups(self) -> list[dict[str, Any]]:
        data = await self._request("GET", self._account_path("groups"), operation="list_groups")
        return data or []

    async def list_contacts(self) -> list[dict[str, Any]]:
        data = await self._request("GET", self._account_path("contacts"), operation="list_contacts")
        return data or []

    async def list_received(self) -> list[dict[str, Any]]:
        data = await self._request("GET", self._account_path("receive"), operation="list_received")
        return data or []

    async def create_group(self, name: str, members: list[str]) -> dict[str, Any]:
        data = await self._request(
            "POST",
            self._account_path("groups"),
            operation="create_group",
            json={"name": name, "members": members},
        )
        return data if isinstance(data, dict) else {}

    def device_link_url(self, device_name: str = "signal-api") -> str:
        return f"{self.base_url}/v1/qrcodelink?device_name={quote(device_name, safe='')}"

    async def health_check(self) -> dict[str, Any]:
        try:
            response = await self.client.get("/v1/about")
            response.raise_for_status()
        except httpx.HTTPError as exc:
            return {"healthy": False, "error": str(exc) or type(exc).__name__}
        try:
            version: Any = response.json()
        except ValueError:
            version = response.text
        return {"healthy": True, "version": version}

    async def aclose(self) -> None:
        await self.client.aclose()
