"""Factory for creating the messaging backend client."""

from signal_gateway.adapters.backend.base import AbstractBackendClient
from signal_gateway.adapters.backend.http_client import HttpBackendClient
from signal_gateway.core.config import BackendSettings, settings


def create_backend_client(backend_settings: BackendSettings | None = None) -> AbstractBackendClient:
    """Instantiate the backend client from configuration.

    A missing sender account is allowed here; operations that need it fail
    with ConfigurationAppError at call time.

    Returns:
        AbstractBackendClient: Configured client instance.
    """
    cfg = backend_settings or settings.backend
    return HttpBackendClient(
        base_url=cfg.base_url,
        sender_id=cfg.sender_id,
        timeout_seconds=cfg.timeout_seconds,
    )
