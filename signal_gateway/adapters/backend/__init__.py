"""Messaging backend adapter layer."""

from signal_gateway.adapters.backend.base import AbstractBackendClient
from signal_gateway.adapters.backend.factory import create_backend_client
from signal_gateway.adapters.backend.http_client import HttpBackendClient

__all__ = [
    "AbstractBackendClient",
    "HttpBackendClient",
    "create_backend_client",
]
