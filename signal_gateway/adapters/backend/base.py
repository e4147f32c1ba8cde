from abc import ABC, abstractmethod
from typing import Any


class AbstractBackendClient(ABC):
	"""Interface for clients of the external messaging backend.

	Implementations raise ``AppError`` subclasses from
	``signal_gateway.core.errors`` on failure:
	``BackendUnreachableError`` for transport problems,
	``BackendRejectedError`` for error statuses and
	``ConfigurationAppError`` when the sender account is missing.
	"""

	@abstractmethod
	async def send_individual(
		self,
		recipient: str,
		text: str,
		attachment: str | None = None,
	) -> dict[str, Any]:
		"""Send a message to a single address.

		Args:
			recipient: Address in international format (e.g. +15551234567).
			text: Message body.
			attachment: Optional data-URI encoded attachment.

		Returns:
			dict[str, Any]: Backend acknowledgement.
		"""
		...

	@abstractmethod
	async def send_group(
		self,
		group_id: str,
		text: str,
		attachment: str | None = None,
	) -> dict[str, Any]:
		"""Send a message to a group identified without its client-side marker."""
		...

	@abstractmethod
	async def list_groups(self) -> list[dict[str, Any]]:
		...

	@abstractmethod
	async def list_contacts(self) -> list[dict[str, Any]]:
		...

	@abstractmethod
	async def list_received(self) -> list[dict[str, Any]]:
		"""Fetch messages received since the last call."""
		...

	@abstractmethod
	async def create_group(self, name: str, members: list[str]) -> dict[str, Any]:
		...

	@abstractmethod
	def device_link_url(self, device_name: str = "signal-api") -> str:
		"""Build the URL serving the device-linking QR code."""
		...

	@abstractmethod
	async def health_check(self) -> dict[str, Any]:
		"""Probe the backend. Never raises; reports ``healthy`` instead."""
		...

	async def aclose(self) -> None:
		"""Release underlying resources."""
		return None
