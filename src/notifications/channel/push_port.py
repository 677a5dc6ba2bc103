"""Push notification channel port — abstract interface for push dispatch."""

from abc import ABC, abstractmethod

SENT = "sent"
FAILED = "failed"
INVALID_TOKEN = "invalid_token"


class PushPort(ABC):
    """Abstract interface for push notification dispatch adapters."""

    def ready(self) -> bool:
        """Whether the provider is configured; senders skip dispatch otherwise."""
        return True

    @abstractmethod
    def send(
        self,
        device_token: str,
        title: str,
        body: str,
        data: dict | None = None,
    ) -> dict:
        """Send a push notification.

        Returns:
            dict with keys: message_id, status ("sent", "failed" or
            "invalid_token"), error (optional). "invalid_token" means the
            device is gone and its token should be forgotten.
        """
        ...
