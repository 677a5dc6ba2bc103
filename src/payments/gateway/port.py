"""Payment gateway port (abstract interface).

Defines the contract that all mobile-money gateway adapters implement, so the
ordering context can run against FakeGateway (dev/test) or MomoGateway
(sandbox/production) without changing any domain or application code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class GatewayStatus(Enum):
    PENDING = "PENDING"
    SUCCESSFUL = "SUCCESSFUL"
    FAILED = "FAILED"


@dataclass(frozen=True)
class TransactionStatus:
    """Status of a payment request as reported by the gateway."""

    reference_id: str
    status: str
    reason: str | None = None
    financial_transaction_id: str | None = None
    external_id: str | None = None
    amount: str | None = None
    currency: str | None = None


@dataclass(frozen=True)
class AccountBalance:
    available_balance: str
    currency: str


class GatewayError(Exception):
    """The gateway could not be reached, refused the call, or answered nonsense.

    ``kind`` is one of: configuration, not_initialized, auth, timeout,
    transport, rejected, not_found, malformed. ``retryable`` is set for
    failures where repeating an idempotent read may succeed.
    """

    def __init__(self, message: str, kind: str = "rejected", status_code: int | None = None, retryable: bool = False):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.retryable = retryable


class PaymentGateway(ABC):
    """Abstract mobile-money gateway interface."""

    name: str = "GATEWAY"

    @abstractmethod
    def initiate(
        self,
        external_id: str,
        amount: float,
        currency: str,
        payer_phone: str,
        payer_message: str = "",
        payee_note: str = "",
    ) -> str:
        """Submit a payment request and return its reference id.

        Never retried automatically: each submission carries a fresh
        reference id, so a retry would be a second payment request.
        """
        ...

    @abstractmethod
    def query_status(self, reference_id: str) -> TransactionStatus:
        """Return the current status of a payment request."""
        ...

    @abstractmethod
    def get_balance(self) -> AccountBalance:
        ...

    @abstractmethod
    def health_check(self) -> dict:
        """Return ``{"status": "not_initialized" | "healthy" | "unhealthy", ...}``."""
        ...

    @abstractmethod
    def verify_callback_signature(self, payload: bytes, signature: str | None) -> bool:
        """Verify that a callback payload really comes from the gateway."""
        ...

    def ready(self) -> bool:
        return True

    @property
    def initialization_error(self) -> str | None:
        return None
