"""Configurable fake mobile-money gateway for development and testing.

This adapter simulates the gateway without any external calls. Payment
requests start PENDING until ``settle()`` completes them.
"""

from uuid import uuid4

from payments.gateway.port import (
    AccountBalance,
    GatewayError,
    GatewayStatus,
    PaymentGateway,
    TransactionStatus,
)


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    name = "FAKE"

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.initialized: bool = True
        self.calls: list[dict] = []
        self.transactions: dict[str, TransactionStatus] = {}
        self.balance = AccountBalance(available_balance="0", currency="XAF")

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Gateway unavailable",
        initialized: bool = True,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.initialized = initialized

    def settle(self, reference_id: str, status: str, reason: str | None = None) -> None:
        """Simulate the gateway completing (or failing) a payment request."""
        current = self.transactions[reference_id]
        succeeded = status == GatewayStatus.SUCCESSFUL.value
        self.transactions[reference_id] = TransactionStatus(
            reference_id=reference_id,
            status=status,
            reason=reason,
            financial_transaction_id=f"fake_fin_{uuid4().hex[:10]}" if succeeded else None,
            external_id=current.external_id,
            amount=current.amount,
            currency=current.currency,
        )

    def ready(self) -> bool:
        return self.initialized

    @property
    def initialization_error(self) -> str | None:
        return None if self.initialized else self.failure_reason

    def initiate(
        self,
        external_id: str,
        amount: float,
        currency: str,
        payer_phone: str,
        payer_message: str = "",
        payee_note: str = "",
    ) -> str:
        reference_id = str(uuid4())
        self.calls.append(
            {
                "method": "initiate",
                "reference_id": reference_id,
                "external_id": str(external_id),
                "amount": amount,
                "currency": currency,
                "payer_phone": payer_phone,
                "payer_message": payer_message,
                "payee_note": payee_note,
            }
        )

        if not self.initialized:
            raise GatewayError(f"Payment gateway is not initialized: {self.failure_reason}", kind="not_initialized")
        if not self.should_succeed:
            raise GatewayError(self.failure_reason, kind="rejected")

        self.transactions[reference_id] = TransactionStatus(
            reference_id=reference_id,
            status=GatewayStatus.PENDING.value,
            external_id=str(external_id),
            amount=str(amount),
            currency=currency,
        )
        return reference_id

    def query_status(self, reference_id: str) -> TransactionStatus:
        self.calls.append({"method": "query_status", "reference_id": reference_id})
        if not self.should_succeed:
            raise GatewayError(self.failure_reason, kind="transport", retryable=True)
        if reference_id not in self.transactions:
            raise GatewayError(f"Unknown payment request {reference_id}", kind="not_found", status_code=404)
        return self.transactions[reference_id]

    def get_balance(self) -> AccountBalance:
        self.calls.append({"method": "get_balance"})
        return self.balance

    def health_check(self) -> dict:
        if not self.initialized:
            return {"status": "not_initialized", "error": self.failure_reason}
        if not self.should_succeed:
            return {"status": "unhealthy", "error": self.failure_reason}
        return {"status": "healthy", "environment": "fake"}

    def verify_callback_signature(self, payload: bytes, signature: str | None) -> bool:  # noqa: ARG002
        return signature == "test-signature"
