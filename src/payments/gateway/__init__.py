"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing (default)
- MomoGateway when PAYMENT_GATEWAY=momo
"""

import os

from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def _build_default_gateway() -> PaymentGateway:
    if os.environ.get("PAYMENT_GATEWAY", "fake").lower() == "momo":
        from payments.gateway.momo_adapter import MomoGateway, MomoSettings

        gateway = MomoGateway(MomoSettings.from_env())
        # Failure is recorded and retried on first use
        gateway.initialize()
        return gateway
    return FakeGateway()


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway. Defaults to FakeGateway."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _build_default_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
