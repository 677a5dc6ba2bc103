"""Delivery fee sources.

Fees are owned by the delivery-zone service; checkout only asks a fee source
for the amount. ``FlatDeliveryFee`` reads the configured flat fee and is the
default. Swap in another source with ``set_fee_source()``.
"""

from abc import ABC, abstractmethod

from ordering import settings


class DeliveryFeeSource(ABC):
    @abstractmethod
    def fee_for(self, restaurant_id: str, address) -> float:
        """Return the delivery fee for an order from ``restaurant_id`` to ``address``."""
        ...


class FlatDeliveryFee(DeliveryFeeSource):
    def __init__(self, amount: float | None = None) -> None:
        self.amount = amount

    def fee_for(self, restaurant_id: str, address) -> float:  # noqa: ARG002
        return self.amount if self.amount is not None else settings.delivery_fee()


_current_source: DeliveryFeeSource | None = None


def get_fee_source() -> DeliveryFeeSource:
    """Return the active fee source. Defaults to the configured flat fee."""
    global _current_source
    if _current_source is None:
        _current_source = FlatDeliveryFee()
    return _current_source


def set_fee_source(source: DeliveryFeeSource) -> None:
    global _current_source
    _current_source = source


def reset_fee_source() -> None:
    global _current_source
    _current_source = None
