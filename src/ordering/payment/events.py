"""Domain events for the Payment aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from ordering.domain import ordering


@ordering.event(part_of="Payment")
class PaymentInitiated:
    """A payment request was submitted to the gateway."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    amount = Float(required=True)
    currency = String(required=True, max_length=3)
    provider = String(max_length=50)
    provider_transaction_id = String(max_length=255)
    initiated_at = DateTime(required=True)


@ordering.event(part_of="Payment")
class PaymentConfirmed:
    """The gateway confirmed the payment and the order is now paid."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    restaurant_id = Identifier(required=True)
    restaurant_owner_id = Identifier()
    restaurant_name = String(max_length=255)
    amount = Float(required=True)
    currency = String(required=True, max_length=3)
    financial_transaction_id = String(max_length=255)
    confirmed_at = DateTime(required=True)


@ordering.event(part_of="Payment")
class PaymentFailed:
    """The gateway declined the payment, or it could not be submitted."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    restaurant_id = Identifier()
    reason = String(max_length=500)
    failed_at = DateTime(required=True)


@ordering.event(part_of="Payment")
class PaymentTimedOut:
    """No outcome was recorded before the payment deadline."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    restaurant_id = Identifier()
    timed_out_at = DateTime(required=True)
