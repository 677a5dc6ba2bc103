"""Bridge from Ordering domain events to the notification bus.

Protean dispatches these handlers after the unit of work that raised the
event has committed, so a rolled-back checkout or reconciliation never
notifies anyone. The payloads are plain dicts keyed by snake_case names.
"""

from protean.utils.mixins import handle

from notifications import bus
from notifications.bus import get_bus
from ordering.domain import ordering
from ordering.order.events import OrderCancelled, OrderCreated, OrderStatusUpdated
from ordering.order.order import Order
from ordering.payment.events import PaymentConfirmed, PaymentFailed, PaymentTimedOut
from ordering.payment.payment import Payment


def _id(value):
    return str(value) if value else None


@ordering.event_handler(part_of=Order)
class OrderNotificationDispatcher:
    """Publishes order lifecycle notifications."""

    @handle(OrderCreated)
    def on_order_created(self, event: OrderCreated) -> None:
        get_bus().emit(
            bus.ORDER_CREATED,
            {
                "order_id": str(event.order_id),
                "user_id": str(event.user_id),
                "restaurant_id": str(event.restaurant_id),
                "restaurant_owner_id": _id(event.restaurant_owner_id),
                "restaurant_name": event.restaurant_name,
                "total_amount": event.total_amount,
                "item_count": event.item_count,
            },
        )

    @handle(OrderStatusUpdated)
    def on_status_updated(self, event: OrderStatusUpdated) -> None:
        get_bus().emit(
            bus.ORDER_STATUS_UPDATED,
            {
                "order_id": str(event.order_id),
                "user_id": str(event.user_id),
                "restaurant_id": str(event.restaurant_id),
                "restaurant_owner_id": _id(event.restaurant_owner_id),
                "previous_status": event.previous_status,
                "new_status": event.new_status,
                "updated_by": event.updated_by,
                "restaurant_name": event.restaurant_name,
                "total_amount": event.total_amount,
            },
        )

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        get_bus().emit(
            bus.ORDER_CANCELLED,
            {
                "order_id": str(event.order_id),
                "user_id": str(event.user_id),
                "restaurant_id": str(event.restaurant_id),
                "restaurant_owner_id": _id(event.restaurant_owner_id),
                "cancelled_by": event.cancelled_by,
                "reason": event.reason,
                "refund_eligible": event.refund_eligible,
                "refund_amount": event.refund_amount if event.refund_eligible else None,
            },
        )


@ordering.event_handler(part_of=Payment)
class PaymentNotificationDispatcher:
    """Publishes payment outcome notifications."""

    @handle(PaymentConfirmed)
    def on_payment_confirmed(self, event: PaymentConfirmed) -> None:
        get_bus().emit(
            bus.PAYMENT_CONFIRMED,
            {
                "order_id": str(event.order_id),
                "user_id": str(event.user_id),
                "restaurant_id": str(event.restaurant_id),
                "restaurant_owner_id": _id(event.restaurant_owner_id),
                "payment_id": str(event.payment_id),
                "amount": event.amount,
                "currency": event.currency,
            },
        )

    @handle(PaymentFailed)
    def on_payment_failed(self, event: PaymentFailed) -> None:
        get_bus().emit(
            bus.PAYMENT_FAILED,
            {
                "order_id": str(event.order_id),
                "user_id": str(event.user_id),
                "payment_id": str(event.payment_id),
                "reason": event.reason,
            },
        )

    @handle(PaymentTimedOut)
    def on_payment_timeout(self, event: PaymentTimedOut) -> None:
        get_bus().emit(
            bus.PAYMENT_TIMEOUT,
            {
                "order_id": str(event.order_id),
                "user_id": str(event.user_id),
                "payment_id": str(event.payment_id),
            },
        )
