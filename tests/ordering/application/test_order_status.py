"""Status changes requested through AdvanceOrderStatus."""

import pytest
from protean import current_domain
from protean.exceptions import InvalidStateError, ValidationError

from ordering.cart.items import AddCartLine
from ordering.errors import ForbiddenError
from ordering.order.checkout import PlaceOrder
from ordering.order.order import Order, OrderStatus
from ordering.order.status import AdvanceOrderStatus


@pytest.fixture()
def order_id(catalogue):
    current_domain.process(AddCartLine(user_id="user-1", variant_id="var-jollof", quantity=2), asynchronous=False)
    return current_domain.process(
        PlaceOrder(user_id="user-1", payment_method="MTN_MOMO", is_delivery=True, address_id="addr-1"),
        asynchronous=False,
    )


def _advance(order_id, actor_id, status, reason=None):
    return current_domain.process(
        AdvanceOrderStatus(order_id=order_id, actor_id=actor_id, new_status=status, reason=reason),
        asynchronous=False,
    )


def _status(order_id):
    return current_domain.repository_for(Order).get(order_id).status


class TestOperator:
    def test_full_lifecycle(self, order_id):
        for status in ("PAID", "PREPARING", "READY", "DELIVERING", "DELIVERED"):
            assert _advance(order_id, "owner-1", status) == status
        assert _status(order_id) == OrderStatus.DELIVERED.value

    def test_lowercase_status_accepted(self, order_id):
        assert _advance(order_id, "owner-1", "paid") == "PAID"

    def test_invalid_jump(self, order_id):
        with pytest.raises(InvalidStateError):
            _advance(order_id, "owner-1", "DELIVERED")
        assert _status(order_id) == OrderStatus.PENDING.value

    def test_cannot_cancel_delivered(self, order_id):
        for status in ("PAID", "READY", "DELIVERED"):
            _advance(order_id, "owner-1", status)
        with pytest.raises(InvalidStateError):
            _advance(order_id, "owner-1", "CANCELLED")
        assert _status(order_id) == OrderStatus.DELIVERED.value

    def test_unknown_status(self, order_id):
        with pytest.raises(ValidationError):
            _advance(order_id, "owner-1", "LOST")

    def test_status_notification(self, order_id, recorded_notifications):
        _advance(order_id, "owner-1", "PAID")
        updates = [n for n in recorded_notifications if n.name == "order.status.updated"]
        assert len(updates) == 1
        assert updates[0].payload["previous_status"] == "PENDING"
        assert updates[0].payload["new_status"] == "PAID"
        assert updates[0].payload["updated_by"] == "operator"


class TestBuyer:
    def test_buyer_cancels_pending_order(self, order_id, recorded_notifications):
        _advance(order_id, "user-1", "CANCELLED", reason="Changed my mind")
        order = current_domain.repository_for(Order).get(order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancelled_by == "buyer"
        assert order.cancellation_reason == "Changed my mind"

        cancelled = [n for n in recorded_notifications if n.name == "order.cancelled"]
        assert len(cancelled) == 1
        assert cancelled[0].payload["refund_amount"] == 2500.0
        assert cancelled[0].payload["refund_eligible"] is True

    def test_small_order_cancellation_is_not_refund_eligible(self, catalogue, recorded_notifications):
        current_domain.process(AddCartLine(user_id="user-1", variant_id="var-juice", quantity=1), asynchronous=False)
        small_order = current_domain.process(
            PlaceOrder(user_id="user-1", payment_method="MTN_MOMO", is_delivery=False), asynchronous=False
        )
        _advance(small_order, "user-1", "CANCELLED")

        [cancelled] = [n for n in recorded_notifications if n.name == "order.cancelled"]
        assert cancelled.payload["refund_eligible"] is False
        assert cancelled.payload["refund_amount"] is None

    def test_buyer_cannot_cancel_after_payment(self, order_id):
        _advance(order_id, "owner-1", "PAID")
        with pytest.raises(InvalidStateError):
            _advance(order_id, "user-1", "CANCELLED")
        assert _status(order_id) == OrderStatus.PAID.value

    def test_buyer_cannot_advance(self, order_id):
        with pytest.raises(InvalidStateError):
            _advance(order_id, "user-1", "PAID")
        assert _status(order_id) == OrderStatus.PENDING.value

    def test_buyer_cannot_start_preparation(self, order_id):
        with pytest.raises(InvalidStateError):
            _advance(order_id, "user-1", "PREPARING")
        assert _status(order_id) == OrderStatus.PENDING.value


class TestStrangers:
    def test_unrelated_user_is_forbidden(self, order_id):
        with pytest.raises(ForbiddenError):
            _advance(order_id, "user-2", "CANCELLED")

    def test_other_restaurant_owner_is_forbidden(self, order_id):
        with pytest.raises(ForbiddenError):
            _advance(order_id, "owner-2", "PAID")
