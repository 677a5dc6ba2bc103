"""Checkout: cart to PENDING order, atomically."""

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

from ordering.cart.cart import Cart
from ordering.cart.items import AddCartLine
from ordering.errors import ForbiddenError
from ordering.order.checkout import PlaceOrder
from ordering.order.fees import DeliveryFeeSource, set_fee_source
from ordering.order.order import Order, OrderStatus


def _add(variant_id, quantity=1, user_id="user-1"):
    current_domain.process(AddCartLine(user_id=user_id, variant_id=variant_id, quantity=quantity), asynchronous=False)


def _checkout(user_id="user-1", is_delivery=True, address_id="addr-1", **kwargs):
    return current_domain.process(
        PlaceOrder(
            user_id=user_id,
            payment_method="MTN_MOMO",
            is_delivery=is_delivery,
            address_id=address_id,
            **kwargs,
        ),
        asynchronous=False,
    )


def _orders():
    return current_domain.repository_for(Order)._dao.query.all().items


class TestPlaceOrder:
    def test_delivery_order_totals(self, catalogue):
        _add("var-jollof", 1)
        _add("var-chicken", 2)

        order_id = _checkout()
        order = current_domain.repository_for(Order).get(order_id)

        assert order.status == OrderStatus.PENDING.value
        assert order.subtotal == 4000.0
        assert order.delivery_fee == 500.0
        assert order.total == 4500.0
        assert order.delivery_address == "12 Rue Malanda, Brazzaville, CG"
        assert order.restaurant_name == "Chez Mama"
        assert str(order.restaurant_owner_id) == "owner-1"
        assert len(order.items) == 2

    def test_cart_is_cleared(self, catalogue):
        _add("var-jollof")
        _checkout()
        cart = current_domain.repository_for(Cart).get("user-1")
        assert len(cart.lines) == 0

    def test_pickup_has_no_fee_or_address(self, catalogue):
        _add("var-jollof", 2)
        order = current_domain.repository_for(Order).get(_checkout(is_delivery=False, address_id=None))
        assert order.delivery_fee == 0.0
        assert order.total == 2000.0
        assert order.delivery_address is None

    def test_custom_fee_source(self, catalogue):
        class ZoneFee(DeliveryFeeSource):
            def fee_for(self, restaurant_id, address):
                return 750.0

        set_fee_source(ZoneFee())
        _add("var-jollof")
        order = current_domain.repository_for(Order).get(_checkout())
        assert order.total == 1750.0

    def test_notes_are_kept(self, catalogue):
        _add("var-jollof")
        order = current_domain.repository_for(Order).get(_checkout(notes="No pepper"))
        assert order.notes == "No pepper"

    def test_order_created_notification(self, catalogue, recorded_notifications):
        _add("var-jollof")
        order_id = _checkout()

        created = [n for n in recorded_notifications if n.name == "order.created"]
        assert len(created) == 1
        assert created[0].payload["order_id"] == order_id
        assert created[0].payload["restaurant_owner_id"] == "owner-1"
        assert created[0].payload["total_amount"] == 1500.0


class TestCheckoutFailures:
    def test_empty_cart(self, catalogue):
        with pytest.raises(ValidationError) as exc:
            _checkout()
        assert "cart" in exc.value.messages
        assert _orders() == []

    def test_missing_address_for_delivery(self, catalogue):
        _add("var-jollof")
        with pytest.raises(ValidationError):
            _checkout(address_id=None)
        assert _orders() == []

    def test_unknown_address(self, catalogue):
        _add("var-jollof")
        with pytest.raises(ObjectNotFoundError):
            _checkout(address_id="addr-missing")

    def test_someone_elses_address(self, catalogue):
        _add("var-jollof")
        with pytest.raises(ForbiddenError):
            _checkout(address_id="addr-2")
        assert _orders() == []
        assert len(current_domain.repository_for(Cart).get("user-1").lines) == 1

    def test_failure_sends_no_notification(self, catalogue, recorded_notifications):
        _add("var-jollof")
        with pytest.raises(ForbiddenError):
            _checkout(address_id="addr-2")
        assert recorded_notifications == []

    def test_failure_after_writes_rolls_back_order_and_cart(self, catalogue, monkeypatch):
        from ordering.order import checkout

        class FailingLogger:
            def info(self, *args, **kwargs):
                raise RuntimeError("storage went away")

        _add("var-jollof")
        monkeypatch.setattr(checkout, "logger", FailingLogger())

        with pytest.raises(RuntimeError):
            _checkout()

        assert _orders() == []
        assert len(current_domain.repository_for(Cart).get("user-1").lines) == 1


class TestOrderSnapshot:
    def test_later_price_change_leaves_order_untouched(self, catalogue):
        from ordering.projections.variants import ProductVariant

        _add("var-jollof", 2)
        order_id = _checkout(is_delivery=False, address_id=None)

        variants = current_domain.repository_for(ProductVariant)
        variant = variants.get("var-jollof")
        variant.price = 9999.0
        variants.add(variant)

        order = current_domain.repository_for(Order).get(order_id)
        assert order.total == 2000.0
        assert order.items[0].unit_price == 1000.0
