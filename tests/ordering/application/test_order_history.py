"""Order listing, access checks and soft removal."""

import pytest
from protean import current_domain
from protean.exceptions import InvalidStateError, ValidationError

from ordering.cart.items import AddCartLine
from ordering.errors import ForbiddenError
from ordering.order.checkout import PlaceOrder
from ordering.order.history import HideOrder
from ordering.order.queries import get_order_for, list_buyer_orders, list_restaurant_orders
from ordering.order.status import AdvanceOrderStatus


def _place(user_id="user-1", variant_id="var-jollof"):
    current_domain.process(AddCartLine(user_id=user_id, variant_id=variant_id, quantity=1), asynchronous=False)
    return current_domain.process(
        PlaceOrder(user_id=user_id, payment_method="MTN_MOMO", is_delivery=False),
        asynchronous=False,
    )


def _cancel(order_id, actor_id="owner-1"):
    current_domain.process(
        AdvanceOrderStatus(order_id=order_id, actor_id=actor_id, new_status="CANCELLED"),
        asynchronous=False,
    )


class TestGetOrder:
    def test_buyer_and_owner_can_read(self, catalogue):
        order_id = _place()
        assert str(get_order_for("user-1", order_id).id) == order_id
        assert str(get_order_for("owner-1", order_id).id) == order_id

    def test_others_cannot(self, catalogue):
        order_id = _place()
        with pytest.raises(ForbiddenError):
            get_order_for("user-2", order_id)


class TestBuyerListing:
    def test_lists_own_orders(self, catalogue):
        first = _place()
        second = _place()
        _place(user_id="user-2")

        result = list_buyer_orders("user-1")
        ids = {str(order.id) for order in result["items"]}
        assert ids == {first, second}
        assert result["meta"]["total"] == 2
        assert result["meta"]["total_pages"] == 1

    def test_pagination(self, catalogue):
        for _ in range(3):
            _place()
        result = list_buyer_orders("user-1", page=2, page_size=2)
        assert len(result["items"]) == 1
        assert result["meta"]["total_pages"] == 2

    def test_hidden_orders_are_excluded(self, catalogue):
        kept = _place()
        hidden = _place()
        _cancel(hidden)
        current_domain.process(HideOrder(order_id=hidden, user_id="user-1"), asynchronous=False)

        ids = {str(order.id) for order in list_buyer_orders("user-1")["items"]}
        assert ids == {kept}


class TestHideOrder:
    def test_only_finished_orders(self, catalogue):
        order_id = _place()
        with pytest.raises(InvalidStateError):
            current_domain.process(HideOrder(order_id=order_id, user_id="user-1"), asynchronous=False)

    def test_only_the_buyer(self, catalogue):
        order_id = _place()
        _cancel(order_id)
        with pytest.raises(ForbiddenError):
            current_domain.process(HideOrder(order_id=order_id, user_id="owner-1"), asynchronous=False)

    def test_hidden_order_still_visible_to_owner(self, catalogue):
        order_id = _place()
        _cancel(order_id)
        current_domain.process(HideOrder(order_id=order_id, user_id="user-1"), asynchronous=False)
        ids = {str(order.id) for order in list_restaurant_orders("owner-1", "rest-1")["items"]}
        assert order_id in ids


class TestRestaurantListing:
    def test_owner_filters_by_status(self, catalogue):
        pending = _place()
        cancelled = _place()
        _cancel(cancelled)

        result = list_restaurant_orders("owner-1", "rest-1", status="pending")
        assert {str(order.id) for order in result["items"]} == {pending}

    def test_non_owner_forbidden(self, catalogue):
        with pytest.raises(ForbiddenError):
            list_restaurant_orders("owner-2", "rest-1")

    def test_bad_status_filter(self, catalogue):
        with pytest.raises(ValidationError):
            list_restaurant_orders("owner-1", "rest-1", status="nope")
