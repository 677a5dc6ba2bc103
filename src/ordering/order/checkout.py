"""Checkout — turns the buyer's cart into a PENDING order.

The handler runs inside one unit of work: the order insert and the cart clear
commit together or not at all, and OrderCreated is only dispatched after the
commit.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart
from ordering.cart.lookup import load_cart
from ordering.cart.snapshot import snapshot_cart
from ordering.domain import logger, ordering
from ordering.errors import ForbiddenError
from ordering.order.fees import get_fee_source
from ordering.order.order import Order
from ordering.projections.addresses import DeliveryAddress
from ordering.projections.restaurants import Restaurant


@ordering.command(part_of="Order")
class PlaceOrder:
    user_id = Identifier(required=True)
    payment_method = String(required=True, max_length=50)
    is_delivery = Boolean(default=True)
    address_id = Identifier()
    notes = Text()


def _resolve_delivery_address(user_id, address_id):
    if not address_id:
        raise ValidationError({"address_id": ["A delivery address is required for delivery orders"]})
    try:
        address = current_domain.repository_for(DeliveryAddress).get(address_id)
    except ObjectNotFoundError:
        raise ObjectNotFoundError(f"Address {address_id} does not exist")
    if str(address.user_id) != str(user_id):
        raise ForbiddenError()
    return address


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        cart = load_cart(command.user_id)
        snapshot = snapshot_cart(command.user_id, cart)
        if snapshot.is_empty:
            raise ValidationError({"cart": ["Cart is empty"]})

        is_delivery = command.is_delivery if command.is_delivery is not None else True
        address = _resolve_delivery_address(command.user_id, command.address_id) if is_delivery else None

        try:
            restaurant = current_domain.repository_for(Restaurant).get(snapshot.restaurant_id)
        except ObjectNotFoundError:
            raise ObjectNotFoundError(f"Restaurant {snapshot.restaurant_id} does not exist")

        delivery_fee = get_fee_source().fee_for(str(restaurant.restaurant_id), address) if is_delivery else 0.0

        order = Order.create(
            user_id=command.user_id,
            restaurant_id=restaurant.restaurant_id,
            restaurant_name=restaurant.name,
            restaurant_owner_id=restaurant.owner_id,
            items_data=[
                {
                    "product_id": line.product_id,
                    "variant_id": line.variant_id,
                    "variant_label": line.variant_label,
                    "quantity": line.quantity,
                    "unit_price": line.unit_price,
                    "menu_id": line.menu_id,
                    "bundle_id": line.bundle_id,
                }
                for line in snapshot.lines
            ],
            delivery_fee=delivery_fee,
            payment_method=command.payment_method,
            is_delivery=is_delivery,
            delivery_address=address.formatted() if address else None,
            notes=command.notes,
        )
        cart.clear(reason="checked_out", order_id=order.id)

        current_domain.repository_for(Order).add(order)
        current_domain.repository_for(Cart).add(cart)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            user_id=str(command.user_id),
            restaurant_id=str(restaurant.restaurant_id),
            total=order.total,
        )
        return str(order.id)
