"""Cart line management — commands and handler."""

from protean import handle
from protean.exceptions import InvalidStateError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart
from ordering.cart.lookup import load_cart, require_cart
from ordering.domain import ordering
from ordering.projections.variants import get_variant


@ordering.command(part_of="Cart")
class AddCartLine:
    user_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@ordering.command(part_of="Cart")
class UpdateCartLine:
    user_id = Identifier(required=True)
    line_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@ordering.command(part_of="Cart")
class RemoveCartLine:
    user_id = Identifier(required=True)
    line_id = Identifier(required=True)


@ordering.command(part_of="Cart")
class ClearCart:
    user_id = Identifier(required=True)


@ordering.command_handler(part_of=Cart)
class ManageCartLinesHandler:
    @handle(AddCartLine)
    def add_cart_line(self, command):
        variant = get_variant(command.variant_id)
        if not variant.is_available:
            raise InvalidStateError(f"Product variant {command.variant_id} is not available")

        cart = load_cart(command.user_id, create=True)
        line_id = cart.add_line(
            product_id=variant.product_id,
            variant_id=variant.variant_id,
            restaurant_id=variant.restaurant_id,
            quantity=command.quantity,
        )
        current_domain.repository_for(Cart).add(cart)
        return line_id

    @handle(UpdateCartLine)
    def update_cart_line(self, command):
        cart = require_cart(command.user_id)
        cart.update_line(line_id=command.line_id, quantity=command.quantity)
        current_domain.repository_for(Cart).add(cart)

    @handle(RemoveCartLine)
    def remove_cart_line(self, command):
        cart = require_cart(command.user_id)
        cart.remove_line(line_id=command.line_id)
        current_domain.repository_for(Cart).add(cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        cart = load_cart(command.user_id)
        if cart is None:
            return
        cart.clear()
        current_domain.repository_for(Cart).add(cart)
