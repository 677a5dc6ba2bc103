"""Menu bundle management — commands and handler.

A menu is added as one bundle: every product in the menu is resolved to its
first sellable variant before anything touches the cart, so a menu with an
unsellable product, or one outside its availability window, leaves the cart
unchanged.
"""

from protean import handle
from protean.exceptions import InvalidStateError, ObjectNotFoundError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart
from ordering.cart.lookup import load_cart, require_cart
from ordering.domain import ordering
from ordering.projections.menus import Menu
from ordering.projections.variants import first_sellable_variant


@ordering.command(part_of="Cart")
class AddMenuBundle:
    user_id = Identifier(required=True)
    menu_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@ordering.command(part_of="Cart")
class UpdateMenuBundle:
    user_id = Identifier(required=True)
    bundle_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@ordering.command(part_of="Cart")
class RemoveMenuBundle:
    user_id = Identifier(required=True)
    bundle_id = Identifier(required=True)


def resolve_menu_components(menu):
    """Map each product of the menu to a sellable variant, or fail as a whole."""
    components = []
    for product_id in menu.products():
        variant = first_sellable_variant(product_id)
        if variant is None:
            raise InvalidStateError(f"Menu {menu.menu_id} contains product {product_id} with no sellable variant")
        components.append({"product_id": str(product_id), "variant_id": str(variant.variant_id)})
    return components


@ordering.command_handler(part_of=Cart)
class ManageMenuBundlesHandler:
    @handle(AddMenuBundle)
    def add_menu_bundle(self, command):
        try:
            menu = current_domain.repository_for(Menu).get(command.menu_id)
        except ObjectNotFoundError:
            raise ObjectNotFoundError(f"Menu {command.menu_id} does not exist")

        if not menu.is_available_at():
            raise InvalidStateError(f"Menu {command.menu_id} is not available right now")

        components = resolve_menu_components(menu)

        cart = load_cart(command.user_id, create=True)
        bundle_id = cart.add_bundle(
            menu_id=menu.menu_id,
            restaurant_id=menu.restaurant_id,
            components=components,
            quantity=command.quantity,
        )
        current_domain.repository_for(Cart).add(cart)
        return bundle_id

    @handle(UpdateMenuBundle)
    def update_menu_bundle(self, command):
        cart = require_cart(command.user_id)
        cart.update_bundle(bundle_id=command.bundle_id, quantity=command.quantity)
        current_domain.repository_for(Cart).add(cart)

    @handle(RemoveMenuBundle)
    def remove_menu_bundle(self, command):
        cart = require_cart(command.user_id)
        cart.remove_bundle(bundle_id=command.bundle_id)
        current_domain.repository_for(Cart).add(cart)
