"""Reorder — put the items of a previous order back into the buyer's cart.

Variants are matched by label among the product's sellable variants, falling
back to its first sellable variant. Menu lines are re-added as whole bundles
when the menu is still available. Items that cannot be matched are reported
rather than failing the whole reorder; a cart holding another restaurant's
items is still a conflict.
"""

from protean import handle
from protean.exceptions import InvalidStateError, ObjectNotFoundError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.cart.bundles import resolve_menu_components
from ordering.cart.cart import CROSS_RESTAURANT_MESSAGE, Cart
from ordering.cart.lookup import load_cart
from ordering.domain import logger, ordering
from ordering.errors import ForbiddenError
from ordering.order.order import Order
from ordering.projections.menus import Menu
from ordering.projections.variants import ProductVariant


@ordering.command(part_of="Cart")
class ReorderPreviousOrder:
    user_id = Identifier(required=True)
    order_id = Identifier(required=True)


def match_variant(product_id, label):
    """Same-label sellable variant of the product, else its first sellable one."""
    variants = (
        current_domain.repository_for(ProductVariant)
        ._dao.query.filter(product_id=str(product_id), is_available=True)
        .order_by("position")
        .all()
        .items
    )
    if not variants:
        return None
    return next((v for v in variants if v.label == label), variants[0])


def _available_menu(menu_id):
    try:
        menu = current_domain.repository_for(Menu).get(menu_id)
    except ObjectNotFoundError:
        return None
    return menu if menu.is_available_at() else None


@ordering.command_handler(part_of=Cart)
class ReorderHandler:
    @handle(ReorderPreviousOrder)
    def reorder(self, command):
        order = current_domain.repository_for(Order).get(command.order_id)
        if str(order.user_id) != str(command.user_id):
            raise ForbiddenError()

        cart = load_cart(command.user_id, create=True)
        if cart.restaurant_id is not None and cart.restaurant_id != str(order.restaurant_id):
            raise InvalidStateError(CROSS_RESTAURANT_MESSAGE)

        added, unavailable, errors = [], [], []

        bundles = {}
        for item in order.items:
            if item.bundle_id:
                bundles.setdefault(str(item.bundle_id), item)
                continue

            variant = match_variant(item.product_id, item.variant_label)
            if variant is None or str(variant.restaurant_id) != str(order.restaurant_id):
                unavailable.append({"product_id": str(item.product_id), "variant_label": item.variant_label})
                continue
            try:
                cart.add_line(
                    product_id=variant.product_id,
                    variant_id=variant.variant_id,
                    restaurant_id=variant.restaurant_id,
                    quantity=item.quantity,
                )
                added.append({"product_id": str(item.product_id), "variant_id": str(variant.variant_id)})
            except InvalidStateError as exc:
                errors.append({"product_id": str(item.product_id), "error": str(exc)})

        for item in bundles.values():
            menu = _available_menu(item.menu_id) if item.menu_id else None
            if menu is None:
                unavailable.append({"menu_id": str(item.menu_id)})
                continue
            try:
                components = resolve_menu_components(menu)
                bundle_id = cart.add_bundle(
                    menu_id=menu.menu_id,
                    restaurant_id=menu.restaurant_id,
                    components=components,
                    quantity=item.quantity,
                )
                added.append({"menu_id": str(menu.menu_id), "bundle_id": bundle_id})
            except InvalidStateError as exc:
                errors.append({"menu_id": str(item.menu_id), "error": str(exc)})

        if added:
            current_domain.repository_for(Cart).add(cart)

        logger.info(
            "Reorder processed",
            order_id=str(order.id),
            added=len(added),
            unavailable=len(unavailable),
            errors=len(errors),
        )
        return {
            "added": added,
            "unavailable": unavailable,
            "errors": errors,
            "summary": {
                "requested": len(added) + len(unavailable) + len(errors),
                "added": len(added),
                "unavailable": len(unavailable),
                "errors": len(errors),
            },
        }
