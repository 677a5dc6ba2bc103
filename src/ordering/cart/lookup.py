"""Cart loading helpers shared by cart handlers, snapshots and reorder."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart


def load_cart(user_id, create=False):
    """Return the user's cart.

    Carts are created lazily: with ``create=True`` a missing cart is built (but
    not persisted), otherwise None is returned.
    """
    try:
        return current_domain.repository_for(Cart).get(user_id)
    except ObjectNotFoundError:
        return Cart.create(user_id=user_id) if create else None


def require_cart(user_id):
    cart = load_cart(user_id)
    if cart is None:
        raise ObjectNotFoundError(f"No cart for user {user_id}")
    return cart
