"""Sellable product variants with their current prices.

Cart snapshots and checkout always price lines from this projection, never
from a price cached on the cart.
"""

from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering


@ordering.projection
class ProductVariant:
    variant_id = Identifier(identifier=True, required=True)
    product_id = Identifier(required=True)
    restaurant_id = Identifier(required=True)
    label = String(max_length=100, default="Standard")
    price = Float(required=True, min_value=0.0)
    is_available = Boolean(default=True)
    position = Integer(default=0)


def get_variant(variant_id):
    """Return the variant or raise ObjectNotFoundError with a stable message."""
    try:
        return current_domain.repository_for(ProductVariant).get(variant_id)
    except ObjectNotFoundError:
        raise ObjectNotFoundError(f"Product variant {variant_id} does not exist")


def first_sellable_variant(product_id):
    """The lowest-positioned available variant of a product, or None."""
    variants = (
        current_domain.repository_for(ProductVariant)
        ._dao.query.filter(product_id=str(product_id), is_available=True)
        .order_by("position")
        .all()
        .items
    )
    return variants[0] if variants else None
