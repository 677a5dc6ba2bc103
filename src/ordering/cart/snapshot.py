"""Priced cart snapshot — the restaurant-scoped line set consumed by checkout.

Prices come from the current ProductVariant projection at snapshot time, not
from anything cached on the cart.
"""

from dataclasses import dataclass, field

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering.cart.lookup import load_cart
from ordering.projections.variants import ProductVariant


@dataclass(frozen=True)
class SnapshotLine:
    line_id: str
    product_id: str
    variant_id: str
    variant_label: str
    quantity: int
    unit_price: float
    menu_id: str | None = None
    bundle_id: str | None = None

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class CartSnapshot:
    user_id: str
    restaurant_id: str | None
    lines: tuple[SnapshotLine, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def subtotal(self) -> float:
        return sum(line.line_total for line in self.lines)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)


def snapshot_cart(user_id, cart=None) -> CartSnapshot:
    """Price every line of the user's cart against current variant prices.

    Raises ValidationError if a line's variant was withdrawn since it was added.
    """
    cart = cart if cart is not None else load_cart(user_id)
    if cart is None or not cart.lines:
        return CartSnapshot(user_id=str(user_id), restaurant_id=None)

    variant_repo = current_domain.repository_for(ProductVariant)
    lines = []
    unavailable = []
    for line in cart.lines:
        try:
            variant = variant_repo.get(line.variant_id)
        except ObjectNotFoundError:
            variant = None
        if variant is None or not variant.is_available:
            unavailable.append(str(line.variant_id))
            continue
        lines.append(
            SnapshotLine(
                line_id=str(line.id),
                product_id=str(line.product_id),
                variant_id=str(line.variant_id),
                variant_label=variant.label or "Standard",
                quantity=line.quantity,
                unit_price=variant.price,
                menu_id=str(line.menu_id) if line.menu_id else None,
                bundle_id=str(line.bundle_id) if line.bundle_id else None,
            )
        )

    if unavailable:
        raise ValidationError({"lines": [f"Items no longer available: {', '.join(unavailable)}"]})

    return CartSnapshot(
        user_id=str(user_id),
        restaurant_id=cart.restaurant_id,
        lines=tuple(lines),
    )
