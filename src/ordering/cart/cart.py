"""Cart aggregate — one per user, holding lines from a single restaurant.

The cart is a standard CQRS aggregate (not event sourced), identified by the
owning user. It is created lazily on the first add and is never deleted:
checkout only clears its lines.

Lines either stand alone or belong to a menu bundle. Bundle lines are added,
re-quantified and removed together; single-line operations on them are
rejected so that no partial bundle is ever persisted.
"""

from datetime import UTC, datetime
from uuid import uuid4

from protean import atomic_change, invariant
from protean.exceptions import InvalidStateError, ObjectNotFoundError, ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer

from ordering.cart.events import (
    CartCleared,
    CartLineAdded,
    CartLineRemoved,
    CartLineUpdated,
    MenuBundleAdded,
    MenuBundleRemoved,
    MenuBundleUpdated,
)
from ordering.domain import ordering

CROSS_RESTAURANT_MESSAGE = "Cart holds items from another restaurant. Clear the cart before adding this item"


@ordering.entity(part_of="Cart")
class CartLine:
    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    restaurant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    menu_id = Identifier()
    bundle_id = Identifier()  # Set for lines that belong to a menu bundle
    added_at = DateTime()


@ordering.aggregate
class Cart:
    user_id = Identifier(identifier=True, required=True)
    lines = HasMany(CartLine)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def lines_must_come_from_one_restaurant(self):
        restaurants = {str(line.restaurant_id) for line in self.lines}
        if len(restaurants) > 1:
            raise ValidationError({"lines": ["A cart can only hold items from one restaurant"]})

    @invariant.post
    def bundle_lines_must_share_quantity(self):
        quantities = {}
        for line in self.lines:
            if line.bundle_id:
                quantities.setdefault(str(line.bundle_id), set()).add(line.quantity)
        if any(len(q) > 1 for q in quantities.values()):
            raise ValidationError({"lines": ["Menu bundle lines must share one quantity"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id):
        now = datetime.now(UTC)
        return cls(user_id=user_id, created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def restaurant_id(self):
        """The restaurant every line belongs to, or None for an empty cart."""
        return str(self.lines[0].restaurant_id) if self.lines else None

    def bundle_lines(self, bundle_id):
        return [line for line in self.lines if str(line.bundle_id) == str(bundle_id)]

    def _assert_same_restaurant(self, restaurant_id):
        current = self.restaurant_id
        if current is not None and current != str(restaurant_id):
            raise InvalidStateError(CROSS_RESTAURANT_MESSAGE)

    def _get_line(self, line_id):
        line = next((line for line in self.lines if str(line.id) == str(line_id)), None)
        if line is None:
            raise ObjectNotFoundError(f"Cart line {line_id} not found")
        return line

    def _get_standalone_line(self, line_id):
        line = self._get_line(line_id)
        if line.bundle_id:
            raise InvalidStateError("This item is part of a menu. Update or remove the whole menu instead")
        return line

    # -------------------------------------------------------------------
    # Single lines
    # -------------------------------------------------------------------
    def add_line(self, product_id, variant_id, restaurant_id, quantity):
        """Add a variant to the cart (or increase the quantity of its standalone line)."""
        self._assert_same_restaurant(restaurant_id)

        existing = next(
            (
                line
                for line in self.lines
                if not line.bundle_id and str(line.variant_id) == str(variant_id)
            ),
            None,
        )

        now = datetime.now(UTC)

        if existing:
            existing.quantity += quantity
            line_id = str(existing.id)
        else:
            line = CartLine(
                product_id=product_id,
                variant_id=variant_id,
                restaurant_id=restaurant_id,
                quantity=quantity,
                added_at=now,
            )
            self.add_lines(line)
            line_id = str(line.id)

        self.updated_at = now

        self.raise_(
            CartLineAdded(
                user_id=str(self.user_id),
                line_id=line_id,
                variant_id=str(variant_id),
                restaurant_id=str(restaurant_id),
                quantity=quantity,
            )
        )
        return line_id

    def update_line(self, line_id, quantity):
        line = self._get_standalone_line(line_id)
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        previous_quantity = line.quantity
        line.quantity = quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartLineUpdated(
                user_id=str(self.user_id),
                line_id=str(line_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    def remove_line(self, line_id):
        line = self._get_standalone_line(line_id)

        self.remove_lines(line)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartLineRemoved(user_id=str(self.user_id), line_id=str(line_id)))

    # -------------------------------------------------------------------
    # Menu bundles
    # -------------------------------------------------------------------
    def add_bundle(self, menu_id, restaurant_id, components, quantity):
        """Add one unit of a menu per ``quantity``, as a single atomic change.

        Args:
            components: List of dicts with product_id and variant_id, one per
                product in the menu. Every product must already be resolved to
                a sellable variant by the caller.

        Adding a menu that is already in the cart increases the quantity of
        the existing bundle instead of creating a second one.
        """
        self._assert_same_restaurant(restaurant_id)
        if not components:
            raise ValidationError({"menu_id": ["Menu has no products"]})

        existing = next(
            (line for line in self.lines if line.bundle_id and str(line.menu_id) == str(menu_id)),
            None,
        )
        if existing:
            bundle_id = str(existing.bundle_id)
            self.update_bundle(bundle_id, existing.quantity + quantity)
            return bundle_id

        bundle_id = str(uuid4())
        now = datetime.now(UTC)
        with atomic_change(self):
            for component in components:
                self.add_lines(
                    CartLine(
                        product_id=component["product_id"],
                        variant_id=component["variant_id"],
                        restaurant_id=restaurant_id,
                        quantity=quantity,
                        menu_id=menu_id,
                        bundle_id=bundle_id,
                        added_at=now,
                    )
                )
            self.updated_at = now

        self.raise_(
            MenuBundleAdded(
                user_id=str(self.user_id),
                bundle_id=bundle_id,
                menu_id=str(menu_id),
                restaurant_id=str(restaurant_id),
                line_count=len(components),
                quantity=quantity,
            )
        )
        return bundle_id

    def update_bundle(self, bundle_id, quantity):
        lines = self.bundle_lines(bundle_id)
        if not lines:
            raise ObjectNotFoundError(f"Menu bundle {bundle_id} not found in cart")
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        previous_quantity = lines[0].quantity
        with atomic_change(self):
            for line in lines:
                line.quantity = quantity
            self.updated_at = datetime.now(UTC)

        self.raise_(
            MenuBundleUpdated(
                user_id=str(self.user_id),
                bundle_id=str(bundle_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    def remove_bundle(self, bundle_id):
        lines = self.bundle_lines(bundle_id)
        if not lines:
            raise ObjectNotFoundError(f"Menu bundle {bundle_id} not found in cart")

        with atomic_change(self):
            self.remove_lines(lines)
            self.updated_at = datetime.now(UTC)

        self.raise_(MenuBundleRemoved(user_id=str(self.user_id), bundle_id=str(bundle_id)))

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def clear(self, reason="requested", order_id=None):
        """Remove every line. The cart itself survives for the next order."""
        now = datetime.now(UTC)
        if self.lines:
            self.remove_lines(list(self.lines))
        self.updated_at = now

        self.raise_(
            CartCleared(
                user_id=str(self.user_id),
                reason=reason,
                order_id=str(order_id) if order_id else None,
                cleared_at=now,
            )
        )
