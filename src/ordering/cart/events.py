"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Cart")
class CartLineAdded:
    """A product variant was added to the cart, or its quantity increased."""

    __version__ = 1

    user_id = Identifier(required=True)
    line_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    restaurant_id = Identifier(required=True)
    quantity = Integer(required=True)


@ordering.event(part_of="Cart")
class CartLineUpdated:
    """The quantity of a single cart line was changed."""

    __version__ = 1

    user_id = Identifier(required=True)
    line_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="Cart")
class CartLineRemoved:
    __version__ = 1

    user_id = Identifier(required=True)
    line_id = Identifier(required=True)


@ordering.event(part_of="Cart")
class MenuBundleAdded:
    """All products of a menu were added to the cart as one bundle."""

    __version__ = 1

    user_id = Identifier(required=True)
    bundle_id = Identifier(required=True)
    menu_id = Identifier(required=True)
    restaurant_id = Identifier(required=True)
    line_count = Integer(required=True)
    quantity = Integer(required=True)


@ordering.event(part_of="Cart")
class MenuBundleUpdated:
    __version__ = 1

    user_id = Identifier(required=True)
    bundle_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="Cart")
class MenuBundleRemoved:
    __version__ = 1

    user_id = Identifier(required=True)
    bundle_id = Identifier(required=True)


@ordering.event(part_of="Cart")
class CartCleared:
    """Every line was removed, either on request or because an order was placed."""

    __version__ = 1

    user_id = Identifier(required=True)
    reason = String(required=True, max_length=50)  # "requested" or "checked_out"
    order_id = Identifier()
    cleared_at = DateTime(required=True)
