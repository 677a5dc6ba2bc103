"""Domain events for the Order aggregate.

Each event carries everything its consumers need to render a message or route
it to a recipient (buyer id, restaurant owner id, restaurant name), so that
subscribers never have to read the order back.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderCreated:
    """An order was placed from the buyer's cart."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    restaurant_id = Identifier(required=True)
    restaurant_owner_id = Identifier()
    restaurant_name = String(max_length=255)
    subtotal = Float(required=True)
    delivery_fee = Float(required=True)
    total_amount = Float(required=True)
    item_count = Integer(required=True)
    items = Text(required=True)  # JSON list of line snapshots
    is_delivery = Boolean(default=True)
    created_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusUpdated:
    """The order moved from one status to another."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    restaurant_id = Identifier(required=True)
    restaurant_owner_id = Identifier()
    previous_status = String(required=True, max_length=20)
    new_status = String(required=True, max_length=20)
    updated_by = String(required=True, max_length=20)  # buyer, operator, system
    actor_id = Identifier()
    restaurant_name = String(max_length=255)
    total_amount = Float(required=True)
    updated_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled by its buyer or by the restaurant."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    restaurant_id = Identifier(required=True)
    restaurant_owner_id = Identifier()
    cancelled_by = String(required=True, max_length=20)
    actor_id = Identifier()
    reason = String(max_length=500)
    refund_eligible = Boolean(default=False)
    refund_amount = Float(default=0.0)
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderHidden:
    """The buyer removed a finished order from their history."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
