"""Order aggregate (CQRS) — a priced snapshot of a checked-out cart.

The order's identity, lines and amounts are fixed at creation. Only ``status``
and ``paid_at`` change afterwards (plus the buyer's soft "hidden" flag), and
every status change goes through a default-deny transition map.

State Machine (7 states):
    PENDING → PAID → PREPARING → READY → DELIVERING → DELIVERED
    PAID → READY (no preparation step), READY → DELIVERED (pickup)
    CANCELLED (from PENDING, PAID, PREPARING)
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import InvalidStateError, ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text

from ordering.domain import ordering
from ordering.order.events import OrderCancelled, OrderCreated, OrderHidden, OrderStatusUpdated


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    PREPARING = "PREPARING"
    READY = "READY"
    DELIVERING = "DELIVERING"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class ActorRole(Enum):
    BUYER = "buyer"
    OPERATOR = "operator"
    SYSTEM = "system"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: {OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.DELIVERING, OrderStatus.DELIVERED},
    OrderStatus.DELIVERING: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

TERMINAL_STATES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

# Statuses each role may request. Anything else is refused before the
# transition map is consulted.
ROLE_ALLOWED_TARGETS = {
    ActorRole.BUYER: frozenset({OrderStatus.CANCELLED}),
    ActorRole.OPERATOR: frozenset(
        {
            OrderStatus.PAID,
            OrderStatus.PREPARING,
            OrderStatus.READY,
            OrderStatus.DELIVERING,
            OrderStatus.DELIVERED,
            OrderStatus.CANCELLED,
        }
    ),
    ActorRole.SYSTEM: frozenset({OrderStatus.PAID}),
}

# The buyer may only cancel an order nobody has acted on yet
_BUYER_CANCELLABLE_STATES = {OrderStatus.PENDING}


def _money(value):
    return round(float(value), 2)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A line copied from the cart at checkout.

    Prices and labels are captured here so later catalogue changes never
    alter an existing order.
    """

    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    variant_label = String(max_length=100, default="Standard")
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    menu_id = Identifier()
    bundle_id = Identifier()


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    user_id = Identifier(required=True)
    restaurant_id = Identifier(required=True)
    restaurant_name = String(max_length=255)
    restaurant_owner_id = Identifier()
    items = HasMany(OrderItem)
    subtotal = Float(required=True, min_value=0.0)
    delivery_fee = Float(default=0.0, min_value=0.0)
    total = Float(required=True, min_value=0.0)
    is_delivery = Boolean(default=True)
    delivery_address = String(max_length=500)
    payment_method = String(required=True, max_length=50)
    notes = Text()
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    paid_at = DateTime()
    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=20)
    hidden_by_buyer = Boolean(default=False)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_equal_subtotal_plus_delivery_fee(self):
        if _money(self.total) != _money(self.subtotal + (self.delivery_fee or 0.0)):
            raise ValidationError({"total": ["Total must equal subtotal plus delivery fee"]})

    @invariant.post
    def subtotal_must_match_items(self):
        if not self.items:
            return
        computed = sum(item.unit_price * item.quantity for item in self.items)
        if _money(computed) != _money(self.subtotal):
            raise ValidationError({"subtotal": ["Subtotal must equal the sum of line totals"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        user_id,
        restaurant_id,
        items_data,
        delivery_fee,
        payment_method,
        is_delivery=True,
        delivery_address=None,
        notes=None,
        restaurant_name=None,
        restaurant_owner_id=None,
    ):
        """Create a new PENDING order from a priced cart snapshot.

        Args:
            items_data: List of dicts with product_id, variant_id,
                        variant_label, quantity, unit_price and optionally
                        menu_id and bundle_id.
            delivery_fee: Fee for delivery orders; forced to 0 for pickup.
        """
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = datetime.now(UTC)
        fee = _money(delivery_fee) if is_delivery else 0.0
        subtotal = _money(sum(item["unit_price"] * item["quantity"] for item in items_data))

        order = cls(
            user_id=user_id,
            restaurant_id=restaurant_id,
            restaurant_name=restaurant_name,
            restaurant_owner_id=restaurant_owner_id,
            items=[OrderItem(**item) for item in items_data],
            subtotal=subtotal,
            delivery_fee=fee,
            total=_money(subtotal + fee),
            is_delivery=is_delivery,
            delivery_address=delivery_address if is_delivery else None,
            payment_method=payment_method,
            notes=notes,
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                user_id=str(user_id),
                restaurant_id=str(restaurant_id),
                restaurant_owner_id=str(restaurant_owner_id) if restaurant_owner_id else None,
                restaurant_name=restaurant_name,
                subtotal=order.subtotal,
                delivery_fee=order.delivery_fee,
                total_amount=order.total,
                item_count=len(items_data),
                items=json.dumps(items_data),
                is_delivery=is_delivery,
                created_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def can_transition(self, target_status):
        return target_status in _VALID_TRANSITIONS.get(OrderStatus(self.status), set())

    def _assert_can_transition(self, target_status):
        """Validate that the current state allows transition to target."""
        current = OrderStatus(self.status)
        if not self.can_transition(target_status):
            raise InvalidStateError(f"Cannot transition order from {current.value} to {target_status.value}")

    @staticmethod
    def role_may_request(role, target_status):
        """Whether ``role`` may ask for ``target_status`` at all."""
        return target_status in ROLE_ALLOWED_TARGETS.get(role, frozenset())

    # -------------------------------------------------------------------
    # Order lifecycle transitions
    # -------------------------------------------------------------------
    def transition_to(self, target_status, role, actor_id=None, reason=None, refund_minimum=None):
        """Move the order to ``target_status`` on behalf of ``role``.

        Raises InvalidStateError when the transition map (or, for a buyer, the
        cancellation window) does not allow it. The status is left untouched
        on failure.
        """
        current = OrderStatus(self.status)
        if (
            role == ActorRole.BUYER
            and target_status == OrderStatus.CANCELLED
            and current not in _BUYER_CANCELLABLE_STATES
        ):
            raise InvalidStateError(f"Order can no longer be cancelled (status {current.value})")
        self._assert_can_transition(target_status)

        now = datetime.now(UTC)
        self.status = target_status.value
        self.updated_at = now
        if target_status == OrderStatus.PAID:
            self.paid_at = now

        self.raise_(
            OrderStatusUpdated(
                order_id=str(self.id),
                user_id=str(self.user_id),
                restaurant_id=str(self.restaurant_id),
                restaurant_owner_id=str(self.restaurant_owner_id) if self.restaurant_owner_id else None,
                previous_status=current.value,
                new_status=target_status.value,
                updated_by=role.value,
                actor_id=str(actor_id) if actor_id else None,
                restaurant_name=self.restaurant_name,
                total_amount=self.total,
                updated_at=now,
            )
        )

        if target_status == OrderStatus.CANCELLED:
            self._record_cancellation(role, actor_id, reason, refund_minimum, now)

    def _record_cancellation(self, role, actor_id, reason, refund_minimum, now):
        self.cancellation_reason = reason
        self.cancelled_by = role.value

        refund_eligible = refund_minimum is not None and self.total >= refund_minimum
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                user_id=str(self.user_id),
                restaurant_id=str(self.restaurant_id),
                restaurant_owner_id=str(self.restaurant_owner_id) if self.restaurant_owner_id else None,
                cancelled_by=role.value,
                actor_id=str(actor_id) if actor_id else None,
                reason=reason,
                refund_eligible=refund_eligible,
                refund_amount=self.total if refund_eligible else 0.0,
                cancelled_at=now,
            )
        )

    def mark_paid(self, paid_at=None):
        """Record a confirmed payment. Called only by payment reconciliation.

        The payment confirmation event is the notification for this change,
        so no status event is raised here.
        """
        self._assert_can_transition(OrderStatus.PAID)
        now = paid_at or datetime.now(UTC)
        self.status = OrderStatus.PAID.value
        self.paid_at = now
        self.updated_at = now

    def hide(self):
        """Soft-remove a finished order from the buyer's history."""
        if OrderStatus(self.status) not in TERMINAL_STATES:
            raise InvalidStateError("Only delivered or cancelled orders can be removed from history")
        if self.hidden_by_buyer:
            return

        self.hidden_by_buyer = True
        self.updated_at = datetime.now(UTC)
        self.raise_(OrderHidden(order_id=str(self.id), user_id=str(self.user_id)))
