"""Order status transitions requested by the buyer or the restaurant operator."""

from protean import handle
from protean.exceptions import InvalidStateError, ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering import settings
from ordering.domain import logger, ordering
from ordering.errors import ForbiddenError
from ordering.order.order import ActorRole, Order, OrderStatus
from ordering.projections.restaurants import Restaurant


@ordering.command(part_of="Order")
class AdvanceOrderStatus:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    new_status = String(required=True, max_length=20)
    reason = String(max_length=500)


def restaurant_owner_of(restaurant_id):
    """Current owner of a restaurant, read live so ownership changes apply."""
    try:
        return str(current_domain.repository_for(Restaurant).get(restaurant_id).owner_id)
    except ObjectNotFoundError:
        return None


def resolve_actor_role(order, actor_id):
    """The role ``actor_id`` plays on ``order``.

    An owner ordering from their own restaurant acts as the operator.
    """
    if restaurant_owner_of(order.restaurant_id) == str(actor_id):
        return ActorRole.OPERATOR
    if str(order.user_id) == str(actor_id):
        return ActorRole.BUYER
    raise ForbiddenError()


def parse_status(value):
    try:
        return OrderStatus(str(value).upper())
    except ValueError:
        raise ValidationError({"new_status": [f"Unknown order status: {value}"]})


@ordering.command_handler(part_of=Order)
class AdvanceOrderStatusHandler:
    @handle(AdvanceOrderStatus)
    def advance_order_status(self, command):
        target = parse_status(command.new_status)

        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        role = resolve_actor_role(order, command.actor_id)
        if not Order.role_may_request(role, target):
            raise InvalidStateError(f"A {role.value} cannot set an order to {target.value}")

        previous = order.status
        order.transition_to(
            target,
            role=role,
            actor_id=command.actor_id,
            reason=command.reason,
            refund_minimum=settings.refund_minimum_amount(),
        )
        repo.add(order)

        logger.info(
            "Order status updated",
            order_id=str(order.id),
            previous_status=previous,
            new_status=order.status,
            role=role.value,
        )
        return order.status
