"""Buyer order history — soft removal of finished orders."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import ForbiddenError
from ordering.order.order import Order


@ordering.command(part_of="Order")
class HideOrder:
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class HideOrderHandler:
    @handle(HideOrder)
    def hide_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if str(order.user_id) != str(command.user_id):
            raise ForbiddenError()
        order.hide()
        repo.add(order)
