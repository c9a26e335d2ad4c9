"""Administrative status updates along the order lifecycle."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from bakery.access import Actor
from bakery.domain import bakery
from bakery.ordering.order.cancellation import cancel_order
from bakery.ordering.order.order import Order, OrderStatus
from bakery.ordering.order.queries import load_order

logger = structlog.get_logger(__name__)


@bakery.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=30)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)


def update_order_status(order_id, status, actor: Actor) -> Order:
    """Move an order forward. Setting ``cancelled`` goes through cancellation."""
    actor.require_admin("update order status")

    if status == OrderStatus.CANCELLED.value:
        return cancel_order(order_id, actor)

    order = load_order(order_id)
    previous = order.status
    order.advance_to(status, changed_by=actor.user_id)
    current_domain.repository_for(Order).add(order)

    logger.info(
        "Order status updated",
        order_id=str(order.id),
        previous_status=previous,
        new_status=order.status,
        changed_by=actor.user_id,
    )
    return order


@bakery.command_handler(part_of=Order)
class UpdateOrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        order = update_order_status(command.order_id, command.status, actor)
        return str(order.id)
