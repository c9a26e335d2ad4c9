"""Order cancellation: command, handler and the compensating stock release."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from bakery.access import Actor
from bakery.domain import bakery
from bakery.inventory.adjustment import release_with_retry, reserve_stock
from bakery.ordering.order.order import Order
from bakery.ordering.order.queries import load_order

logger = structlog.get_logger(__name__)


@bakery.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    reason = String(max_length=500)


def _undo_releases(order, released):
    for product_id, quantity in released:
        try:
            reserve_stock(product_id, quantity)
        except Exception as exc:
            logger.error(
                "Could not re-reserve stock after failed cancellation",
                order_id=str(order.id),
                product_id=product_id,
                quantity=quantity,
                error=str(exc),
            )


def cancel_order(order_id, actor: Actor, reason=None) -> Order:
    """Release the order's stock, then mark it cancelled.

    If any release fails after its retries, the releases already applied are
    reversed and the order stays pending.
    """
    order = load_order(order_id)
    actor.require_access(order, "cancel this order")
    order.assert_cancellable()

    released = []
    try:
        for product_id, quantity in order.reservations():
            release_with_retry(product_id, quantity)
            released.append((product_id, quantity))
    except Exception:
        logger.error(
            "Stock release failed, order left pending",
            order_id=str(order.id),
            released=len(released),
        )
        _undo_releases(order, released)
        raise

    order.cancel(cancelled_by=actor.user_id, reason=reason)
    current_domain.repository_for(Order).add(order)

    logger.info(
        "Order cancelled",
        order_id=str(order.id),
        order_number=order.order_number,
        cancelled_by=actor.user_id,
    )
    return order


@bakery.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        order = cancel_order(command.order_id, actor, reason=command.reason)
        return str(order.id)
