"""FastAPI routes for orders.

Handlers are plain functions so FastAPI runs them in its threadpool; stock
release retries back off with a blocking sleep.
"""

import json

from fastapi import APIRouter, Depends, Query
from protean.utils.globals import current_domain

from bakery.access import Actor
from bakery.api.dependencies import current_actor, get_settings
from bakery.api.schemas import (
    CancelOrderRequest,
    OrderListResponse,
    OrderResponse,
    PaginationResponse,
    PlaceOrderRequest,
    StatsResponse,
    StatusStatResponse,
    UpdateStatusRequest,
)
from bakery.ordering.order.cancellation import CancelOrder
from bakery.ordering.order.lifecycle import UpdateOrderStatus
from bakery.ordering.order.placement import PlaceOrder
from bakery.ordering.order.queries import get_order, list_orders, load_order, order_stats
from bakery.settings import BakerySettings

order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
def place_order(
    body: PlaceOrderRequest,
    actor: Actor = Depends(current_actor),
    settings: BakerySettings = Depends(get_settings),
) -> OrderResponse:
    command = PlaceOrder(
        customer_id=actor.user_id,
        items=json.dumps(
            [{"product_id": item.product, "quantity": item.quantity, "notes": item.notes} for item in body.items]
        ),
        delivery_address=json.dumps(body.delivery_address.model_dump()),
        payment_method=body.payment_method,
        delivery_fee=settings.delivery_fee,
        notes=body.notes,
        delivery_instructions=body.delivery_instructions,
    )
    order_id = current_domain.process(command, asynchronous=False)
    return OrderResponse.from_order(load_order(order_id))


@order_router.get("", response_model=OrderListResponse)
def get_orders(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    actor: Actor = Depends(current_actor),
    settings: BakerySettings = Depends(get_settings),
) -> OrderListResponse:
    orders, pagination = list_orders(
        actor,
        page=page,
        limit=limit or settings.default_page_size,
        max_limit=settings.max_page_size,
    )
    return OrderListResponse(
        orders=[OrderResponse.from_order(order) for order in orders],
        pagination=PaginationResponse(**pagination.to_dict()),
    )


# Declared before /{order_id} so "stats" is not read as an order id
@order_router.get("/stats", response_model=StatsResponse)
def get_order_stats(actor: Actor = Depends(current_actor)) -> StatsResponse:
    return StatsResponse(stats=[StatusStatResponse(**row) for row in order_stats(actor)])


@order_router.get("/{order_id}", response_model=OrderResponse)
def get_single_order(order_id: str, actor: Actor = Depends(current_actor)) -> OrderResponse:
    return OrderResponse.from_order(get_order(order_id, actor))


@order_router.patch("/{order_id}", response_model=OrderResponse)
def update_order_status(
    order_id: str,
    body: UpdateStatusRequest,
    actor: Actor = Depends(current_actor),
) -> OrderResponse:
    command = UpdateOrderStatus(
        order_id=order_id,
        status=body.status,
        actor_id=actor.user_id,
        actor_role=actor.role.value,
    )
    current_domain.process(command, asynchronous=False)
    return OrderResponse.from_order(load_order(order_id))


@order_router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    actor: Actor = Depends(current_actor),
) -> OrderResponse:
    command = CancelOrder(
        order_id=order_id,
        actor_id=actor.user_id,
        actor_role=actor.role.value,
        reason=body.reason if body else None,
    )
    current_domain.process(command, asynchronous=False)
    return OrderResponse.from_order(load_order(order_id))
