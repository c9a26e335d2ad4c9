"""Order placement: command, handler and the placement workflow.

Placement spans two aggregates. The order is persisted first, then stock is
reserved item by item. If any reservation fails, the reservations already
made are released and the order is deleted before the error propagates, so
a pending order never exists with under-reserved stock. `OrderPlaced` is
raised only after every reservation has succeeded.
"""

import json

import structlog
from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from bakery.domain import bakery
from bakery.errors import BakeryError, InsufficientStock, ProductUnavailable, ValidationError
from bakery.inventory.adjustment import fetch_product, release_reservations, reserve_stock
from bakery.ordering.order.order import DeliveryAddress, Order, PaymentMethod, generate_order_number

MAX_ORDER_NUMBER_ATTEMPTS = 5

logger = structlog.get_logger(__name__)


@bakery.command(part_of="Order")
class PlaceOrder:
    customer_id: Identifier(required=True)
    items: Text(required=True)  # JSON: [{product_id, quantity, notes?}]
    delivery_address: Text(required=True)  # JSON: {street, city, state, postal_code, country}
    payment_method: String(required=True, choices=PaymentMethod)
    delivery_fee: Float(default=0.0, min_value=0.0)
    discount: Float(default=0.0, min_value=0.0)
    notes: Text()
    delivery_instructions: String(max_length=500)


def _merge_requested_items(requested):
    """Validate request lines and merge repeated products into one line."""
    if not isinstance(requested, list) or not requested:
        raise ValidationError("An order must contain at least one item")

    merged = {}
    for index, line in enumerate(requested):
        if not isinstance(line, dict):
            raise ValidationError(f"Item {index + 1} is malformed")
        product_id = str(line.get("product_id") or "").strip()
        quantity = line.get("quantity")
        if not product_id:
            raise ValidationError(f"Item {index + 1} is missing a product")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise ValidationError(f"Item {index + 1} must have a quantity of at least 1", product_id=product_id)

        if product_id in merged:
            merged[product_id]["quantity"] += quantity
        else:
            merged[product_id] = {"product_id": product_id, "quantity": quantity, "notes": line.get("notes")}
    return list(merged.values())


def _price_lines(requested):
    """Check each line against the catalogue and capture the current price.

    Returns the priced lines and the longest preparation time among them.
    """
    lines = []
    preparation_time = 0
    for line in requested:
        product = fetch_product(line["product_id"])
        if product.is_withdrawn:
            raise ProductUnavailable(str(product.id), product.name)
        if product.stock < line["quantity"]:
            raise InsufficientStock(str(product.id), line["quantity"], product.stock, product.name)

        lines.append(
            {
                "product_id": str(product.id),
                "product_name": product.name,
                "quantity": line["quantity"],
                "price": product.price,
                "notes": line.get("notes"),
            }
        )
        preparation_time = max(preparation_time, product.preparation_time or 0)
    return lines, preparation_time


def _unique_order_number():
    dao = current_domain.repository_for(Order)._dao
    for _ in range(MAX_ORDER_NUMBER_ATTEMPTS):
        candidate = generate_order_number()
        if not dao.query.filter(order_number=candidate).all().items:
            return candidate
    raise BakeryError("Could not allocate a unique order number")


def _reserve_stock_for(order):
    """Reserve every line; on failure undo earlier reservations and discard the order."""
    reserved = []
    try:
        for product_id, quantity in order.reservations():
            reserve_stock(product_id, quantity)
            reserved.append((product_id, quantity))
    except Exception as exc:
        logger.warning(
            "Rolling back order placement",
            order_id=str(order.id),
            order_number=order.order_number,
            released=len(reserved),
            error=str(exc),
        )
        try:
            release_reservations(reserved)
        finally:
            current_domain.repository_for(Order)._dao.delete(order)
        raise


def place_order(
    customer_id,
    items,
    delivery_address,
    payment_method,
    delivery_fee=0.0,
    discount=0.0,
    notes=None,
    delivery_instructions=None,
):
    """Validate, price, persist and reserve stock for a new order.

    ``items`` is a list of ``{product_id, quantity, notes?}`` dicts and
    ``delivery_address`` a dict of address fields.
    """
    address = DeliveryAddress.build(delivery_address)
    requested = _merge_requested_items(items)
    lines, preparation_time = _price_lines(requested)

    order = Order.place(
        customer_id=customer_id,
        lines=lines,
        delivery_address=address,
        payment_method=payment_method,
        delivery_fee=delivery_fee,
        discount=discount,
        order_number=_unique_order_number(),
        notes=notes,
        delivery_instructions=delivery_instructions,
        estimated_preparation_time=preparation_time,
    )
    repository = current_domain.repository_for(Order)
    repository.add(order)

    _reserve_stock_for(order)

    order.record_placement()
    repository.add(order)

    logger.info(
        "Order placed",
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=str(customer_id),
        total_amount=order.total_amount,
    )
    return order


@bakery.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place(self, command):
        try:
            items = json.loads(command.items)
            delivery_address = json.loads(command.delivery_address)
        except (json.JSONDecodeError, TypeError) as exc:
            raise ValidationError(f"Malformed order payload: {exc}") from exc

        order = place_order(
            customer_id=command.customer_id,
            items=items,
            delivery_address=delivery_address,
            payment_method=command.payment_method,
            delivery_fee=command.delivery_fee or 0.0,
            discount=command.discount or 0.0,
            notes=command.notes,
            delivery_instructions=command.delivery_instructions,
        )
        return str(order.id)
