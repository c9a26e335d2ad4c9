"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, String, Text

from bakery.domain import bakery


@bakery.event(part_of="Order")
class OrderPlaced:
    """A customer placed an order and its stock was reserved."""

    __version__ = 1

    order_id: Identifier(required=True)
    order_number: String(required=True)
    customer_id: Identifier(required=True)
    items: Text(required=True)  # JSON: [{product_id, quantity, price}]
    subtotal: Float(required=True)
    tax: Float(required=True)
    delivery_fee: Float()
    discount: Float()
    total_amount: Float(required=True)
    payment_method: String(required=True)
    placed_at: DateTime(required=True)


@bakery.event(part_of="Order")
class OrderStatusChanged:
    """An administrator moved the order forward in its lifecycle."""

    __version__ = 1

    order_id: Identifier(required=True)
    previous_status: String(required=True)
    new_status: String(required=True)
    changed_by: Identifier()
    changed_at: DateTime(required=True)


@bakery.event(part_of="Order")
class OrderCancelled:
    """A pending order was cancelled and its stock restored."""

    __version__ = 1

    order_id: Identifier(required=True)
    order_number: String(required=True)
    cancelled_by: Identifier(required=True)
    reason: String()
    cancelled_at: DateTime(required=True)
