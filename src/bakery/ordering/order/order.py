"""Order aggregate (CQRS): line items, totals, payment, delivery and status.

Totals are always derived from the items and the order's own fee and
discount; nothing the client sends is trusted for pricing. The status
lifecycle is forward-only:

    pending -> processing -> preparing -> ready -> out_for_delivery -> delivered -> completed
    pending -> cancelled

An administrator may move an order to any later status in the forward
sequence, skipping steps if needed. Nothing leaves ``completed`` or
``cancelled``, and only a pending order can be cancelled.
"""

import json
import random
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from bakery.domain import bakery
from bakery.errors import InvalidDeliveryAddress, InvalidStateTransition
from bakery.ordering.order.events import OrderCancelled, OrderPlaced, OrderStatusChanged

TAX_RATE = 0.10


class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    E_WALLET = "e_wallet"


class PaymentStatus(Enum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


# Forward sequence; position decides which moves are legal
FORWARD_SEQUENCE = [
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
    OrderStatus.COMPLETED,
]

TERMINAL_STATES = {OrderStatus.COMPLETED, OrderStatus.CANCELLED}

# Display order for listings and stats
STATUS_ORDER = [*FORWARD_SEQUENCE, OrderStatus.CANCELLED]

ADDRESS_FIELDS = ("street", "city", "state", "postal_code", "country")


def generate_order_number(now=None):
    """``ORD-YYMMDD-NNNN``: UTC creation date plus a random four-digit suffix."""
    now = now or datetime.now(UTC)
    return f"ORD-{now:%y%m%d}-{random.randint(0, 9999):04d}"


def compute_totals(line_subtotals, delivery_fee=0.0, discount=0.0):
    """Return ``(subtotal, tax, total)`` rounded to cents."""
    subtotal = round(sum(line_subtotals), 2)
    tax = round(subtotal * TAX_RATE, 2)
    total = round(subtotal + tax + delivery_fee - discount, 2)
    return subtotal, tax, total


def _matches(a, b):
    return abs((a or 0.0) - (b or 0.0)) < 0.005


@bakery.value_object(part_of="Order")
class DeliveryAddress:
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)

    @classmethod
    def build(cls, data):
        """Build an address from a dict, naming every missing or blank field."""
        if not isinstance(data, dict):
            data = {}
        missing = [name for name in ADDRESS_FIELDS if not str(data.get(name) or "").strip()]
        if missing:
            raise InvalidDeliveryAddress(missing)
        return cls(**{name: str(data[name]).strip() for name in ADDRESS_FIELDS})


@bakery.value_object(part_of="Order")
class Payment:
    method = String(required=True, choices=PaymentMethod)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    transaction_id = String(max_length=100)
    paid_amount = Float(min_value=0.0)
    paid_at = DateTime()


@bakery.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=100)  # Display snapshot
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)  # Unit price captured at order time
    subtotal = Float(required=True, min_value=0.0)
    notes = String(max_length=500)


@bakery.aggregate
class Order:
    order_number = String(required=True, max_length=20, unique=True)
    customer_id = Identifier(required=True)
    items = HasMany(OrderItem)
    subtotal = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    delivery_fee = Float(default=0.0, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    total_amount = Float(default=0.0)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment = ValueObject(Payment)
    delivery_address = ValueObject(DeliveryAddress)
    delivery_instructions = String(max_length=500)
    tracking_number = String(max_length=100)
    estimated_delivery_time = DateTime()
    delivered_at = DateTime()
    notes = Text()
    estimated_preparation_time = Integer(min_value=0)  # Minutes
    preparation_started_at = DateTime()
    preparation_completed_at = DateTime()
    cancelled_at = DateTime()
    cancelled_by = Identifier()
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_match_components(self):
        expected = (self.subtotal or 0.0) + (self.tax or 0.0) + (self.delivery_fee or 0.0) - (self.discount or 0.0)
        if not _matches(self.total_amount, expected):
            raise ValidationError({"total_amount": ["Total must equal subtotal + tax + delivery fee - discount"]})

    @invariant.post
    def total_cannot_be_negative(self):
        if (self.total_amount or 0.0) < 0:
            raise ValidationError({"total_amount": ["Order total cannot be negative"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        lines,
        delivery_address,
        payment_method,
        delivery_fee=0.0,
        discount=0.0,
        order_number=None,
        notes=None,
        delivery_instructions=None,
        estimated_preparation_time=None,
    ):
        """Create a pending order.

        Args:
            customer_id: The user placing the order.
            lines: Priced lines, dicts with product_id, product_name, quantity,
                   price and optional notes.
            delivery_address: ``DeliveryAddress`` or a dict with its fields.
            payment_method: One of ``PaymentMethod`` values.
        """
        if not lines:
            raise ValidationError({"items": ["An order must contain at least one item"]})

        if not isinstance(delivery_address, DeliveryAddress):
            delivery_address = DeliveryAddress.build(delivery_address)

        now = datetime.now(UTC)
        order = cls(
            order_number=order_number or generate_order_number(now),
            customer_id=customer_id,
            status=OrderStatus.PENDING.value,
            payment=Payment(method=payment_method, status=PaymentStatus.PENDING.value),
            delivery_address=delivery_address,
            delivery_instructions=delivery_instructions,
            notes=notes,
            estimated_preparation_time=estimated_preparation_time,
            created_at=now,
            updated_at=now,
        )

        with atomic_change(order):
            for line in lines:
                order.add_items(
                    OrderItem(
                        product_id=line["product_id"],
                        product_name=line["product_name"],
                        quantity=line["quantity"],
                        price=line["price"],
                        subtotal=round(line["price"] * line["quantity"], 2),
                        notes=line.get("notes"),
                    )
                )
            order.delivery_fee = delivery_fee or 0.0
            order.discount = discount or 0.0
            order._recalculate_totals()

        return order

    def record_placement(self):
        """Announce the placement once stock for every line is reserved."""
        self.raise_(
            OrderPlaced(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                items=json.dumps(
                    [
                        {"product_id": str(item.product_id), "quantity": item.quantity, "price": item.price}
                        for item in self.items
                    ]
                ),
                subtotal=self.subtotal,
                tax=self.tax,
                delivery_fee=self.delivery_fee,
                discount=self.discount,
                total_amount=self.total_amount,
                payment_method=self.payment.method,
                placed_at=self.created_at,
            )
        )

    # -------------------------------------------------------------------
    # Totals
    # -------------------------------------------------------------------
    def _recalculate_totals(self):
        subtotal, tax, total = compute_totals(
            [item.price * item.quantity for item in self.items],
            self.delivery_fee or 0.0,
            self.discount or 0.0,
        )
        self.subtotal = subtotal
        self.tax = tax
        self.total_amount = total

    def totals_are_consistent(self):
        """Recompute totals from the items and compare with the stored values."""
        subtotal, tax, total = compute_totals(
            [item.price * item.quantity for item in self.items],
            self.delivery_fee or 0.0,
            self.discount or 0.0,
        )
        items_ok = all(_matches(item.subtotal, item.price * item.quantity) for item in self.items)
        return (
            items_ok
            and _matches(self.subtotal, subtotal)
            and _matches(self.tax, tax)
            and _matches(self.total_amount, total)
        )

    # -------------------------------------------------------------------
    # Queries on state
    # -------------------------------------------------------------------
    def is_owned_by(self, user_id):
        return str(self.customer_id) == str(user_id)

    def reservations(self):
        """``(product_id, quantity)`` pairs held in stock for this order."""
        return [(str(item.product_id), item.quantity) for item in self.items]

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def _assert_can_advance(self, target):
        current = OrderStatus(self.status)
        if current in TERMINAL_STATES:
            raise InvalidStateTransition(
                current.value,
                target.value,
                f"Order is {current.value}; no further status changes are allowed",
            )
        if target == OrderStatus.CANCELLED:
            raise InvalidStateTransition(current.value, target.value, "Orders are cancelled through cancellation")
        if FORWARD_SEQUENCE.index(target) <= FORWARD_SEQUENCE.index(current):
            raise InvalidStateTransition(current.value, target.value)

    def advance_to(self, status, changed_by=None):
        """Move the order forward to ``status``."""
        try:
            target = OrderStatus(status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown order status: {status}"]}) from None

        self._assert_can_advance(target)

        now = datetime.now(UTC)
        previous = self.status
        self.status = target.value

        if target == OrderStatus.PREPARING:
            self.preparation_started_at = now
        elif target == OrderStatus.READY:
            self.preparation_started_at = self.preparation_started_at or now
            self.preparation_completed_at = now
        elif target == OrderStatus.DELIVERED:
            self.delivered_at = now

        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=target.value,
                changed_by=str(changed_by) if changed_by else None,
                changed_at=now,
            )
        )

    def assert_cancellable(self):
        if self.status != OrderStatus.PENDING.value:
            raise InvalidStateTransition(
                self.status,
                OrderStatus.CANCELLED.value,
                f"Only pending orders can be cancelled; order is {self.status}",
            )

    def cancel(self, cancelled_by, reason=None):
        """Mark the order cancelled. Stock must already have been released."""
        self.assert_cancellable()

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancelled_at = now
        self.cancelled_by = cancelled_by
        self.cancellation_reason = reason
        self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                cancelled_by=str(cancelled_by),
                reason=reason,
                cancelled_at=now,
            )
        )
