"""Pydantic request/response schemas for the orders API.

These are external contracts (camelCase JSON) kept separate from the
internal Protean commands and aggregates.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(CamelModel):
    # Optional here so the domain can name every missing field in one error
    street: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None


class RequestedItemSchema(CamelModel):
    product: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    notes: str | None = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------
class PlaceOrderRequest(CamelModel):
    items: list[RequestedItemSchema] = Field(min_length=1)
    delivery_address: AddressSchema
    payment_method: str
    notes: str | None = None
    delivery_instructions: str | None = Field(default=None, max_length=500)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "items": [{"product": "prod-001", "quantity": 2}],
                    "deliveryAddress": {
                        "street": "12 Baker St",
                        "city": "Springfield",
                        "state": "IL",
                        "postalCode": "62701",
                        "country": "US",
                    },
                    "paymentMethod": "cash",
                }
            ]
        },
    )


class UpdateStatusRequest(CamelModel):
    status: str


class CancelOrderRequest(CamelModel):
    reason: str | None = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class OrderItemResponse(CamelModel):
    product_id: str
    product_name: str
    quantity: int
    price: float
    subtotal: float
    notes: str | None = None


class PaymentResponse(CamelModel):
    method: str
    status: str
    transaction_id: str | None = None
    paid_amount: float | None = None
    paid_at: datetime | None = None


class DeliveryAddressResponse(CamelModel):
    street: str
    city: str
    state: str
    postal_code: str
    country: str


class OrderResponse(CamelModel):
    id: str
    order_number: str
    customer_id: str
    items: list[OrderItemResponse]
    subtotal: float
    tax: float
    delivery_fee: float
    discount: float
    total_amount: float
    status: str
    payment: PaymentResponse | None = None
    delivery_address: DeliveryAddressResponse | None = None
    delivery_instructions: str | None = None
    tracking_number: str | None = None
    estimated_delivery_time: datetime | None = None
    delivered_at: datetime | None = None
    notes: str | None = None
    estimated_preparation_time: int | None = None
    preparation_started_at: datetime | None = None
    preparation_completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    cancellation_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        payment = None
        if order.payment:
            payment = PaymentResponse(
                method=order.payment.method,
                status=order.payment.status,
                transaction_id=order.payment.transaction_id,
                paid_amount=order.payment.paid_amount,
                paid_at=order.payment.paid_at,
            )

        address = None
        if order.delivery_address:
            address = DeliveryAddressResponse(
                street=order.delivery_address.street,
                city=order.delivery_address.city,
                state=order.delivery_address.state,
                postal_code=order.delivery_address.postal_code,
                country=order.delivery_address.country,
            )

        return cls(
            id=str(order.id),
            order_number=order.order_number,
            customer_id=str(order.customer_id),
            items=[
                OrderItemResponse(
                    product_id=str(item.product_id),
                    product_name=item.product_name,
                    quantity=item.quantity,
                    price=item.price,
                    subtotal=item.subtotal,
                    notes=item.notes,
                )
                for item in order.items
            ],
            subtotal=order.subtotal,
            tax=order.tax,
            delivery_fee=order.delivery_fee or 0.0,
            discount=order.discount or 0.0,
            total_amount=order.total_amount,
            status=order.status,
            payment=payment,
            delivery_address=address,
            delivery_instructions=order.delivery_instructions,
            tracking_number=order.tracking_number,
            estimated_delivery_time=order.estimated_delivery_time,
            delivered_at=order.delivered_at,
            notes=order.notes,
            estimated_preparation_time=order.estimated_preparation_time,
            preparation_started_at=order.preparation_started_at,
            preparation_completed_at=order.preparation_completed_at,
            cancelled_at=order.cancelled_at,
            cancelled_by=str(order.cancelled_by) if order.cancelled_by else None,
            cancellation_reason=order.cancellation_reason,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class PaginationResponse(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class OrderListResponse(CamelModel):
    orders: list[OrderResponse]
    pagination: PaginationResponse


class StatusStatResponse(CamelModel):
    status: str
    count: int
    total_amount: float


class StatsResponse(CamelModel):
    stats: list[StatusStatResponse]
