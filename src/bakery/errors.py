"""Error taxonomy surfaced to callers.

Every error carries a stable ``kind`` and a human-readable message. The HTTP
layer renders them as ``{"error": {"kind": ..., "message": ...}}`` with the
status code declared on the class.
"""

from typing import Any


class BakeryError(Exception):
    """Base class for all business errors raised by the bakery service."""

    kind = "BakeryError"
    status_code = 500

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, **self.details}


class ValidationError(BakeryError):
    kind = "ValidationError"
    status_code = 400


class InvalidDeliveryAddress(ValidationError):
    kind = "InvalidDeliveryAddress"

    def __init__(self, missing_fields: list[str]) -> None:
        super().__init__(
            f"Delivery address is missing required fields: {', '.join(missing_fields)}",
            missing_fields=missing_fields,
        )


class InsufficientStock(ValidationError):
    kind = "InsufficientStock"

    def __init__(self, product_id: str, requested: int, available: int, product_name: str | None = None) -> None:
        label = product_name or product_id
        super().__init__(
            f"Insufficient stock for product {label}: requested {requested}, available {available}",
            product_id=str(product_id),
            requested=requested,
            available=available,
        )
        self.product_id = str(product_id)


class ProductUnavailable(ValidationError):
    kind = "ProductUnavailable"

    def __init__(self, product_id: str, product_name: str | None = None) -> None:
        label = product_name or product_id
        super().__init__(f"Product {label} is not available", product_id=str(product_id))
        self.product_id = str(product_id)


class InvalidStateTransition(BakeryError):
    kind = "InvalidStateTransition"
    status_code = 400

    def __init__(self, current: str, target: str, reason: str | None = None) -> None:
        message = reason or f"Cannot transition order from {current} to {target}"
        super().__init__(message, current_status=current, target_status=target)


class AuthenticationError(BakeryError):
    kind = "AuthenticationError"
    status_code = 401


class AuthorizationError(BakeryError):
    kind = "AuthorizationError"
    status_code = 403


class NotFoundError(BakeryError):
    kind = "NotFoundError"
    status_code = 404


class ProductNotFound(NotFoundError):
    kind = "ProductNotFound"

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product {product_id} not found", product_id=str(product_id))
        self.product_id = str(product_id)


class OrderNotFound(NotFoundError):
    kind = "OrderNotFound"

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order {order_id} not found", order_id=str(order_id))


class StockConflict(BakeryError):
    """Stock kept changing underneath a conditional update until attempts ran out."""

    kind = "StockConflict"
    status_code = 409

    def __init__(self, product_id: str, attempts: int) -> None:
        super().__init__(
            f"Stock for product {product_id} changed concurrently; gave up after {attempts} attempts",
            product_id=str(product_id),
        )
        self.product_id = str(product_id)
