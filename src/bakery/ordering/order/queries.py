"""Read side for orders: single lookups, paginated listings and status stats."""

import math
from dataclasses import dataclass

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from bakery.access import Actor
from bakery.errors import OrderNotFound, ValidationError
from bakery.ordering.order.order import STATUS_ORDER, Order

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
STATS_BATCH_SIZE = 100


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "total_pages": self.total_pages,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }


def load_order(order_id) -> Order:
    try:
        return current_domain.repository_for(Order).get(str(order_id))
    except ObjectNotFoundError:
        raise OrderNotFound(str(order_id)) from None


def get_order(order_id, actor: Actor) -> Order:
    """Fetch one order; only its owner or an administrator may read it."""
    order = load_order(order_id)
    actor.require_access(order, "view this order")
    return order


def _scoped_query(actor: Actor):
    query = current_domain.repository_for(Order)._dao.query
    if not actor.is_admin:
        query = query.filter(customer_id=actor.user_id)
    return query


def list_orders(actor: Actor, page: int = 1, limit: int = DEFAULT_PAGE_SIZE, max_limit: int = MAX_PAGE_SIZE):
    """Newest-first page of orders visible to ``actor``.

    Returns ``(orders, pagination)``.
    """
    if page < 1:
        raise ValidationError("page must be at least 1")
    if limit < 1 or limit > max_limit:
        raise ValidationError(f"limit must be between 1 and {max_limit}")

    results = _scoped_query(actor).order_by("-created_at").offset((page - 1) * limit).limit(limit).all()
    return results.items, Pagination(page=page, limit=limit, total=results.total)


def order_stats(actor: Actor) -> list[dict]:
    """Count and revenue per status, over the orders visible to ``actor``.

    Only statuses with at least one order are listed, in lifecycle order.
    """
    buckets = {}
    offset = 0
    while True:
        results = _scoped_query(actor).order_by("created_at").offset(offset).limit(STATS_BATCH_SIZE).all()
        for order in results.items:
            bucket = buckets.setdefault(order.status, {"count": 0, "total_amount": 0.0})
            bucket["count"] += 1
            bucket["total_amount"] += order.total_amount or 0.0

        offset += len(results.items)
        if not results.items or offset >= results.total:
            break

    return [
        {
            "status": status.value,
            "count": buckets[status.value]["count"],
            "total_amount": round(buckets[status.value]["total_amount"], 2),
        }
        for status in STATUS_ORDER
        if status.value in buckets
    ]
