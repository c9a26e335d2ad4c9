"""Bakery domain: product catalogue, stock reservation and order management.

Orders are state-stored (CQRS) aggregates. Stock lives on the catalogue's
Product aggregate and is only ever adjusted through conditional updates,
so concurrent orders for the same product cannot both claim the last unit.
"""

import structlog
from protean.domain import Domain

bakery = Domain(name="bakery")

logger = structlog.get_logger(__name__)
