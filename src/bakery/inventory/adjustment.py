"""Stock adjustment against the catalogue.

Every write is a conditional update: the product is read, the domain rule is
applied in memory, and the new values are stored only if the stored stock is
still the value that was read. A write that matches no row means another
request changed the stock in between; the whole step is re-read and retried a
bounded number of times.

The compensating side (``release_with_retry`` / ``release_reservations``) also
retries on transient storage failures (timeouts, dropped connections).
"""

import time
from collections.abc import Callable, Iterable

import structlog
from protean.utils.globals import current_domain, current_uow
from protean.utils.query import Q
from sqlalchemy.exc import OperationalError

from bakery.catalogue.product import Product
from bakery.errors import InsufficientStock, ProductNotFound, StockConflict

MAX_RESERVATION_ATTEMPTS = 3
MAX_RELEASE_ATTEMPTS = 5
RELEASE_BACKOFF_SECONDS = 0.05

TRANSIENT_ERRORS = (ConnectionError, TimeoutError, OperationalError, StockConflict)

logger = structlog.get_logger(__name__)


def fetch_product(product_id) -> Product:
    """Read the stored product, bypassing any aggregate cached in the current unit of work."""
    dao = current_domain.repository_for(Product)._dao
    products = dao.query.filter(id=str(product_id)).all().items
    if not products:
        raise ProductNotFound(str(product_id))
    return products[0]


def _write_if_unchanged(product: Product, observed_stock: int) -> bool:
    dao = current_domain.repository_for(Product)._dao
    updated = dao._update_all(
        Q(id=str(product.id), stock=observed_stock),
        stock=product.stock,
        is_available=product.is_available,
        is_withdrawn=product.is_withdrawn,
        updated_at=product.updated_at,
    )
    return updated == 1


def _publish_events(product: Product) -> None:
    """Hand events raised by the change to the unit of work, or store them directly."""
    if not product._events:
        return
    if current_uow:
        current_uow._add_to_identity_map(product)
        return
    for event in product._events:
        current_domain.event_store.store.append(event)
    product._events = []


def adjust_product(
    product_id,
    change: Callable[[Product], None],
    attempts: int,
    on_exhausted: Callable[[Product], Exception],
) -> Product:
    """Apply ``change`` to the stored product with a conditional write.

    ``change`` runs the domain rule and may raise. When every attempt hits a
    concurrent write, the error built by ``on_exhausted`` is raised.
    """
    for attempt in range(1, attempts + 1):
        product = fetch_product(product_id)
        observed_stock = product.stock
        change(product)

        if _write_if_unchanged(product, observed_stock):
            _publish_events(product)
            return product

        logger.warning(
            "Stock changed during conditional write, retrying",
            product_id=str(product_id),
            observed_stock=observed_stock,
            attempt=attempt,
        )

    raise on_exhausted(fetch_product(product_id))


def reserve_stock(product_id, quantity: int) -> Product:
    """Decrement stock by ``quantity``, or fail with ``InsufficientStock``."""
    product = adjust_product(
        product_id,
        lambda p: p.reserve(quantity),
        MAX_RESERVATION_ATTEMPTS,
        lambda latest: InsufficientStock(str(latest.id), quantity, latest.stock, latest.name),
    )
    logger.debug("Stock reserved", product_id=str(product_id), quantity=quantity, stock=product.stock)
    return product


def release_stock(product_id, quantity: int) -> Product:
    """Increment stock by ``quantity``. Restoring stock is always legal."""
    product = adjust_product(
        product_id,
        lambda p: p.release(quantity),
        MAX_RELEASE_ATTEMPTS,
        lambda latest: StockConflict(str(latest.id), MAX_RELEASE_ATTEMPTS),
    )
    logger.debug("Stock released", product_id=str(product_id), quantity=quantity, stock=product.stock)
    return product


def release_with_retry(product_id, quantity: int, attempts: int | None = None, backoff: float | None = None) -> Product:
    """Release stock, retrying transient storage failures with exponential backoff."""
    attempts = attempts or MAX_RELEASE_ATTEMPTS
    delay = RELEASE_BACKOFF_SECONDS if backoff is None else backoff

    for attempt in range(1, attempts + 1):
        try:
            return release_stock(product_id, quantity)
        except TRANSIENT_ERRORS as exc:
            if attempt == attempts:
                logger.error(
                    "Giving up on stock release",
                    product_id=str(product_id),
                    quantity=quantity,
                    attempts=attempts,
                    error=str(exc),
                )
                raise
            logger.warning(
                "Transient failure releasing stock, retrying",
                product_id=str(product_id),
                quantity=quantity,
                attempt=attempt,
                error=str(exc),
            )
            time.sleep(delay)
            delay *= 2


def release_reservations(reservations: Iterable[tuple[str, int]]) -> None:
    """Release every ``(product_id, quantity)`` pair.

    All pairs are attempted even when one fails; the first failure is raised
    once the rest have been released.
    """
    failure = None
    for product_id, quantity in reservations:
        try:
            release_with_retry(product_id, quantity)
        except Exception as exc:
            logger.error("Could not release reservation", product_id=str(product_id), quantity=quantity)
            if failure is None:
                failure = exc

    if failure is not None:
        raise failure
