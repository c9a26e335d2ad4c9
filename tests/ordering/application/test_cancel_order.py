"""Tests for order cancellation and its compensating stock release."""

import pytest
from bakery.errors import AuthenticationError, AuthorizationError, InvalidStateTransition, OrderNotFound, StockConflict
from bakery.inventory import adjustment
from bakery.ordering.order import cancellation
from bakery.ordering.order.cancellation import CancelOrder, cancel_order
from bakery.ordering.order.order import Order, OrderStatus
from protean import current_domain


@pytest.fixture(autouse=True)
def _no_backoff(monkeypatch):
    monkeypatch.setattr(adjustment, "RELEASE_BACKOFF_SECONDS", 0)


def _reload(order):
    return current_domain.repository_for(Order).get(str(order.id))


class TestCancelOrder:
    def test_owner_cancels_pending_order(self, place, customer):
        order = place(customer_id=customer.user_id)
        cancel_order(order.id, customer, reason="Ordered by mistake")

        stored = _reload(order)
        assert stored.status == OrderStatus.CANCELLED.value
        assert stored.cancellation_reason == "Ordered by mistake"
        assert str(stored.cancelled_by) == customer.user_id
        assert stored.cancelled_at is not None

    def test_cancel_restores_stock(self, place, add_product, stock_of, customer):
        loaf = add_product(name="Sourdough", stock=5)
        bun = add_product(name="Cinnamon Bun", stock=4)
        order = place(
            customer_id=customer.user_id,
            items=[{"product_id": loaf, "quantity": 2}, {"product_id": bun, "quantity": 3}],
        )
        assert stock_of(loaf) == 3
        assert stock_of(bun) == 1

        cancel_order(order.id, customer)

        assert stock_of(loaf) == 5
        assert stock_of(bun) == 4

    def test_cancel_makes_sold_out_product_available_again(self, place, add_product, customer):
        product_id = add_product(stock=1)
        order = place(customer_id=customer.user_id, items=[{"product_id": product_id, "quantity": 1}])
        assert adjustment.fetch_product(product_id).is_available is False

        cancel_order(order.id, customer)

        assert adjustment.fetch_product(product_id).is_available is True

    def test_admin_cancels_any_order(self, place, admin):
        order = place(customer_id="cust-001")
        cancel_order(order.id, admin)
        assert _reload(order).status == OrderStatus.CANCELLED.value

    def test_other_customer_is_forbidden(self, place, add_product, stock_of, other_customer):
        product_id = add_product(stock=5)
        order = place(customer_id="cust-001", items=[{"product_id": product_id, "quantity": 2}])

        with pytest.raises(AuthorizationError):
            cancel_order(order.id, other_customer)

        assert _reload(order).status == OrderStatus.PENDING.value
        assert stock_of(product_id) == 3

    def test_non_pending_order_cannot_be_cancelled(self, place, add_product, stock_of, admin):
        product_id = add_product(stock=5)
        order = _reload(place(items=[{"product_id": product_id, "quantity": 2}]))
        order.advance_to("processing")
        current_domain.repository_for(Order).add(order)

        with pytest.raises(InvalidStateTransition):
            cancel_order(order.id, admin)

        assert _reload(order).status == OrderStatus.PROCESSING.value
        assert stock_of(product_id) == 3

    def test_cancel_twice_releases_once(self, place, add_product, stock_of, customer):
        product_id = add_product(stock=5)
        order = place(customer_id=customer.user_id, items=[{"product_id": product_id, "quantity": 2}])
        cancel_order(order.id, customer)

        with pytest.raises(InvalidStateTransition):
            cancel_order(order.id, customer)
        assert stock_of(product_id) == 5

    def test_unknown_order(self, admin):
        with pytest.raises(OrderNotFound):
            cancel_order("no-such-order", admin)


class TestFailedRelease:
    def test_release_failure_leaves_order_pending(self, place, add_product, stock_of, customer, monkeypatch):
        loaf = add_product(name="Sourdough", stock=5)
        bun = add_product(name="Cinnamon Bun", stock=5)
        order = place(
            customer_id=customer.user_id,
            items=[{"product_id": loaf, "quantity": 2}, {"product_id": bun, "quantity": 1}],
        )
        real_release = cancellation.release_with_retry

        def release_or_fail(product_id, quantity):
            if product_id == bun:
                raise StockConflict(product_id, 5)
            return real_release(product_id, quantity)

        monkeypatch.setattr(cancellation, "release_with_retry", release_or_fail)

        with pytest.raises(StockConflict):
            cancel_order(order.id, customer)

        assert _reload(order).status == OrderStatus.PENDING.value
        # The release that did go through was reversed
        assert stock_of(loaf) == 3
        assert stock_of(bun) == 4


class TestCancelOrderCommand:
    def test_command_cancels_through_handler(self, place, stock_of, add_product):
        product_id = add_product(stock=5)
        order = place(customer_id="cust-001", items=[{"product_id": product_id, "quantity": 2}])

        current_domain.process(
            CancelOrder(order_id=str(order.id), actor_id="cust-001", actor_role="user", reason="Too late"),
            asynchronous=False,
        )

        assert _reload(order).status == OrderStatus.CANCELLED.value
        assert stock_of(product_id) == 5

    def test_unknown_role_is_unauthenticated(self, place):
        order = place(customer_id="cust-001")
        with pytest.raises(AuthenticationError):
            current_domain.process(
                CancelOrder(order_id=str(order.id), actor_id="cust-001", actor_role="baker"),
                asynchronous=False,
            )
