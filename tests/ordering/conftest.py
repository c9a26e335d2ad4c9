"""Shared fixtures for ordering tests."""

import pytest


@pytest.fixture()
def place(add_product, address):
    """Factory: place an order for ``customer_id`` and return it.

    Without ``items`` a fresh product is added and one unit of it ordered.
    """
    from bakery.ordering.order.placement import place_order

    def _place(customer_id="cust-001", items=None, **kwargs):
        if items is None:
            items = [{"product_id": add_product(stock=10), "quantity": 1}]
        return place_order(
            customer_id,
            items,
            kwargs.pop("delivery_address", address),
            kwargs.pop("payment_method", "cash"),
            **kwargs,
        )

    return _place
