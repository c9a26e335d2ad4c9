"""Shared BDD fixtures and step definitions for ordering."""

import json

import pytest
from bakery.errors import BakeryError
from bakery.inventory.adjustment import fetch_product, reserve_stock
from bakery.ordering.order.lifecycle import UpdateOrderStatus
from bakery.ordering.order.order import Order
from bakery.ordering.order.placement import PlaceOrder
from protean import current_domain
from pytest_bdd import given, parsers, then

ADDRESS = {
    "street": "12 Baker St",
    "city": "Springfield",
    "state": "IL",
    "postal_code": "62701",
    "country": "US",
}


@pytest.fixture()
def catalogue():
    """Product ids by name."""
    return {}


@pytest.fixture()
def outcome():
    """Placed order ids and the last business error, in step order."""
    return {"order_ids": [], "error": None}


@pytest.fixture()
def submit_order(outcome):
    """Place an order through the command, recording its id or the business error."""

    def _place(customer_id, lines, delivery_fee=0.0):
        try:
            order_id = current_domain.process(
                PlaceOrder(
                    customer_id=customer_id,
                    items=json.dumps([{"product_id": pid, "quantity": qty} for pid, qty in lines]),
                    delivery_address=json.dumps(ADDRESS),
                    payment_method="cash",
                    delivery_fee=delivery_fee,
                ),
                asynchronous=False,
            )
        except BakeryError as exc:
            outcome["error"] = exc
        else:
            outcome["order_ids"].append(order_id)

    return _place


@pytest.fixture()
def current_order(outcome):
    """Load the most recently placed order."""

    def _current():
        return current_domain.repository_for(Order).get(outcome["order_ids"][-1])

    return _current


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced {price:f} with {stock:d} in stock'))
def _(add_product, catalogue, name, price, stock):
    catalogue[name] = add_product(name=name, price=price, stock=stock)


@given(parsers.cfparse('customer "{customer_id}" has ordered {quantity:d} of "{name}"'))
def _(catalogue, outcome, submit_order, customer_id, quantity, name):
    submit_order(customer_id, [(catalogue[name], quantity)])
    assert outcome["error"] is None


@given(parsers.cfparse('"{name}" has been sold down to {stock:d} in stock'))
def _(catalogue, name, stock):
    product_id = catalogue[name]
    reserve_stock(product_id, fetch_product(product_id).stock - stock)


@given(parsers.cfparse('an administrator moves the order to "{status}"'))
def _(outcome, status):
    current_domain.process(
        UpdateOrderStatus(
            order_id=outcome["order_ids"][-1],
            status=status,
            actor_id="admin-001",
            actor_role="admin",
        ),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order is "{status}"'))
def _(current_order, status):
    assert current_order().status == status


@then(parsers.cfparse('"{name}" has {stock:d} in stock'))
def _(catalogue, name, stock):
    assert fetch_product(catalogue[name]).stock == stock


@then(parsers.cfparse('the request fails with "{kind}"'))
def _(outcome, kind):
    assert outcome["error"] is not None
    assert outcome["error"].kind == kind
