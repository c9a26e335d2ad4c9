import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Fetch and activate the domain by pushing the associated domain_context. The activated domain can then be referred to elsewhere as `current_domain`
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from bakery.domain import bakery

    bakery.init()
    bakery.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path or "/bdd/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session", autouse=True)
def setup_db(request):
    from bakery.domain import bakery
    from bakery.utils.db import drop_db, setup_db

    setup_db(bakery)

    yield

    drop_db(bakery)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from protean import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def add_product():
    """Factory: add a product through the catalogue command and return its id."""
    from bakery.catalogue.management import AddProduct
    from protean import current_domain

    def _add(name="Sourdough Loaf", price=10.0, stock=10, **kwargs):
        return current_domain.process(
            AddProduct(name=name, price=price, stock=stock, **kwargs),
            asynchronous=False,
        )

    return _add


@pytest.fixture()
def stock_of():
    """Read the stored stock for a product id."""
    from bakery.inventory.adjustment import fetch_product

    def _stock(product_id):
        return fetch_product(product_id).stock

    return _stock


@pytest.fixture()
def address():
    return {
        "street": "12 Baker St",
        "city": "Springfield",
        "state": "IL",
        "postal_code": "62701",
        "country": "US",
    }


@pytest.fixture()
def admin():
    from bakery.access import Actor, Role

    return Actor(user_id="admin-001", role=Role.ADMIN)


@pytest.fixture()
def customer():
    from bakery.access import Actor, Role

    return Actor(user_id="cust-001", role=Role.USER)


@pytest.fixture()
def other_customer():
    from bakery.access import Actor, Role

    return Actor(user_id="cust-002", role=Role.USER)
