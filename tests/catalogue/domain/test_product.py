"""Tests for the Product aggregate: creation, stock rules and manual availability."""

import pytest
from bakery.catalogue.events import ProductAdded, ProductReinstated, ProductWithdrawn
from bakery.catalogue.product import Product
from bakery.errors import InsufficientStock
from protean.exceptions import ValidationError


def _make_product(**overrides):
    defaults = {"name": "Croissant", "price": 3.5, "stock": 5}
    defaults.update(overrides)
    return Product.create(**defaults)


class TestProductCreation:
    def test_product_with_stock_is_available(self):
        product = _make_product(stock=5)
        assert product.is_available is True
        assert product.is_withdrawn is False

    def test_product_without_stock_is_unavailable(self):
        product = _make_product(stock=0)
        assert product.is_available is False

    def test_create_raises_product_added(self):
        product = _make_product()
        assert len(product._events) == 1
        event = product._events[0]
        assert isinstance(event, ProductAdded)
        assert event.name == "Croissant"
        assert event.stock == 5

    def test_create_sets_timestamps(self):
        product = _make_product()
        assert product.created_at is not None
        assert product.updated_at is not None

    def test_negative_stock_rejected(self):
        with pytest.raises(ValidationError):
            _make_product(stock=-1)

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            _make_product(price=-0.5)

    def test_explicit_id_is_used(self):
        product = _make_product(product_id="prod-croissant")
        assert str(product.id) == "prod-croissant"


class TestReserve:
    def test_reserve_decrements_stock(self):
        product = _make_product(stock=5)
        product.reserve(2)
        assert product.stock == 3
        assert product.is_available is True

    def test_reserving_last_units_marks_unavailable(self):
        product = _make_product(stock=2)
        product.reserve(2)
        assert product.stock == 0
        assert product.is_available is False

    def test_reserve_more_than_stock_fails_and_names_product(self):
        product = _make_product(stock=1)
        with pytest.raises(InsufficientStock) as exc:
            product.reserve(2)

        assert exc.value.product_id == str(product.id)
        assert "Croissant" in exc.value.message
        assert product.stock == 1

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_reserve_requires_positive_quantity(self, quantity):
        product = _make_product()
        with pytest.raises(ValidationError):
            product.reserve(quantity)


class TestRelease:
    def test_release_increments_stock(self):
        product = _make_product(stock=1)
        product.release(4)
        assert product.stock == 5

    def test_release_restores_availability(self):
        product = _make_product(stock=1)
        product.reserve(1)
        product.release(1)
        assert product.stock == 1
        assert product.is_available is True

    def test_release_has_no_upper_bound(self):
        product = _make_product(stock=0)
        product.release(10_000)
        assert product.stock == 10_000

    def test_release_does_not_reactivate_withdrawn_product(self):
        product = _make_product(stock=1)
        product.withdraw()
        product.release(3)
        assert product.stock == 4
        assert product.is_available is False

    def test_release_requires_positive_quantity(self):
        product = _make_product()
        with pytest.raises(ValidationError):
            product.release(0)


class TestManualAvailability:
    def test_withdraw_makes_product_unavailable(self):
        product = _make_product(stock=3)
        product.withdraw()
        assert product.is_withdrawn is True
        assert product.is_available is False

    def test_withdraw_raises_product_withdrawn(self):
        product = _make_product()
        product.withdraw()
        withdrawn = [e for e in product._events if isinstance(e, ProductWithdrawn)]
        assert len(withdrawn) == 1
        assert str(withdrawn[0].product_id) == str(product.id)

    def test_reinstate_raises_product_reinstated(self):
        product = _make_product(stock=4)
        product.withdraw()
        product.reinstate()
        reinstated = [e for e in product._events if isinstance(e, ProductReinstated)]
        assert len(reinstated) == 1
        assert reinstated[0].stock == 4

    def test_rejected_withdraw_raises_no_event(self):
        product = _make_product()
        product.withdraw()
        with pytest.raises(ValidationError):
            product.withdraw()
        assert len([e for e in product._events if isinstance(e, ProductWithdrawn)]) == 1

    def test_withdraw_twice_rejected(self):
        product = _make_product()
        product.withdraw()
        with pytest.raises(ValidationError):
            product.withdraw()

    def test_reinstate_with_stock_makes_available(self):
        product = _make_product(stock=3)
        product.withdraw()
        product.reinstate()
        assert product.is_available is True

    def test_reinstate_without_stock_stays_unavailable(self):
        product = _make_product(stock=0)
        product.withdraw()
        product.reinstate()
        assert product.is_withdrawn is False
        assert product.is_available is False

    def test_reinstate_requires_withdrawn_product(self):
        product = _make_product()
        with pytest.raises(ValidationError):
            product.reinstate()


class TestInvariants:
    def test_out_of_stock_product_cannot_be_marked_available(self):
        product = _make_product(stock=0)
        with pytest.raises(ValidationError):
            product.is_available = True

    def test_withdrawn_product_cannot_be_marked_available(self):
        product = _make_product(stock=2)
        product.withdraw()
        with pytest.raises(ValidationError):
            product.is_available = True
