"""Product aggregate: catalogue entry that also carries the stock counter.

Stock is never written through ``repository.add`` after creation. All stock
and availability changes go through ``bakery.inventory.adjustment``, which
applies the domain methods below and persists the result with a conditional
update keyed on the stock value it read.
"""

from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String, Text

from bakery.domain import bakery
from bakery.errors import InsufficientStock


@bakery.aggregate
class Product:
    name = String(required=True, max_length=100)
    description = Text()
    category = String(max_length=50)
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    is_available = Boolean(default=False)
    is_withdrawn = Boolean(default=False)  # Manual "not for sale" override
    preparation_time = Integer(default=0, min_value=0)  # Minutes
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def out_of_stock_product_cannot_be_available(self):
        if self.stock == 0 and self.is_available:
            raise ValidationError({"is_available": ["A product with no stock cannot be available"]})

    @invariant.post
    def withdrawn_product_cannot_be_available(self):
        if self.is_withdrawn and self.is_available:
            raise ValidationError({"is_available": ["A withdrawn product cannot be available"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, name, price, stock=0, description=None, category=None, preparation_time=0, product_id=None):
        from bakery.catalogue.events import ProductAdded

        now = datetime.now(UTC)
        identity = {"id": product_id} if product_id else {}
        product = cls(
            **identity,
            name=name,
            price=price,
            stock=stock,
            is_available=stock > 0,
            description=description,
            category=category,
            preparation_time=preparation_time,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductAdded(
                product_id=product.id,
                name=product.name,
                price=product.price,
                stock=product.stock,
                added_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Stock
    # -------------------------------------------------------------------
    @staticmethod
    def _check_quantity(quantity):
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

    def reserve(self, quantity):
        """Take ``quantity`` units out of stock for an order."""
        self._check_quantity(quantity)
        if self.stock < quantity:
            raise InsufficientStock(str(self.id), quantity, self.stock, self.name)

        with atomic_change(self):
            self.stock -= quantity
            if self.stock == 0:
                self.is_available = False
            self.updated_at = datetime.now(UTC)

    def release(self, quantity):
        """Put ``quantity`` units back into stock. There is no upper bound.

        Availability comes back only for products that were not withdrawn by hand.
        """
        self._check_quantity(quantity)

        with atomic_change(self):
            self.stock += quantity
            if not self.is_withdrawn:
                self.is_available = True
            self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Manual availability
    # -------------------------------------------------------------------
    def withdraw(self):
        from bakery.catalogue.events import ProductWithdrawn

        if self.is_withdrawn:
            raise ValidationError({"is_withdrawn": ["Product is already withdrawn"]})

        with atomic_change(self):
            self.is_withdrawn = True
            self.is_available = False
            self.updated_at = datetime.now(UTC)

        self.raise_(ProductWithdrawn(product_id=self.id, withdrawn_at=self.updated_at))

    def reinstate(self):
        from bakery.catalogue.events import ProductReinstated

        if not self.is_withdrawn:
            raise ValidationError({"is_withdrawn": ["Product is not withdrawn"]})

        with atomic_change(self):
            self.is_withdrawn = False
            self.is_available = self.stock > 0
            self.updated_at = datetime.now(UTC)

        self.raise_(ProductReinstated(product_id=self.id, stock=self.stock, reinstated_at=self.updated_at))
