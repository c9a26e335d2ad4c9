"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from bakery.domain import bakery


@bakery.event(part_of="Product")
class ProductAdded:
    """A new product was added to the catalogue."""

    __version__ = 1

    product_id: Identifier(required=True)
    name: String(required=True)
    price: Float(required=True)
    stock: Integer(required=True)
    added_at: DateTime(required=True)


@bakery.event(part_of="Product")
class ProductWithdrawn:
    """A product was taken off sale by hand."""

    __version__ = 1

    product_id: Identifier(required=True)
    withdrawn_at: DateTime(required=True)


@bakery.event(part_of="Product")
class ProductReinstated:
    """A withdrawn product was put back on sale."""

    __version__ = 1

    product_id: Identifier(required=True)
    stock: Integer(required=True)
    reinstated_at: DateTime(required=True)
