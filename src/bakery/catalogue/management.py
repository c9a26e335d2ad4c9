"""Catalogue commands: add products, manage availability, restock."""

import structlog
from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from bakery.catalogue.product import Product
from bakery.domain import bakery
from bakery.errors import StockConflict
from bakery.inventory.adjustment import MAX_RELEASE_ATTEMPTS, adjust_product, release_stock

logger = structlog.get_logger(__name__)


@bakery.command(part_of="Product")
class AddProduct:
    product_id: Identifier()  # Optional, generated when absent
    name: String(required=True, max_length=100)
    price: Float(required=True, min_value=0.0)
    stock: Integer(default=0, min_value=0)
    description: Text()
    category: String(max_length=50)
    preparation_time: Integer(default=0, min_value=0)


@bakery.command(part_of="Product")
class WithdrawProduct:
    product_id: Identifier(required=True)


@bakery.command(part_of="Product")
class ReinstateProduct:
    product_id: Identifier(required=True)


@bakery.command(part_of="Product")
class RestockProduct:
    product_id: Identifier(required=True)
    quantity: Integer(required=True, min_value=1)


@bakery.command_handler(part_of=Product)
class ProductCommandHandler:
    @handle(AddProduct)
    def add_product(self, command):
        product = Product.create(
            product_id=command.product_id,
            name=command.name,
            price=command.price,
            stock=command.stock or 0,
            description=command.description,
            category=command.category,
            preparation_time=command.preparation_time or 0,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(WithdrawProduct)
    def withdraw_product(self, command):
        # Availability flags share a row with stock, so they go through the same conditional write
        product = adjust_product(
            command.product_id,
            lambda p: p.withdraw(),
            MAX_RELEASE_ATTEMPTS,
            lambda latest: StockConflict(str(latest.id), MAX_RELEASE_ATTEMPTS),
        )
        logger.info("Product withdrawn from sale", product_id=str(product.id))
        return str(product.id)

    @handle(ReinstateProduct)
    def reinstate_product(self, command):
        product = adjust_product(
            command.product_id,
            lambda p: p.reinstate(),
            MAX_RELEASE_ATTEMPTS,
            lambda latest: StockConflict(str(latest.id), MAX_RELEASE_ATTEMPTS),
        )
        logger.info("Product reinstated", product_id=str(product.id), stock=product.stock)
        return str(product.id)

    @handle(RestockProduct)
    def restock_product(self, command):
        product = release_stock(command.product_id, command.quantity)
        logger.info("Product restocked", product_id=str(product.id), stock=product.stock)
        return str(product.id)
