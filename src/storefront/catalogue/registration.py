"""Product registration — command and handler.

Registering a product also creates its stock record, with every size present
(unlisted sizes start at zero).
"""

import json

import structlog
from protean import handle
from protean.fields import Float, String, Text
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.domain import storefront
from storefront.stock.stock import ProductStock

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Product")
class RegisterProduct:
    name = String(required=True, max_length=255)
    category = String(required=True, max_length=50)
    base_price = Float(required=True, min_value=0.0)
    description = Text()
    currency = String(max_length=3, default="INR")
    initial_stock = Text()  # JSON: {size: quantity}


@storefront.command_handler(part_of=Product)
class RegisterProductHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        quantities = json.loads(command.initial_stock) if command.initial_stock else {}

        product = Product.register(
            name=command.name,
            category=command.category,
            base_price=command.base_price,
            description=command.description,
            currency=command.currency or "INR",
        )
        stock = ProductStock.create(product_id=str(product.id), quantities=quantities)

        current_domain.repository_for(Product).add(product)
        current_domain.repository_for(ProductStock).add(stock)

        logger.info(
            "Product registered",
            product_id=str(product.id),
            category=command.category,
            in_stock=stock.in_stock,
        )
        return str(product.id)
