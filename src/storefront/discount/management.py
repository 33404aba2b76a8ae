"""Discount management — add and remove commands and their handler."""

import structlog
from protean import handle
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.discount.discount import Discount
from storefront.domain import storefront
from storefront.errors import DiscountConflict
from storefront.utils.clock import utcnow

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Discount")
class AddDiscount:
    """Attach a new time-boxed discount to a product."""

    product_id = Identifier(required=True)
    discount_type = String(required=True, max_length=20)
    value = Float(required=True, min_value=0.0)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)


@storefront.command(part_of="Discount")
class RemoveDiscount:
    """Deactivate every active discount of a product and detach it."""

    product_id = Identifier(required=True)


def active_discounts_for(product_id):
    repo = current_domain.repository_for(Discount)
    return repo._dao.query.filter(product_id=str(product_id), active=True).all().items


@storefront.command_handler(part_of=Discount)
class ManageDiscountHandler:
    @handle(AddDiscount)
    def add_discount(self, command):
        product_repo = current_domain.repository_for(Product)
        discount_repo = current_domain.repository_for(Discount)
        product = product_repo.get(command.product_id)
        now = utcnow()

        for existing in active_discounts_for(command.product_id):
            if not existing.is_expired(now):
                raise DiscountConflict(command.product_id)
            # Expired but never swept: retire it so only one stays active
            existing.deactivate("expired")
            discount_repo.add(existing)

        discount = Discount.create(
            product_id=command.product_id,
            discount_type=command.discount_type,
            value=command.value,
            start_date=command.start_date,
            end_date=command.end_date,
        )
        product.attach_discount(discount.id)

        discount_repo.add(discount)
        product_repo.add(product)

        logger.info(
            "Discount added",
            discount_id=str(discount.id),
            product_id=str(command.product_id),
            discount_type=command.discount_type,
            value=command.value,
        )
        return str(discount.id)

    @handle(RemoveDiscount)
    def remove_discount(self, command):
        product_repo = current_domain.repository_for(Product)
        discount_repo = current_domain.repository_for(Discount)
        product = product_repo.get(command.product_id)

        removed = 0
        for discount in active_discounts_for(command.product_id):
            discount.deactivate("removed")
            discount_repo.add(discount)
            removed += 1

        product.clear_discount("removed")
        product_repo.add(product)

        logger.info("Discounts removed", product_id=str(command.product_id), removed=removed)
        return removed
