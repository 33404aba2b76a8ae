"""Discount expiry — command and handler for deactivating lapsed discounts.

Runs opportunistically from the HTTP middleware on product and discount
routes, and daily from an external scheduler (cron) through
``manage.py sweep-discounts`` or the maintenance API endpoint.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.discount.discount import Discount
from storefront.domain import storefront
from storefront.utils.clock import utcnow

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Discount")
class SweepExpiredDiscounts:
    """Deactivate every active discount whose end date has passed."""

    as_of = DateTime()  # Optional: defaults to now


@storefront.command_handler(part_of=Discount)
class SweepExpiredDiscountsHandler:
    @handle(SweepExpiredDiscounts)
    def sweep_expired_discounts(self, command):
        as_of = command.as_of or utcnow()
        discount_repo = current_domain.repository_for(Discount)
        product_repo = current_domain.repository_for(Product)

        active = discount_repo._dao.query.filter(active=True).all().items
        expired = [discount for discount in active if discount.is_expired(as_of)]

        if not expired:
            logger.debug("No expired discounts found", as_of=as_of.isoformat())
            return 0

        for discount in expired:
            discount.deactivate("expired")
            discount_repo.add(discount)

            try:
                product = product_repo.get(discount.product_id)
            except ObjectNotFoundError:
                logger.warning(
                    "Expired discount points at a missing product",
                    discount_id=str(discount.id),
                    product_id=str(discount.product_id),
                )
                continue

            if product.current_discount_id == str(discount.id):
                product.clear_discount("expired")
                product_repo.add(product)

        logger.info("Expired discounts deactivated", count=len(expired), as_of=as_of.isoformat())
        return len(expired)
