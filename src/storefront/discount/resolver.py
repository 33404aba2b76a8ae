"""Discount resolver — the price a customer pays for a product right now."""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.discount.discount import Discount
from storefront.discount.expiry import SweepExpiredDiscounts
from storefront.discount.management import AddDiscount, RemoveDiscount
from storefront.utils.clock import as_utc, utcnow
from storefront.utils.money import round2

logger = structlog.get_logger(__name__)


class DiscountResolver:
    def __init__(self, clock=None):
        self._clock = clock or utcnow

    # -------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------
    def add(self, product_id, discount_type, value, start_date, end_date) -> str:
        return current_domain.process(
            AddDiscount(
                product_id=str(product_id),
                discount_type=discount_type,
                value=value,
                start_date=start_date,
                end_date=end_date,
            ),
            asynchronous=False,
        )

    def remove(self, product_id) -> int:
        return current_domain.process(RemoveDiscount(product_id=str(product_id)), asynchronous=False)

    def sweep_expired(self, as_of=None) -> int:
        return current_domain.process(
            SweepExpiredDiscounts(as_of=as_of or self._clock()),
            asynchronous=False,
        )

    def list_active(self) -> list[dict]:
        """Live discounts joined with their products; expired ones are skipped."""
        now = self._clock()
        product_repo = current_domain.repository_for(Product)
        discounts = current_domain.repository_for(Discount)._dao.query.filter(active=True).all().items

        listing = []
        for discount in discounts:
            if discount.is_expired(now):
                continue
            try:
                product = product_repo.get(discount.product_id)
            except ObjectNotFoundError:
                continue
            listing.append(
                {
                    "discount_id": str(discount.id),
                    "product_id": str(product.id),
                    "product_name": product.name,
                    "discount_type": discount.discount_type,
                    "value": discount.value,
                    "start_date": as_utc(discount.start_date),
                    "end_date": as_utc(discount.end_date),
                    "base_price": product.base_price,
                    "effective_price": discount.price_for(product.base_price)
                    if discount.has_started(now)
                    else round2(product.base_price),
                }
            )
        return listing

    # -------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------
    def effective_price(self, product: Product, as_of=None) -> float:
        """Price after the attached discount, or the base price.

        A reference to a discount that no longer exists, is inactive or has
        expired is cleared on the spot, so repeated calls converge on the base
        price without waiting for the sweep. A discount that has not started
        yet keeps its reference but is not applied.
        """
        base = round2(product.base_price)
        if not product.current_discount_id:
            return base

        as_of = as_of or self._clock()
        try:
            discount = current_domain.repository_for(Discount).get(product.current_discount_id)
        except ObjectNotFoundError:
            discount = None

        if discount is None or not discount.active or discount.is_expired(as_of):
            self._detach(product, "missing" if discount is None else "expired")
            return base

        if not discount.has_started(as_of):
            return base

        return discount.price_for(product.base_price)

    def _detach(self, product: Product, reason):
        logger.info(
            "Clearing stale discount reference",
            product_id=str(product.id),
            discount_id=str(product.current_discount_id),
            reason=reason,
        )
        product.clear_discount(reason)
        current_domain.repository_for(Product).add(product)
