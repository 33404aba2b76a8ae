"""Discount aggregate — a time-boxed promotional price for one product.

A discount applies while it is active, its start date has passed and its end
date has not. Expiry is decided by the end date alone, so an expired
discount never applies even if nothing has deactivated it yet.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, String

from storefront.discount.events import DiscountAdded, DiscountDeactivated
from storefront.domain import storefront
from storefront.utils.clock import as_utc
from storefront.utils.money import round2


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@storefront.aggregate
class Discount:
    product_id = Identifier(required=True)
    discount_type = String(choices=DiscountType, required=True)
    value = Float(required=True, min_value=0.0)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    active = Boolean(default=True)
    deactivated_at = DateTime()
    deactivation_reason = String(max_length=100)
    created_at = DateTime()

    @invariant.post
    def percentage_cannot_exceed_one_hundred(self):
        if self.discount_type == DiscountType.PERCENTAGE.value and self.value is not None and self.value > 100:
            raise ValidationError({"value": ["Percentage discount cannot exceed 100"]})

    @invariant.post
    def end_date_must_follow_start_date(self):
        if self.start_date and self.end_date and as_utc(self.end_date) <= as_utc(self.start_date):
            raise ValidationError({"end_date": ["End date must be after start date"]})

    @classmethod
    def create(cls, product_id, discount_type, value, start_date, end_date):
        discount = cls(
            product_id=str(product_id),
            discount_type=discount_type,
            value=value,
            start_date=start_date,
            end_date=end_date,
            active=True,
            created_at=datetime.now(UTC),
        )
        discount.raise_(
            DiscountAdded(
                discount_id=str(discount.id),
                product_id=str(product_id),
                discount_type=discount_type,
                value=value,
                start_date=start_date,
                end_date=end_date,
            )
        )
        return discount

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def is_expired(self, as_of) -> bool:
        return as_utc(self.end_date) < as_utc(as_of)

    def has_started(self, as_of) -> bool:
        return as_utc(self.start_date) <= as_utc(as_of)

    def applies_at(self, as_of) -> bool:
        return bool(self.active) and self.has_started(as_of) and not self.is_expired(as_of)

    def price_for(self, base_price) -> float:
        """Discounted price for ``base_price``, rounded to cents and floored at zero."""
        base = Decimal(str(base_price))
        value = Decimal(str(self.value))
        if self.discount_type == DiscountType.PERCENTAGE.value:
            discounted = base * (Decimal(1) - value / Decimal(100))
        else:
            discounted = base - value
        return max(0.0, round2(discounted))

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def deactivate(self, reason):
        if not self.active:
            return
        now = datetime.now(UTC)
        self.active = False
        self.deactivated_at = now
        self.deactivation_reason = reason
        self.raise_(
            DiscountDeactivated(
                discount_id=str(self.id),
                product_id=str(self.product_id),
                reason=reason,
                deactivated_at=now,
            )
        )
