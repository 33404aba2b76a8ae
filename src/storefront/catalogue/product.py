"""Product aggregate — what is sold, at what base price.

Stock lives in ``ProductStock`` and promotional pricing in ``Discount``; the
product only holds a reference to its currently attached discount, which the
discount resolver owns.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, Identifier, String, Text

from storefront.catalogue.events import DiscountAttached, DiscountDetached, ProductRegistered
from storefront.domain import storefront


class Category(Enum):
    MEN = "Men"
    WOMEN = "Women"
    BRIDE_AND_GROOM = "Bride And Groom"
    LEHENGA = "Lehenga"
    KURTI = "Kurti"
    SAREE = "Saree"
    ONEPIECE = "Onepiece"


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    description = Text()
    category = String(choices=Category, required=True)
    base_price = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="INR")
    current_discount_id = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(cls, name, category, base_price, description=None, currency="INR"):
        now = datetime.now(UTC)
        product = cls(
            name=name,
            description=description,
            category=category,
            base_price=base_price,
            currency=currency,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                name=name,
                category=category,
                base_price=base_price,
                registered_at=now,
            )
        )
        return product

    def attach_discount(self, discount_id):
        self.current_discount_id = str(discount_id)
        self.updated_at = datetime.now(UTC)
        self.raise_(DiscountAttached(product_id=str(self.id), discount_id=str(discount_id)))

    def clear_discount(self, reason):
        """Drop the discount reference. No-op when nothing is attached."""
        if self.current_discount_id is None:
            return
        previous = self.current_discount_id
        self.current_discount_id = None
        self.updated_at = datetime.now(UTC)
        self.raise_(DiscountDetached(product_id=str(self.id), discount_id=str(previous), reason=reason))
