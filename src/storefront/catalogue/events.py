"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="Product")
class ProductRegistered:
    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True)
    category = String(required=True)
    base_price = Float(required=True)
    registered_at = DateTime(required=True)


@storefront.event(part_of="Product")
class DiscountAttached:
    __version__ = 1

    product_id = Identifier(required=True)
    discount_id = Identifier(required=True)


@storefront.event(part_of="Product")
class DiscountDetached:
    """The product's discount reference was cleared (removed, expired or missing)."""

    __version__ = 1

    product_id = Identifier(required=True)
    discount_id = Identifier(required=True)
    reason = String(required=True)
