"""Domain events for the Discount aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="Discount")
class DiscountAdded:
    __version__ = 1

    discount_id = Identifier(required=True)
    product_id = Identifier(required=True)
    discount_type = String(required=True)
    value = Float(required=True)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)


@storefront.event(part_of="Discount")
class DiscountDeactivated:
    """The discount stopped applying: removed by an admin or swept after expiry."""

    __version__ = 1

    discount_id = Identifier(required=True)
    product_id = Identifier(required=True)
    reason = String(required=True)
    deactivated_at = DateTime(required=True)
