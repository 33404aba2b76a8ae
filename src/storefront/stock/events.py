"""Domain events for the ProductStock aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.event(part_of="ProductStock")
class StockInitialized:
    """Size rows were created for a newly registered product."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantities = Text(required=True)  # JSON: {size: quantity}
    in_stock = Boolean(default=False)
    initialized_at = DateTime(required=True)


@storefront.event(part_of="ProductStock")
class StockCommitted:
    """Units of one size were taken out of stock for an order."""

    __version__ = 1

    product_id = Identifier(required=True)
    size = String(required=True)
    quantity = Integer(required=True)
    unit_price = Float(default=0.0)
    remaining = Integer(required=True)
    in_stock = Boolean(default=False)


@storefront.event(part_of="ProductStock")
class StockRestored:
    """Units of one size were returned to stock after a cancellation."""

    __version__ = 1

    product_id = Identifier(required=True)
    size = String(required=True)
    quantity = Integer(required=True)
    available = Integer(required=True)
    in_stock = Boolean(default=False)


@storefront.event(part_of="ProductStock")
class StockLevelSet:
    """An administrator overwrote the quantity of one size."""

    __version__ = 1

    product_id = Identifier(required=True)
    size = String(required=True)
    previous_quantity = Integer(required=True)
    quantity = Integer(required=True)
    in_stock = Boolean(default=False)


@storefront.event(part_of="ProductStock")
class ProductSoldOut:
    """The last unit of the last size was committed."""

    __version__ = 1

    product_id = Identifier(required=True)
    sold_out_at = DateTime(required=True)
