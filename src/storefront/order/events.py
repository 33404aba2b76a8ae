"""Domain events for the Order aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A new order was persisted, unpaid, with its lines and amount fixed."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = Integer(required=True)
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of order lines
    amount = Float(required=True)
    delivery_charge = Float(required=True)
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class PaymentConfirmed:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_method = String(required=True)
    transaction_id = String()
    amount = Float(required=True)
    paid_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStockCommitted:
    __version__ = 1

    order_id = Identifier(required=True)
    committed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class ShipmentBooked:
    __version__ = 1

    order_id = Identifier(required=True)
    shipment_id = String(required=True)
    carrier_order_id = String(required=True)
    tracking_code = String()
    carrier_name = String()


@storefront.event(part_of="Order")
class OrderStatusAdvanced:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    advanced_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = Text(required=True)
    stock_restored = Boolean(default=False)
    cancelled_at = DateTime(required=True)
