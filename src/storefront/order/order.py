"""Order aggregate (CQRS) — the order lifecycle state machine.

State Machine:
    Order Placed → Packing → Shipped → Out for delivery → Delivered
    Cancelled (from any state except Delivered)

Delivered and Cancelled are terminal. Advancing may skip forward along the
happy path but never moves backward. The aggregate only records what
happened; stock, shipment and payment side effects are driven by
``OrderWorkflow``.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from storefront.domain import storefront
from storefront.errors import AlreadyTerminalError, InvalidTransitionError
from storefront.order.events import (
    OrderCancelled,
    OrderPlaced,
    OrderStatusAdvanced,
    OrderStockCommitted,
    PaymentConfirmed,
    ShipmentBooked,
)
from storefront.stock.ledger import StockLine
from storefront.stock.stock import Size
from storefront.utils.money import round2


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PLACED = "Order Placed"
    PACKING = "Packing"
    SHIPPED = "Shipped"
    OUT_FOR_DELIVERY = "Out for delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentMethod(Enum):
    COD = "COD"
    STRIPE = "Stripe"
    RAZORPAY = "Razorpay"


# State machine transition map (administrative advances only; cancellation
# is checked separately against _TERMINAL_STATES)
_VALID_TRANSITIONS = {
    OrderStatus.PLACED: {
        OrderStatus.PACKING,
        OrderStatus.SHIPPED,
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.DELIVERED,
    },
    OrderStatus.PACKING: {
        OrderStatus.SHIPPED,
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.DELIVERED,
    },
    OrderStatus.SHIPPED: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

_TERMINAL_STATES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class DeliveryAddress:
    """Where the order goes, captured at checkout and never edited afterwards."""

    first_name = String(required=True, max_length=100)
    last_name = String(max_length=100)
    email = String(required=True, max_length=255)
    phone = String(required=True, max_length=20)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    zipcode = String(required=True, max_length=20)
    country = String(max_length=100, default="India")


@storefront.value_object(part_of="Order")
class Shipment:
    """Identifiers handed back by the carrier aggregator for a booked shipment."""

    shipment_id = String(max_length=100)
    carrier_order_id = String(max_length=100)
    tracking_code = String(max_length=100)
    carrier_name = String(max_length=100)
    tracking_url = String(max_length=500)
    tracking_status = String(max_length=100)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    size = String(choices=Size, required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    order_number = Integer(required=True, unique=True)
    user_id = Identifier(required=True)
    items = HasMany(OrderItem)
    amount = Float(required=True, min_value=0.0)
    delivery_charge = Float(default=0.0)
    currency = String(max_length=3, default="INR")
    address = ValueObject(DeliveryAddress)
    status = String(choices=OrderStatus, default=OrderStatus.PLACED.value)
    payment_method = String(choices=PaymentMethod, required=True)
    paid = Boolean(default=False)
    payment_reference = String(max_length=255)
    transaction_id = String(max_length=255)
    shipment = ValueObject(Shipment)
    stock_committed = Boolean(default=False)
    stock_restored = Boolean(default=False)
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()
    cancelled_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, order_number, user_id, items_data, address, payment_method, delivery_charge, currency="INR"):
        """Create a new unpaid order.

        Args:
            order_number: Next value of the order number sequence.
            items_data: List of dicts with product_id, name, size, quantity,
                        unit_price (already discounted).
            address: ``DeliveryAddress``, or a dict matching it.
            delivery_charge: Flat charge added once to the line total.
        """
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = datetime.now(UTC)
        lines_total = sum(item["unit_price"] * item["quantity"] for item in items_data)
        amount = round2(lines_total + delivery_charge)

        order = cls(
            order_number=order_number,
            user_id=user_id,
            items=[OrderItem(**item) for item in items_data],
            amount=amount,
            delivery_charge=delivery_charge,
            currency=currency,
            address=address if isinstance(address, DeliveryAddress) else DeliveryAddress(**address),
            status=OrderStatus.PLACED.value,
            payment_method=payment_method,
            paid=False,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                user_id=str(user_id),
                items=json.dumps(items_data),
                amount=amount,
                delivery_charge=delivery_charge,
                payment_method=payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in _TERMINAL_STATES

    @property
    def has_shipment(self) -> bool:
        return self.shipment is not None and bool(self.shipment.carrier_order_id)

    @property
    def subtotal(self) -> float:
        return round2(self.amount - (self.delivery_charge or 0.0))

    def stock_lines(self) -> list[StockLine]:
        return [
            StockLine(product_id=str(item.product_id), size=item.size, quantity=item.quantity, unit_price=item.unit_price)
            for item in self.items
        ]

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if current in _TERMINAL_STATES:
            raise AlreadyTerminalError(current.value, target_status.value)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransitionError(current.value, target_status.value)

    # -------------------------------------------------------------------
    # Payment and fulfilment records
    # -------------------------------------------------------------------
    def record_payment_reference(self, reference):
        self.payment_reference = reference
        self.updated_at = datetime.now(UTC)

    def mark_paid(self, transaction_id=None):
        if self.is_terminal:
            raise AlreadyTerminalError(self.status, "Paid")
        now = datetime.now(UTC)
        self.paid = True
        self.transaction_id = transaction_id
        self.updated_at = now
        self.raise_(
            PaymentConfirmed(
                order_id=str(self.id),
                payment_method=self.payment_method,
                transaction_id=transaction_id,
                amount=self.amount,
                paid_at=now,
            )
        )

    def record_stock_committed(self):
        if self.stock_committed:
            return
        now = datetime.now(UTC)
        self.stock_committed = True
        self.updated_at = now
        self.raise_(OrderStockCommitted(order_id=str(self.id), committed_at=now))

    def record_stock_restored(self):
        self.stock_restored = True
        self.updated_at = datetime.now(UTC)

    def record_shipment(self, shipment_id, carrier_order_id, tracking_code=None, carrier_name=None, tracking_url=None):
        self.shipment = Shipment(
            shipment_id=str(shipment_id),
            carrier_order_id=str(carrier_order_id),
            tracking_code=tracking_code or None,
            carrier_name=carrier_name or None,
            tracking_url=tracking_url or None,
        )
        self.updated_at = datetime.now(UTC)
        self.raise_(
            ShipmentBooked(
                order_id=str(self.id),
                shipment_id=str(shipment_id),
                carrier_order_id=str(carrier_order_id),
                tracking_code=tracking_code or None,
                carrier_name=carrier_name or None,
            )
        )

    def record_tracking_status(self, tracking_status):
        if not self.has_shipment:
            raise ValidationError({"shipment": ["Order has no shipment to track"]})
        self.shipment = Shipment(
            shipment_id=self.shipment.shipment_id,
            carrier_order_id=self.shipment.carrier_order_id,
            tracking_code=self.shipment.tracking_code,
            carrier_name=self.shipment.carrier_name,
            tracking_url=self.shipment.tracking_url,
            tracking_status=tracking_status,
        )
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Order lifecycle transitions
    # -------------------------------------------------------------------
    def advance_to(self, target_status):
        """Move forward along the happy path (administrative action)."""
        target = OrderStatus(target_status)
        self._assert_can_transition(target)
        if not self.paid and PaymentMethod(self.payment_method) != PaymentMethod.COD:
            raise ValidationError({"payment": ["Order is awaiting payment confirmation"]})

        previous = self.status
        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now
        self.raise_(
            OrderStatusAdvanced(
                order_id=str(self.id),
                previous_status=previous,
                new_status=target.value,
                advanced_at=now,
            )
        )

        # Cash is collected at the door
        if target == OrderStatus.DELIVERED and not self.paid:
            self.paid = True
            self.raise_(
                PaymentConfirmed(
                    order_id=str(self.id),
                    payment_method=self.payment_method,
                    amount=self.amount,
                    paid_at=now,
                )
            )

    def cancel(self, reason):
        """Move to Cancelled, recording status, reason and time exactly once.

        Stock restoration must already have been recorded by the caller.
        """
        current = OrderStatus(self.status)
        if current in _TERMINAL_STATES:
            raise AlreadyTerminalError(current.value)
        if not reason:
            raise ValidationError({"reason": ["A cancellation reason is required"]})

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.cancelled_at = now
        self.updated_at = now
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=current.value,
                reason=reason,
                stock_restored=bool(self.stock_restored),
                cancelled_at=now,
            )
        )
