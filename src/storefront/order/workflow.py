"""Order workflow — the placement, payment, fulfilment and cancellation saga.

There is no transaction spanning the order store, the stock ledger, the
carrier and the payment gateway, so each step is either safe to repeat or has
a compensating step:

    validate stock → persist order → (remote gateways: open checkout, wait)
    → book shipment (best effort) → commit stock → clear cart → notify

* A stock commit that fails after a shipment was booked cancels that shipment.
  An unpaid order is then deleted; a paid one is cancelled.
* A failed payment verification deletes the unpaid order.
* Shipment and notification failures are logged and never undo the order.
* Cancellation restores committed stock exactly once, before the Cancelled
  status becomes visible.

Operations on one order are serialised through a per-order lock.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.cart.management import ClearCart
from storefront.carrier.port import CarrierPort, ShipmentLine, ShipmentRequest, tracking_status_of
from storefront.carrier.tracking import TrackingCache
from storefront.catalogue.product import Product
from storefront.discount.resolver import DiscountResolver
from storefront.errors import (
    AlreadyTerminalError,
    CarrierError,
    InsufficientStock,
    InvalidTransitionError,
    PaymentError,
    VerificationError,
)
from storefront.notification.port import Audience, NotificationDispatcher, Template
from storefront.order.order import DeliveryAddress, Order, OrderStatus, PaymentMethod
from storefront.order.retention import SweepStaleCancelledOrders
from storefront.order.sequence import OrderNumberSequence
from storefront.payment.port import CheckoutRequest, CheckoutSession, PaymentGateway
from storefront.stock.ledger import StockLedger, StockLine
from storefront.utils.clock import as_utc
from storefront.utils.locks import KeyedLock

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Placement:
    order: Order
    checkout: CheckoutSession | None = None


class OrderWorkflow:
    def __init__(
        self,
        *,
        ledger: StockLedger,
        resolver: DiscountResolver,
        carrier: CarrierPort,
        tracking: TrackingCache,
        gateways: dict[str, PaymentGateway],
        notifier: NotificationDispatcher,
        settings,
        sequence: OrderNumberSequence | None = None,
        locks: KeyedLock | None = None,
    ):
        self._ledger = ledger
        self._resolver = resolver
        self._carrier = carrier
        self._tracking = tracking
        self._gateways = gateways
        self._notifier = notifier
        self._settings = settings
        self._locks = locks or KeyedLock()
        self._sequence = sequence or OrderNumberSequence(self._locks)

    @staticmethod
    def _repo():
        return current_domain.repository_for(Order)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get_order(self, order_id) -> Order:
        return self._repo().get(order_id)

    def list_orders(self, user_id=None) -> list[Order]:
        query = self._repo()._dao.query
        if user_id is not None:
            query = query.filter(user_id=str(user_id))
        orders = query.all().items
        return sorted(orders, key=lambda order: order.order_number, reverse=True)

    # -------------------------------------------------------------------
    # Placement
    # -------------------------------------------------------------------
    def place_order(self, user_id, address, payment_method, items=None, origin=None) -> Placement:
        """Validate, persist and (for cash on delivery) fulfil a new order.

        Args:
            items: List of ``{product_id, size, quantity}``; the user's cart
                   is used when omitted.
            origin: Storefront base URL, used for gateway redirect URLs.

        Returns:
            The order, plus the gateway checkout for remote payment methods.
        """
        gateway = self._gateway_for(payment_method)
        raw_items = items if items is not None else self._cart_items(user_id)
        if not raw_items:
            raise ValidationError({"items": ["Nothing to order: the cart is empty"]})

        lines = [StockLine.from_dict(item) for item in raw_items]
        self._ledger.validate(lines)

        # Everything that can reject the order runs before a number is drawn
        delivery_address = address if isinstance(address, DeliveryAddress) else DeliveryAddress(**address)
        items_data = self._price(lines)

        order = Order.place(
            order_number=self._sequence.next_value(),
            user_id=str(user_id),
            items_data=items_data,
            address=delivery_address,
            payment_method=gateway.method,
            delivery_charge=self._settings.delivery_charge,
            currency=self._settings.currency,
        )
        self._repo().add(order)
        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            payment_method=order.payment_method,
            amount=order.amount,
        )

        if not gateway.requires_confirmation:
            try:
                self._fulfil(order)
            except InsufficientStock:
                self._discard(order, "stock ran out during placement")
                raise
            return Placement(order=order)

        try:
            checkout = gateway.create_checkout(self._checkout_request(order, origin))
        except PaymentError:
            self._discard(order, "gateway checkout could not be opened")
            raise

        order.record_payment_reference(checkout.reference)
        self._repo().add(order)
        return Placement(order=order, checkout=checkout)

    def confirm_payment(self, order_id, payload=None) -> Order:
        """Verify payment with the order's gateway and run fulfilment.

        Confirming an order that is already paid returns it unchanged.
        """
        payload = payload or {}
        with self._locks.hold(f"order:{order_id}"):
            order = self._repo().get(order_id)
            if order.paid:
                return order
            if order.is_terminal:
                raise AlreadyTerminalError(order.status, "Paid")

            gateway = self._gateway_for(order.payment_method)
            if not gateway.requires_confirmation:
                raise ValidationError({"payment": ["Cash on delivery orders are settled on delivery"]})

            result = gateway.verify(self._checkout_request(order), order.payment_reference, payload)
            if not result.verified:
                logger.warning(
                    "Payment verification failed",
                    order_id=str(order.id),
                    payment_method=order.payment_method,
                    reason=result.failure_reason,
                )
                self._discard(order, "payment verification failed")
                raise VerificationError(
                    result.failure_reason or "Payment could not be verified",
                    gateway=order.payment_method,
                )

            order.mark_paid(result.transaction_id)
            self._repo().add(order)

            try:
                self._fulfil(order)
            except InsufficientStock:
                order.cancel("Stock ran out before payment was confirmed")
                self._repo().add(order)
                logger.error(
                    "Paid order cancelled for lack of stock, refund required",
                    order_id=str(order.id),
                    transaction_id=order.transaction_id,
                    amount=order.amount,
                )
                self._notify_cancelled(order)
                raise

        return order

    # -------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------
    def advance_status(self, order_id, next_status) -> Order:
        try:
            target = OrderStatus(next_status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown order status {next_status!r}"]}) from None

        with self._locks.hold(f"order:{order_id}"):
            order = self._repo().get(order_id)
            if target == OrderStatus.CANCELLED:
                raise InvalidTransitionError(order.status, target.value)

            order.advance_to(target)
            if not order.has_shipment:
                self._book_shipment(order)
            self._repo().add(order)

        logger.info("Order status advanced", order_id=str(order.id), status=order.status)
        if target == OrderStatus.PACKING:
            self._notify(Audience.CUSTOMER, Template.ORDER_PACKING, self._notification_data(order))
        return order

    def cancel_order(self, order_id, reason) -> Order:
        """Cancel an order that is not Delivered or already Cancelled."""
        if not reason:
            raise ValidationError({"reason": ["A cancellation reason is required"]})

        with self._locks.hold(f"order:{order_id}"):
            order = self._repo().get(order_id)
            if order.is_terminal:
                raise AlreadyTerminalError(order.status)

            self._cancel_shipment(order)
            if order.stock_committed and not order.stock_restored:
                self._ledger.restore(order.stock_lines())
                order.record_stock_restored()

            order.cancel(reason)
            self._repo().add(order)

        logger.info(
            "Order cancelled",
            order_id=str(order.id),
            reason=reason,
            stock_restored=order.stock_restored,
        )
        self._notify_cancelled(order)
        return order

    def sweep_cancelled_orders(self, as_of=None) -> int:
        retention_hours = self._settings.cancelled_retention.total_seconds() / 3600
        return current_domain.process(
            SweepStaleCancelledOrders(older_than_hours=retention_hours, as_of=as_of),
            asynchronous=False,
        )

    def track_order(self, order_id) -> dict:
        """Tracking details for an order's shipment, served through the tracking cache."""
        order = self._repo().get(order_id)
        if not order.has_shipment or not order.shipment.tracking_code:
            raise ValidationError({"tracking": ["Order has no tracking code yet"]})

        payload = self._tracking.get(order.shipment.tracking_code)
        current_status = tracking_status_of(payload)

        if current_status and current_status != order.shipment.tracking_status:
            with self._locks.hold(f"order:{order_id}"):
                order = self._repo().get(order_id)
                order.record_tracking_status(current_status)
                self._repo().add(order)

        return {
            "order_id": str(order.id),
            "tracking_code": order.shipment.tracking_code,
            "carrier_name": order.shipment.carrier_name,
            "tracking_url": order.shipment.tracking_url,
            "current_status": current_status,
            "tracking_data": payload.get("tracking_data", payload),
        }

    def send_tracking_update(self, order_id) -> dict:
        """Send the customer their shipment's tracking details.

        Best effort: a failed send is logged and reported as ``delivered=False``.
        """
        tracking = self.track_order(order_id)
        order = self._repo().get(order_id)
        delivered = self._notify(
            Audience.CUSTOMER,
            Template.TRACKING_UPDATE,
            {
                **self._notification_data(order),
                "tracking_code": tracking["tracking_code"],
                "carrier_name": tracking["carrier_name"],
                "tracking_url": tracking["tracking_url"],
                "current_status": tracking["current_status"],
            },
        )
        logger.info(
            "Tracking update sent",
            order_id=str(order.id),
            tracking_code=tracking["tracking_code"],
            delivered=delivered,
        )
        return {"order_id": str(order.id), "tracking_code": tracking["tracking_code"], "delivered": delivered}

    # -------------------------------------------------------------------
    # Saga steps
    # -------------------------------------------------------------------
    def _fulfil(self, order: Order):
        self._book_shipment(order)

        try:
            self._ledger.reserve_and_commit(order.stock_lines())
        except InsufficientStock as exc:
            logger.warning(
                "Stock commit failed, compensating",
                order_id=str(order.id),
                product_id=exc.product_id,
                size=exc.size,
            )
            self._cancel_shipment(order)
            raise

        order.record_stock_committed()
        self._repo().add(order)

        self._clear_cart(order.user_id)
        self._notify(Audience.CUSTOMER, Template.ORDER_PLACED, self._notification_data(order))
        self._notify(
            Audience.ADMIN,
            Template.NEW_ORDER_ADMIN,
            {**self._notification_data(order), "email": self._settings.admin_email},
        )

    def _book_shipment(self, order: Order) -> bool:
        if order.has_shipment:
            return True
        try:
            booking = self._carrier.create_shipment(self._shipment_request(order))
        except CarrierError as exc:
            logger.warning("Shipment not booked, order continues", order_id=str(order.id), error=str(exc))
            return False

        order.record_shipment(
            shipment_id=booking.shipment_id,
            carrier_order_id=booking.carrier_order_id,
            tracking_code=booking.tracking_code,
            carrier_name=booking.carrier_name,
            tracking_url=booking.tracking_url,
        )
        self._repo().add(order)
        return True

    def _cancel_shipment(self, order: Order):
        if not order.has_shipment:
            return
        try:
            self._carrier.cancel_shipment(order.shipment.carrier_order_id)
        except CarrierError as exc:
            logger.warning(
                "Carrier cancellation failed, continuing locally",
                order_id=str(order.id),
                carrier_order_id=order.shipment.carrier_order_id,
                error=str(exc),
            )

    def _discard(self, order: Order, reason):
        self._repo()._dao.delete(order)
        logger.info("Unpaid order deleted", order_id=str(order.id), order_number=order.order_number, reason=reason)

    def _clear_cart(self, user_id):
        try:
            current_domain.process(ClearCart(user_id=str(user_id)), asynchronous=False)
        except Exception as exc:
            logger.error("Cart could not be cleared after checkout", user_id=str(user_id), error=str(exc))

    def _notify(self, audience: Audience, template: Template, data: dict) -> bool:
        try:
            delivered = self._notifier.send(audience.value, template.value, data)
        except Exception as exc:
            logger.error(
                "Notification dispatch failed",
                audience=audience.value,
                template=template.value,
                order_id=data.get("order_id"),
                error=str(exc),
            )
            return False

        if not delivered:
            logger.warning(
                "Notification not delivered",
                audience=audience.value,
                template=template.value,
                order_id=data.get("order_id"),
            )
        return delivered

    def _notify_cancelled(self, order: Order):
        self._notify(
            Audience.CUSTOMER,
            Template.ORDER_CANCELLED,
            {**self._notification_data(order), "reason": order.cancellation_reason},
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _gateway_for(self, payment_method) -> PaymentGateway:
        try:
            method = PaymentMethod(payment_method)
        except ValueError:
            raise ValidationError({"payment_method": [f"Unsupported payment method {payment_method!r}"]}) from None
        gateway = self._gateways.get(method.value)
        if gateway is None:
            raise ValidationError({"payment_method": [f"Payment method {method.value} is not configured"]})
        return gateway

    @staticmethod
    def _cart_items(user_id) -> list[dict]:
        try:
            return current_domain.repository_for(Cart).get(str(user_id)).as_items()
        except ObjectNotFoundError:
            return []

    def _price(self, lines: list[StockLine]) -> list[dict]:
        product_repo = current_domain.repository_for(Product)
        priced = []
        for line in lines:
            try:
                product = product_repo.get(line.product_id)
            except ObjectNotFoundError:
                raise ValidationError({"items": [f"Unknown product {line.product_id}"]}) from None
            priced.append(
                {
                    "product_id": line.product_id,
                    "name": product.name,
                    "size": line.size,
                    "quantity": line.quantity,
                    "unit_price": self._resolver.effective_price(product),
                }
            )
        return priced

    @staticmethod
    def _shipment_request(order: Order) -> ShipmentRequest:
        return ShipmentRequest(
            order_id=str(order.id),
            order_number=order.order_number,
            order_date=as_utc(order.created_at),
            address=order.address.to_dict(),
            lines=tuple(
                ShipmentLine(
                    name=item.name,
                    sku=str(item.product_id),
                    units=item.quantity,
                    selling_price=item.unit_price,
                )
                for item in order.items
            ),
            cash_on_delivery=order.payment_method == PaymentMethod.COD.value,
            sub_total=order.subtotal,
            shipping_charges=order.delivery_charge,
        )

    @staticmethod
    def _checkout_request(order: Order, origin=None) -> CheckoutRequest:
        return CheckoutRequest(
            order_id=str(order.id),
            order_number=order.order_number,
            amount=order.amount,
            currency=order.currency,
            lines=tuple((item.name, item.unit_price, item.quantity) for item in order.items),
            delivery_charge=order.delivery_charge,
            origin=origin,
        )

    @staticmethod
    def _notification_data(order: Order) -> dict:
        address = order.address
        return {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "email": address.email if address else None,
            "name": " ".join(part for part in (address.first_name, address.last_name) if part) if address else None,
            "amount": order.amount,
            "payment_method": order.payment_method,
            "status": order.status,
        }
