"""Application tests for confirming remote payments."""

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from storefront.cart.cart import Cart
from storefront.cart.management import AddToCart
from storefront.errors import AlreadyTerminalError, InsufficientStock, VerificationError
from storefront.order.order import Order
from storefront.stock.stock import ProductStock


def _quantity(product_id, size="M"):
    return current_domain.repository_for(ProductStock).get(product_id).quantity_of(size)


@pytest.fixture()
def stripe_order(workflow, register_product, address):
    product_id = register_product(stock={"M": 3})
    placement = workflow.place_order(
        "user-001", address, "Stripe", items=[{"product_id": product_id, "size": "M", "quantity": 2}]
    )
    return placement.order, product_id


class TestConfirmPayment:
    def test_marks_paid_and_commits_stock(self, workflow, stripe_order):
        order, product_id = stripe_order
        confirmed = workflow.confirm_payment(order.id, {"success": "true"})

        assert confirmed.paid is True
        assert confirmed.transaction_id.startswith("txn-")
        assert confirmed.stock_committed is True
        assert _quantity(product_id) == 1

    def test_books_shipment_as_prepaid(self, workflow, stripe_order, carrier):
        order, _ = stripe_order
        confirmed = workflow.confirm_payment(order.id)
        assert confirmed.has_shipment is True
        assert carrier.bookings[0].cash_on_delivery is False

    def test_notifies_customer_and_admin(self, workflow, stripe_order, notifier):
        order, _ = stripe_order
        workflow.confirm_payment(order.id)
        assert notifier.templates() == ["order_placed", "new_order_admin"]

    def test_clears_cart(self, workflow, register_product, address):
        product_id = register_product()
        current_domain.process(AddToCart(user_id="user-001", product_id=product_id, size="M"), asynchronous=False)
        placement = workflow.place_order("user-001", address, "Razorpay")

        workflow.confirm_payment(placement.order.id)
        assert current_domain.repository_for(Cart).get("user-001").as_items() == []

    def test_second_confirmation_is_idempotent(self, workflow, stripe_order, carrier):
        order, product_id = stripe_order
        workflow.confirm_payment(order.id)
        again = workflow.confirm_payment(order.id)

        assert again.paid is True
        assert _quantity(product_id) == 1
        assert len(carrier.bookings) == 1

    def test_cash_on_delivery_needs_no_confirmation(self, workflow, register_product, address):
        product_id = register_product()
        placement = workflow.place_order(
            "user-001", address, "COD", items=[{"product_id": product_id, "size": "M", "quantity": 1}]
        )
        with pytest.raises(ValidationError) as exc:
            workflow.confirm_payment(placement.order.id)
        assert "payment" in exc.value.messages


class TestFailedVerification:
    def test_unverified_order_deleted(self, workflow, stripe_order, gateways):
        gateways["Stripe"].configure(should_verify=False)
        order, product_id = stripe_order

        with pytest.raises(VerificationError):
            workflow.confirm_payment(order.id, {"success": "false"})

        with pytest.raises(ObjectNotFoundError):
            current_domain.repository_for(Order).get(order.id)
        assert _quantity(product_id) == 3

    def test_cancelled_order_cannot_be_paid(self, workflow, stripe_order):
        order, _ = stripe_order
        workflow.cancel_order(order.id, "Customer abandoned checkout")
        with pytest.raises(AlreadyTerminalError):
            workflow.confirm_payment(order.id)


class TestStockGoneBeforeConfirmation:
    def test_paid_order_cancelled_and_shipment_withdrawn(self, workflow, stripe_order, services, carrier, notifier):
        order, product_id = stripe_order
        services.ledger.set_quantity(product_id, "M", 1)

        with pytest.raises(InsufficientStock):
            workflow.confirm_payment(order.id)

        stored = workflow.get_order(order.id)
        assert stored.status == "Cancelled"
        assert stored.paid is True
        assert stored.stock_committed is False
        assert stored.cancellation_reason
        assert carrier.cancellations == [stored.shipment.carrier_order_id]
        assert _quantity(product_id) == 1
        assert notifier.templates() == ["order_cancelled"]
