"""Integration tests for payment gateway adapters against a mocked Stripe SDK and HTTP sessions."""

from unittest.mock import MagicMock, patch

import pytest
import requests
import stripe
from storefront.config import Settings
from storefront.errors import PaymentError
from storefront.payment import build_gateways
from storefront.payment.cash import CashOnDelivery
from storefront.payment.fake_adapter import FakeGateway
from storefront.payment.port import CheckoutRequest
from storefront.payment.razorpay_adapter import RazorpayGateway
from storefront.payment.stripe_adapter import StripeCheckoutGateway


@pytest.fixture()
def checkout_request():
    return CheckoutRequest(
        order_id="ord-001",
        order_number=42,
        amount=1750.5,
        currency="INR",
        lines=(("Kurti", 800.25, 2),),
        delivery_charge=150.0,
        origin="https://shop.example.com/",
    )


def _response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    return response


class TestStripeCheckout:
    def test_session_params(self, checkout_request):
        params = StripeCheckoutGateway("sk_test").session_params(checkout_request)
        assert params["mode"] == "payment"
        assert params["success_url"] == "https://shop.example.com/verify?success=true&orderId=ord-001"
        assert params["cancel_url"] == "https://shop.example.com/verify?success=false&orderId=ord-001"
        assert params["client_reference_id"] == "ord-001"

        kurti, delivery = params["line_items"]
        assert kurti["price_data"]["unit_amount"] == 80025
        assert kurti["price_data"]["currency"] == "inr"
        assert kurti["quantity"] == 2
        assert delivery["price_data"]["product_data"]["name"] == "Delivery Charges"
        assert delivery["price_data"]["unit_amount"] == 15000
        assert delivery["quantity"] == 1

    def test_create_checkout(self, checkout_request):
        session = MagicMock(id="cs_123", url="https://checkout.stripe.com/cs_123")
        with patch("stripe.checkout.Session.create", return_value=session) as create:
            checkout = StripeCheckoutGateway("sk_test").create_checkout(checkout_request)

        assert checkout.reference == "cs_123"
        assert checkout.redirect_url == "https://checkout.stripe.com/cs_123"
        assert create.call_args.kwargs["api_key"] == "sk_test"
        assert create.call_args.kwargs["idempotency_key"] == "checkout_ord-001"
        assert len(create.call_args.kwargs["line_items"]) == 2

    def test_create_checkout_failure(self, checkout_request):
        with patch("stripe.checkout.Session.create", side_effect=stripe.APIConnectionError("Network down")):
            with pytest.raises(PaymentError):
                StripeCheckoutGateway("sk_test").create_checkout(checkout_request)

    @pytest.mark.parametrize("success", [True, "true", "True"])
    def test_verify_success_flag(self, checkout_request, success):
        result = StripeCheckoutGateway("sk_test").verify(checkout_request, "cs_123", {"success": success})
        assert result.verified is True
        assert result.transaction_id == "cs_123"

    @pytest.mark.parametrize("payload", [{"success": "false"}, {}])
    def test_verify_failure(self, checkout_request, payload):
        assert StripeCheckoutGateway("sk_test").verify(checkout_request, "cs_123", payload).verified is False


class TestRazorpay:
    def test_create_order_in_paise(self, checkout_request):
        session = MagicMock()
        session.post.return_value = _response(200, {"id": "order_R1", "amount": 175050, "receipt": "ord-001"})
        gateway = RazorpayGateway("rzp_key", "rzp_secret", session=session, timeout=3.0)

        checkout = gateway.create_checkout(checkout_request)

        body = session.post.call_args.kwargs["json"]
        assert body == {"amount": 175050, "currency": "INR", "receipt": "ord-001"}
        assert session.post.call_args.kwargs["auth"] == ("rzp_key", "rzp_secret")
        assert session.post.call_args.kwargs["timeout"] == 3.0
        assert checkout.reference == "order_R1"
        assert checkout.gateway_order["id"] == "order_R1"

    def test_create_order_rejected(self, checkout_request):
        session = MagicMock()
        session.post.return_value = _response(401)
        with pytest.raises(PaymentError):
            RazorpayGateway("k", "s", session=session).create_checkout(checkout_request)

    def test_verify_paid_with_matching_receipt(self, checkout_request):
        session = MagicMock()
        session.get.return_value = _response(200, {"id": "order_R1", "status": "paid", "receipt": "ord-001"})
        result = RazorpayGateway("k", "s", session=session).verify(
            checkout_request, "order_R1", {"razorpay_payment_id": "pay_9"}
        )
        assert result.verified is True
        assert result.transaction_id == "pay_9"

    def test_verify_rejects_unpaid(self, checkout_request):
        session = MagicMock()
        session.get.return_value = _response(200, {"id": "order_R1", "status": "attempted", "receipt": "ord-001"})
        assert RazorpayGateway("k", "s", session=session).verify(checkout_request, "order_R1", {}).verified is False

    def test_verify_rejects_foreign_receipt(self, checkout_request):
        session = MagicMock()
        session.get.return_value = _response(200, {"id": "order_R1", "status": "paid", "receipt": "ord-999"})
        assert RazorpayGateway("k", "s", session=session).verify(checkout_request, "order_R1", {}).verified is False

    def test_verify_lookup_failure(self, checkout_request):
        session = MagicMock()
        session.get.side_effect = requests.Timeout("slow")
        with pytest.raises(PaymentError):
            RazorpayGateway("k", "s", session=session).verify(checkout_request, "order_R1", {})


class TestGatewayRegistry:
    def test_fake_gateways_by_default(self):
        gateways = build_gateways(Settings())
        assert isinstance(gateways["COD"], CashOnDelivery)
        assert isinstance(gateways["Stripe"], FakeGateway)
        assert isinstance(gateways["Razorpay"], FakeGateway)

    def test_live_gateways(self):
        gateways = build_gateways(Settings(payment_adapter="live"))
        assert isinstance(gateways["Stripe"], StripeCheckoutGateway)
        assert isinstance(gateways["Razorpay"], RazorpayGateway)

    def test_unknown_adapter(self):
        with pytest.raises(ValueError):
            build_gateways(Settings(payment_adapter="paypal"))
