"""Stripe Checkout adapter.

Opens a hosted Checkout Session through the stripe-python SDK and sends the
customer there. Stripe redirects back to ``{origin}/verify?success=...&orderId=...``;
verification trusts that ``success`` flag. A signed webhook would be the
stronger signal, but the redirect is what the storefront has today.
"""

import stripe
import structlog

from storefront.errors import PaymentError
from storefront.payment.port import CheckoutRequest, CheckoutSession, PaymentGateway, VerificationResult
from storefront.utils.money import to_minor_units

logger = structlog.get_logger(__name__)


class StripeCheckoutGateway(PaymentGateway):
    method = "Stripe"
    requires_confirmation = True

    def __init__(self, secret_key: str):
        self._secret_key = secret_key

    def session_params(self, request: CheckoutRequest) -> dict:
        """Checkout Session parameters, one line item per order line plus delivery."""
        currency = request.currency.lower()
        origin = (request.origin or "").rstrip("/")
        lines = list(request.lines) + [("Delivery Charges", request.delivery_charge, 1)]
        return {
            "mode": "payment",
            "client_reference_id": request.order_id,
            "success_url": f"{origin}/verify?success=true&orderId={request.order_id}",
            "cancel_url": f"{origin}/verify?success=false&orderId={request.order_id}",
            "line_items": [
                {
                    "price_data": {
                        "currency": currency,
                        "product_data": {"name": name},
                        "unit_amount": to_minor_units(unit_price),
                    },
                    "quantity": quantity,
                }
                for name, unit_price, quantity in lines
            ],
            "metadata": {"order_id": request.order_id, "order_number": str(request.order_number)},
        }

    def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        try:
            session = stripe.checkout.Session.create(
                api_key=self._secret_key,
                idempotency_key=f"checkout_{request.order_id}",
                **self.session_params(request),
            )
        except stripe.StripeError as exc:
            logger.error("Stripe checkout session failed", order_id=request.order_id, error=str(exc))
            raise PaymentError(f"Could not start Stripe checkout: {exc}", gateway=self.method) from exc

        return CheckoutSession(reference=session.id, redirect_url=session.url)

    def verify(self, request: CheckoutRequest, reference, payload) -> VerificationResult:
        success = payload.get("success")
        if success is True or str(success).lower() == "true":
            return VerificationResult(verified=True, transaction_id=reference)
        return VerificationResult(verified=False, failure_reason="Customer did not complete Stripe checkout")
