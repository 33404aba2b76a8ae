"""Razorpay adapter.

Placement creates a Razorpay order (amount in paise, receipt = our order id)
that the client-side widget pays. Verification looks the Razorpay order up
again and accepts it only when Razorpay reports it ``paid`` and its receipt
matches the order being confirmed.
"""

import requests
import structlog

from storefront.errors import PaymentError
from storefront.payment.port import CheckoutRequest, CheckoutSession, PaymentGateway, VerificationResult
from storefront.utils.money import to_minor_units

logger = structlog.get_logger(__name__)

RAZORPAY_API = "https://api.razorpay.com/v1"


class RazorpayGateway(PaymentGateway):
    method = "Razorpay"
    requires_confirmation = True

    def __init__(self, key_id: str, key_secret: str, *, base_url=RAZORPAY_API, timeout=10.0, session=None):
        self._auth = (key_id, key_secret)
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        body = {
            "amount": to_minor_units(request.amount),
            "currency": request.currency.upper(),
            "receipt": request.order_id,
        }
        try:
            response = self._session.post(
                f"{self._base_url}/orders", json=body, auth=self._auth, timeout=self._timeout
            )
            response.raise_for_status()
            gateway_order = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Razorpay order creation failed", order_id=request.order_id, error=str(exc))
            raise PaymentError(f"Could not create Razorpay order: {exc}", gateway=self.method) from exc

        return CheckoutSession(reference=gateway_order["id"], gateway_order=gateway_order)

    def verify(self, request: CheckoutRequest, reference, payload) -> VerificationResult:
        razorpay_order_id = payload.get("razorpay_order_id") or reference
        if not razorpay_order_id:
            return VerificationResult(verified=False, failure_reason="No Razorpay order to verify")

        try:
            response = self._session.get(
                f"{self._base_url}/orders/{razorpay_order_id}", auth=self._auth, timeout=self._timeout
            )
            response.raise_for_status()
            gateway_order = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise PaymentError(f"Could not fetch Razorpay order {razorpay_order_id}: {exc}", gateway=self.method) from exc

        if gateway_order.get("status") != "paid":
            return VerificationResult(verified=False, failure_reason=f"Razorpay order is {gateway_order.get('status')}")
        if gateway_order.get("receipt") != request.order_id:
            return VerificationResult(verified=False, failure_reason="Razorpay receipt does not match order")

        return VerificationResult(
            verified=True,
            transaction_id=payload.get("razorpay_payment_id") or razorpay_order_id,
        )
