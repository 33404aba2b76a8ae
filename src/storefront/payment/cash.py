"""Cash on delivery — settles at the door, so there is nothing to verify up front."""

from storefront.payment.port import CheckoutRequest, CheckoutSession, PaymentGateway, VerificationResult


class CashOnDelivery(PaymentGateway):
    method = "COD"
    requires_confirmation = False

    def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        return CheckoutSession(reference=f"COD-{request.order_number}")

    def verify(self, request: CheckoutRequest, reference, payload) -> VerificationResult:
        return VerificationResult(verified=True)
