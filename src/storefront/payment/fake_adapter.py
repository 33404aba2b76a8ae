"""Fake remote gateway — deterministic checkout and verification for testing."""

from uuid import uuid4

from storefront.errors import PaymentError
from storefront.payment.port import CheckoutRequest, CheckoutSession, PaymentGateway, VerificationResult


class FakeGateway(PaymentGateway):
    """Remote-style gateway that verifies by default."""

    requires_confirmation = True

    def __init__(self, method="Stripe"):
        self.method = method
        self.should_verify = True
        self.should_open = True
        self.checkouts: list[CheckoutRequest] = []

    def configure(self, should_verify: bool = True, should_open: bool = True):
        self.should_verify = should_verify
        self.should_open = should_open

    def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        if not self.should_open:
            raise PaymentError("Gateway unavailable", gateway=self.method)
        self.checkouts.append(request)
        reference = f"fake-{self.method.lower()}-{uuid4().hex[:10]}"
        return CheckoutSession(
            reference=reference,
            redirect_url=f"https://pay.example.com/{reference}",
        )

    def verify(self, request: CheckoutRequest, reference, payload) -> VerificationResult:
        if not self.should_verify:
            return VerificationResult(verified=False, failure_reason="Payment declined")
        return VerificationResult(verified=True, transaction_id=f"txn-{uuid4().hex[:12]}")
