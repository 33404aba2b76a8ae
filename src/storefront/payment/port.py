"""Payment gateway port (abstract interface).

Defines the contract every payment gateway adapter implements. Cash on
delivery settles locally; remote gateways open a checkout at placement and
are verified when the customer returns.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CheckoutRequest:
    order_id: str
    order_number: int
    amount: float
    currency: str
    lines: tuple  # (name, unit_price, quantity) triples
    delivery_charge: float
    origin: str | None = None


@dataclass(frozen=True)
class CheckoutSession:
    """What the customer needs to complete payment with the gateway."""

    reference: str
    redirect_url: str | None = None
    gateway_order: dict | None = None


@dataclass(frozen=True)
class VerificationResult:
    verified: bool
    transaction_id: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    method: str
    requires_confirmation: bool = True

    @abstractmethod
    def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        """Open a checkout with the gateway. Raises ``PaymentError`` on failure."""
        ...

    @abstractmethod
    def verify(self, request: CheckoutRequest, reference: str | None, payload: dict) -> VerificationResult:
        """Decide whether the order has been paid."""
        ...
