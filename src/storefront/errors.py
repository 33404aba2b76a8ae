"""Failure taxonomy for the storefront.

Domain failures subclass Protean's ``ValidationError`` so they carry a
field-keyed ``messages`` dict and map onto 4xx responses. Carrier failures
form their own hierarchy: they are raised by adapters and degrade to logging
at the order workflow boundary.
"""

from protean.exceptions import ValidationError


# ---------------------------------------------------------------------------
# Stock
# ---------------------------------------------------------------------------
class InsufficientStock(ValidationError):
    """A requested (product, size) line cannot be covered by available stock."""

    def __init__(self, product_id, size, requested=None, available=None):
        self.product_id = str(product_id)
        self.size = size
        self.requested = requested
        self.available = available
        super().__init__({"stock": [f"Insufficient stock for product {self.product_id} in size {size}"]})


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class InvalidTransitionError(ValidationError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__({"status": [f"Cannot transition from {current} to {target}"]})


class AlreadyTerminalError(InvalidTransitionError):
    """The order is Delivered or Cancelled and accepts no further changes."""

    def __init__(self, current, target="Cancelled"):
        super().__init__(current, target)
        self.messages = {"status": [f"Order is already {current}"]}


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class PaymentError(ValidationError):
    def __init__(self, message, gateway=None):
        self.gateway = gateway
        super().__init__({"payment": [message]})


class VerificationError(PaymentError):
    """The gateway did not confirm payment for the order."""


# ---------------------------------------------------------------------------
# Discounts
# ---------------------------------------------------------------------------
class DiscountConflict(ValidationError):
    def __init__(self, product_id):
        self.product_id = str(product_id)
        super().__init__({"discount": [f"Product {self.product_id} already has an active discount"]})


# ---------------------------------------------------------------------------
# Carrier
# ---------------------------------------------------------------------------
class CarrierError(Exception):
    """Base class for failures talking to the shipment carrier aggregator."""


class CredentialError(CarrierError):
    """Authentication with the carrier aggregator failed."""


class ShipmentBookingFailure(CarrierError):
    """The carrier could not book a shipment (timeout, rejection, bad payload)."""


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------
class NotificationFailure(Exception):
    """A notification could not be handed to its transport."""
