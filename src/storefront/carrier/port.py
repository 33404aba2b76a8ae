"""Carrier port — abstract interface for the shipment carrier aggregator.

The order workflow programs against this port; adapters are swapped via
configuration. Adapters raise ``CarrierError`` subclasses on failure.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class ShipmentLine:
    name: str
    sku: str
    units: int
    selling_price: float


@dataclass(frozen=True)
class ShipmentRequest:
    """Everything the carrier needs to book one order."""

    order_id: str
    order_number: int
    order_date: datetime
    address: dict
    lines: tuple[ShipmentLine, ...]
    cash_on_delivery: bool
    sub_total: float
    shipping_charges: float


@dataclass(frozen=True)
class ShipmentBooking:
    """Identifiers returned by the carrier for a booked shipment."""

    shipment_id: str
    carrier_order_id: str
    tracking_code: str | None = None
    carrier_name: str | None = None
    tracking_url: str | None = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)


class CarrierPort(ABC):
    """Abstract interface for carrier adapters."""

    @abstractmethod
    def create_shipment(self, request: ShipmentRequest) -> ShipmentBooking:
        """Book a shipment. Raises ``ShipmentBookingFailure`` when it cannot."""
        ...

    @abstractmethod
    def cancel_shipment(self, carrier_order_id: str) -> dict:
        """Cancel a previously booked shipment."""
        ...

    @abstractmethod
    def get_tracking(self, tracking_code: str) -> dict:
        """Current tracking payload for a tracking (AWB) code."""
        ...


def tracking_status_of(payload: dict) -> str | None:
    """Pull the human readable current status out of a tracking payload."""
    data = payload.get("tracking_data", payload) if isinstance(payload, dict) else {}
    tracks = data.get("shipment_track") or []
    if tracks and isinstance(tracks[0], dict) and tracks[0].get("current_status"):
        return tracks[0]["current_status"]
    return data.get("current_status") or data.get("status")
