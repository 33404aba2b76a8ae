"""Fake carrier adapter — deterministic carrier for testing and development.

Generates mock shipment identifiers and tracking payloads and records every
call. Configurable success/failure behaviour for integration testing.
"""

from datetime import UTC, datetime
from uuid import uuid4

from storefront.carrier.port import CarrierPort, ShipmentBooking, ShipmentRequest
from storefront.errors import CarrierError, ShipmentBookingFailure


class FakeCarrier(CarrierPort):
    """Fake carrier that always succeeds by default."""

    def __init__(self):
        self.should_succeed = True
        self.failure_reason = "Carrier unavailable"
        self.bookings: list[ShipmentRequest] = []
        self.cancellations: list[str] = []
        self.tracking_requests: list[str] = []

    def configure(self, should_succeed: bool = True, failure_reason: str = "Carrier unavailable"):
        """Configure the fake carrier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def reset(self):
        self.configure()
        self.bookings.clear()
        self.cancellations.clear()
        self.tracking_requests.clear()

    def create_shipment(self, request: ShipmentRequest) -> ShipmentBooking:
        if not self.should_succeed:
            raise ShipmentBookingFailure(self.failure_reason)

        self.bookings.append(request)
        tracking_code = f"AWB{uuid4().hex[:10].upper()}"
        return ShipmentBooking(
            shipment_id=f"ship-{uuid4().hex[:8]}",
            carrier_order_id=f"sr-{request.order_number}",
            tracking_code=tracking_code,
            carrier_name="Fake Express",
            tracking_url=f"https://fake-carrier.example.com/track/{tracking_code}",
        )

    def cancel_shipment(self, carrier_order_id: str) -> dict:
        if not self.should_succeed:
            raise CarrierError(self.failure_reason)
        self.cancellations.append(carrier_order_id)
        return {"status": 200, "message": "Order cancelled successfully"}

    def get_tracking(self, tracking_code: str) -> dict:
        if not self.should_succeed:
            raise CarrierError(self.failure_reason)
        self.tracking_requests.append(tracking_code)
        return {
            "tracking_data": {
                "track_status": 1,
                "shipment_track": [
                    {
                        "awb_code": tracking_code,
                        "current_status": "In Transit",
                        "courier_name": "Fake Express",
                    }
                ],
                "shipment_track_activities": [
                    {
                        "date": datetime.now(UTC).isoformat(),
                        "activity": "Shipment picked up",
                        "location": "Warehouse, Jaipur",
                    }
                ],
            }
        }
