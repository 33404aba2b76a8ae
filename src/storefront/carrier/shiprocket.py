"""Shiprocket adapter — REST client for the carrier aggregator.

Holds one bearer credential per client instance. The credential is refreshed
when it is missing or within ``refresh_buffer`` of expiry; concurrent callers
share a single in-flight login and all receive its outcome. A 401 on any call
forces exactly one re-login and exactly one retry of that call.

Every request carries a transport timeout. Booking failures of any kind
(timeout, HTTP error, unusable response) surface as ``ShipmentBookingFailure``
so the order workflow can degrade to "order placed, shipment pending".
"""

import threading
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import requests
import structlog

from storefront.carrier.port import CarrierPort, ShipmentBooking, ShipmentRequest
from storefront.errors import CarrierError, CredentialError, ShipmentBookingFailure

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://apiv2.shiprocket.in/v1/external"

# Package dimensions sent with every booking (cm / kg)
_PACKAGE = {"length": 10, "breadth": 10, "height": 10, "weight": 0.5}


@dataclass(frozen=True)
class Credential:
    token: str
    issued_at: datetime
    expires_at: datetime

    def remaining(self, now) -> timedelta:
        return self.expires_at - now


class ShiprocketClient(CarrierPort):
    def __init__(
        self,
        email,
        password,
        *,
        base_url=DEFAULT_BASE_URL,
        timeout=10.0,
        credential_lifetime=timedelta(days=10),
        refresh_buffer=timedelta(hours=24),
        pickup_location="Primary",
        session=None,
        clock=None,
    ):
        self._email = email
        self._password = password
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._credential_lifetime = credential_lifetime
        self._refresh_buffer = refresh_buffer
        self._pickup_location = pickup_location
        self._session = session or requests.Session()
        self._clock = clock or (lambda: datetime.now(UTC))

        self._lock = threading.Lock()
        self._credential: Credential | None = None
        self._inflight: Future | None = None

    # -------------------------------------------------------------------
    # Credential lifecycle
    # -------------------------------------------------------------------
    @property
    def credential(self) -> Credential | None:
        return self._credential

    def _is_fresh(self, credential: Credential | None) -> bool:
        return credential is not None and credential.remaining(self._clock()) > self._refresh_buffer

    def ensure_valid_credential(self, force=False, stale_token=None) -> Credential:
        """Return a usable credential, logging in if needed.

        Args:
            force: Log in even if the held credential looks fresh (after a 401).
            stale_token: The token that was rejected. If another caller has
                already replaced it, that newer credential is returned instead
                of logging in again.
        """
        with self._lock:
            credential = self._credential
            if force:
                if credential is not None and stale_token is not None and credential.token != stale_token:
                    return credential
            elif self._is_fresh(credential):
                return credential

            if self._inflight is None:
                self._inflight = Future()
                owner = True
            else:
                owner = False
            inflight = self._inflight

        if not owner:
            return inflight.result()

        try:
            credential = self._authenticate()
        except Exception as exc:
            with self._lock:
                self._inflight = None
            inflight.set_exception(exc)
            raise

        with self._lock:
            self._credential = credential
            self._inflight = None
        inflight.set_result(credential)
        return credential

    def _authenticate(self) -> Credential:
        logger.info("Authenticating with carrier aggregator", base_url=self._base_url)
        try:
            response = self._session.post(
                f"{self._base_url}/auth/login",
                json={"email": self._email, "password": self._password},
                timeout=self._timeout,
            )
            response.raise_for_status()
            token = response.json().get("token")
        except (requests.RequestException, ValueError) as exc:
            logger.error("Carrier authentication failed", error=str(exc))
            raise CredentialError(f"Carrier authentication failed: {exc}") from exc

        if not token:
            raise CredentialError("Carrier authentication returned no token")

        now = self._clock()
        return Credential(token=token, issued_at=now, expires_at=now + self._credential_lifetime)

    # -------------------------------------------------------------------
    # Authenticated transport
    # -------------------------------------------------------------------
    def _send(self, method, path, token, **kwargs) -> requests.Response:
        headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        return self._session.request(
            method,
            f"{self._base_url}/{path.lstrip('/')}",
            headers=headers,
            timeout=self._timeout,
            **kwargs,
        )

    def execute(self, method, path, **kwargs) -> dict:
        """Send an authenticated request, re-authenticating once on a 401.

        Any other non-2xx status raises ``requests.HTTPError`` unchanged.
        """
        credential = self.ensure_valid_credential()
        response = self._send(method, path, credential.token, **kwargs)

        if response.status_code == 401:
            logger.warning("Carrier rejected credential, re-authenticating", path=path)
            credential = self.ensure_valid_credential(force=True, stale_token=credential.token)
            response = self._send(method, path, credential.token, **kwargs)

        response.raise_for_status()
        return response.json() if response.content else {}

    # -------------------------------------------------------------------
    # Carrier operations
    # -------------------------------------------------------------------
    def shipment_payload(self, request: ShipmentRequest) -> dict:
        address = request.address
        return {
            "order_id": request.order_id,
            "order_date": request.order_date.strftime("%Y-%m-%d %H:%M"),
            "pickup_location": self._pickup_location,
            "billing_customer_name": address.get("first_name"),
            "billing_last_name": address.get("last_name") or "",
            "billing_address": address.get("street"),
            "billing_city": address.get("city"),
            "billing_pincode": address.get("zipcode"),
            "billing_state": address.get("state"),
            "billing_country": address.get("country") or "India",
            "billing_email": address.get("email"),
            "billing_phone": address.get("phone"),
            "shipping_is_billing": True,
            "order_items": [
                {
                    "name": line.name,
                    "sku": line.sku,
                    "units": line.units,
                    "selling_price": line.selling_price,
                }
                for line in request.lines
            ],
            "payment_method": "COD" if request.cash_on_delivery else "Prepaid",
            "shipping_charges": request.shipping_charges,
            "sub_total": request.sub_total,
            **_PACKAGE,
        }

    def create_shipment(self, request: ShipmentRequest) -> ShipmentBooking:
        try:
            data = self.execute("POST", "orders/create/adhoc", json=self.shipment_payload(request))
        except (requests.RequestException, ValueError, CarrierError) as exc:
            logger.warning("Shipment booking failed", order_id=request.order_id, error=str(exc))
            raise ShipmentBookingFailure(f"Shipment booking failed for order {request.order_id}: {exc}") from exc

        carrier_order_id = data.get("order_id")
        shipment_id = data.get("shipment_id")
        if not carrier_order_id or not shipment_id:
            raise ShipmentBookingFailure(f"Carrier response for order {request.order_id} lacks identifiers")

        tracking_code = data.get("awb_code") or None
        booking = ShipmentBooking(
            shipment_id=str(shipment_id),
            carrier_order_id=str(carrier_order_id),
            tracking_code=tracking_code,
            carrier_name=data.get("courier_name") or None,
            tracking_url=f"https://shiprocket.co/tracking/{tracking_code}" if tracking_code else None,
            raw=data,
        )
        logger.info(
            "Shipment booked",
            order_id=request.order_id,
            carrier_order_id=booking.carrier_order_id,
            shipment_id=booking.shipment_id,
        )
        return booking

    def cancel_shipment(self, carrier_order_id: str) -> dict:
        try:
            return self.execute("POST", "orders/cancel", json={"ids": [carrier_order_id]})
        except (requests.RequestException, ValueError) as exc:
            raise CarrierError(f"Shipment cancellation failed for {carrier_order_id}: {exc}") from exc

    def get_tracking(self, tracking_code: str) -> dict:
        try:
            return self.execute("GET", f"courier/track/awb/{tracking_code}")
        except (requests.RequestException, ValueError) as exc:
            raise CarrierError(f"Tracking lookup failed for {tracking_code}: {exc}") from exc
