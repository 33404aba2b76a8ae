"""Carrier adapter abstraction — pluggable shipment carrier integration."""

from storefront.carrier.port import CarrierPort


def build_carrier(settings) -> CarrierPort:
    """Build the carrier adapter named by ``settings.carrier_adapter``.

    ``fake`` (the default) for development and tests, ``shiprocket`` in
    production.
    """
    adapter = settings.carrier_adapter
    if adapter == "fake":
        from storefront.carrier.fake_adapter import FakeCarrier

        return FakeCarrier()
    if adapter == "shiprocket":
        from storefront.carrier.shiprocket import ShiprocketClient

        return ShiprocketClient(
            settings.shiprocket_email,
            settings.shiprocket_password,
            base_url=settings.shiprocket_base_url,
            timeout=settings.carrier_timeout_seconds,
            credential_lifetime=settings.credential_lifetime,
            refresh_buffer=settings.credential_refresh_buffer,
            pickup_location=settings.shiprocket_pickup_location,
        )
    raise ValueError(f"Unknown carrier adapter: {adapter}")
