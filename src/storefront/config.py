"""Application settings read from the environment.

Protean's own configuration (databases, brokers, processing mode) lives in
``domain.toml`` next to the domain. Everything the storefront's services and
adapters need is collected here once, at startup, and passed down explicitly.
"""

import os
from dataclasses import dataclass, field, replace
from datetime import timedelta


def _float(environ, key, default):
    raw = environ.get(key)
    return float(raw) if raw not in (None, "") else default


def _int(environ, key, default):
    raw = environ.get(key)
    return int(raw) if raw not in (None, "") else default


@dataclass(frozen=True)
class Settings:
    env: str = "development"

    # Orders
    delivery_charge: float = 150.0
    currency: str = "INR"
    cancelled_retention: timedelta = timedelta(days=2)
    admin_email: str = "admin@example.com"

    # Carrier aggregator
    carrier_adapter: str = "fake"
    shiprocket_base_url: str = "https://apiv2.shiprocket.in/v1/external"
    shiprocket_email: str = ""
    shiprocket_password: str = field(default="", repr=False)
    shiprocket_pickup_location: str = "Primary"
    credential_lifetime: timedelta = timedelta(days=10)
    credential_refresh_buffer: timedelta = timedelta(hours=24)
    carrier_timeout_seconds: float = 10.0
    tracking_ttl: timedelta = timedelta(minutes=5)
    tracking_cache_max_entries: int | None = None

    # Payment gateways
    payment_adapter: str = "fake"
    stripe_secret_key: str = field(default="", repr=False)
    razorpay_key_id: str = ""
    razorpay_key_secret: str = field(default="", repr=False)
    payment_timeout_seconds: float = 10.0

    # Notifications
    notification_adapter: str = "log"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        environ = os.environ if environ is None else environ
        max_entries = _int(environ, "TRACKING_CACHE_MAX_ENTRIES", 0)
        return cls(
            env=(environ.get("ENVIRONMENT") or environ.get("PROTEAN_ENV") or "development").lower(),
            delivery_charge=_float(environ, "DELIVERY_CHARGE", 150.0),
            currency=environ.get("CURRENCY", "INR"),
            cancelled_retention=timedelta(days=_float(environ, "CANCELLED_RETENTION_DAYS", 2)),
            admin_email=environ.get("ADMIN_EMAIL", "admin@example.com"),
            carrier_adapter=environ.get("CARRIER_ADAPTER", "fake"),
            shiprocket_base_url=environ.get("SHIPROCKET_BASE_URL", "https://apiv2.shiprocket.in/v1/external"),
            shiprocket_email=environ.get("SHIPROCKET_EMAIL", ""),
            shiprocket_password=environ.get("SHIPROCKET_PASSWORD", ""),
            shiprocket_pickup_location=environ.get("SHIPROCKET_PICKUP_LOCATION", "Primary"),
            credential_lifetime=timedelta(days=_float(environ, "SHIPROCKET_TOKEN_LIFETIME_DAYS", 10)),
            credential_refresh_buffer=timedelta(hours=_float(environ, "SHIPROCKET_REFRESH_BUFFER_HOURS", 24)),
            carrier_timeout_seconds=_float(environ, "CARRIER_TIMEOUT_SECONDS", 10.0),
            tracking_ttl=timedelta(minutes=_float(environ, "TRACKING_TTL_MINUTES", 5)),
            tracking_cache_max_entries=max_entries or None,
            payment_adapter=environ.get("PAYMENT_ADAPTER", "fake"),
            stripe_secret_key=environ.get("STRIPE_SECRET_KEY", ""),
            razorpay_key_id=environ.get("RAZORPAY_KEY_ID", ""),
            razorpay_key_secret=environ.get("RAZORPAY_KEY_SECRET", ""),
            payment_timeout_seconds=_float(environ, "PAYMENT_TIMEOUT_SECONDS", 10.0),
            notification_adapter=environ.get("NOTIFICATION_ADAPTER", "log"),
        )

    def with_overrides(self, **changes) -> "Settings":
        return replace(self, **changes)

    @property
    def is_production(self) -> bool:
        return self.env == "production"
