"""Shared fixtures for storefront tests."""

import json
from datetime import timedelta

import pytest
from protean import current_domain
from storefront.carrier.fake_adapter import FakeCarrier
from storefront.catalogue.registration import RegisterProduct
from storefront.config import Settings
from storefront.notification.fake_adapter import FakeDispatcher
from storefront.payment.cash import CashOnDelivery
from storefront.payment.fake_adapter import FakeGateway
from storefront.utils.clock import utcnow
from storefront.wiring import build_services


class FakeClock:
    """Manually advanced clock, starting at the real current time."""

    def __init__(self, now=None):
        self.now = now or utcnow()

    def __call__(self):
        return self.now

    def advance(self, **delta):
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def settings():
    return Settings(env="test", admin_email="admin@storefront.test")


@pytest.fixture()
def carrier():
    return FakeCarrier()


@pytest.fixture()
def gateways():
    return {
        "COD": CashOnDelivery(),
        "Stripe": FakeGateway("Stripe"),
        "Razorpay": FakeGateway("Razorpay"),
    }


@pytest.fixture()
def notifier():
    return FakeDispatcher()


@pytest.fixture()
def services(settings, carrier, gateways, notifier, clock):
    return build_services(settings, carrier=carrier, gateways=gateways, notifier=notifier, clock=clock)


@pytest.fixture()
def workflow(services):
    return services.workflow


@pytest.fixture()
def register_product():
    """Register a product (and its stock record) through the command path."""

    def _register(name="Chikankari Kurti", category="Kurti", base_price=1000.0, stock=None):
        command = RegisterProduct(
            name=name,
            category=category,
            base_price=base_price,
            initial_stock=json.dumps(stock if stock is not None else {"M": 5}),
        )
        return current_domain.process(command, asynchronous=False)

    return _register


@pytest.fixture()
def address():
    return {
        "first_name": "Asha",
        "last_name": "Rao",
        "email": "asha@example.com",
        "phone": "9876543210",
        "street": "12 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "zipcode": "560001",
    }
