"""Payment gateway factory.

``build_gateways`` returns one adapter per payment method. Cash on delivery is
always local; Stripe and Razorpay use fake adapters unless
``settings.payment_adapter`` is ``live``.
"""

from storefront.payment.cash import CashOnDelivery
from storefront.payment.fake_adapter import FakeGateway
from storefront.payment.port import PaymentGateway


def build_gateways(settings) -> dict[str, PaymentGateway]:
    gateways: dict[str, PaymentGateway] = {"COD": CashOnDelivery()}

    if settings.payment_adapter == "fake":
        gateways["Stripe"] = FakeGateway("Stripe")
        gateways["Razorpay"] = FakeGateway("Razorpay")
    elif settings.payment_adapter == "live":
        from storefront.payment.razorpay_adapter import RazorpayGateway
        from storefront.payment.stripe_adapter import StripeCheckoutGateway

        gateways["Stripe"] = StripeCheckoutGateway(settings.stripe_secret_key)
        gateways["Razorpay"] = RazorpayGateway(
            settings.razorpay_key_id,
            settings.razorpay_key_secret,
            timeout=settings.payment_timeout_seconds,
        )
    else:
        raise ValueError(f"Unknown payment adapter: {settings.payment_adapter}")

    return gateways
