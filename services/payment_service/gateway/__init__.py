"""Payment gateway factory.

PAYMENT_GATEWAY selects the adapter wired onto the app at startup:
- "stripe": StripeGateway (production)
- "fake": FakeGateway (local development without provider credentials)
"""

import warnings

from shared.config import settings

from .fake_adapter import FakeGateway
from .port import PaymentGateway
from .stripe_adapter import StripeGateway


def build_gateway() -> PaymentGateway:
    if settings.PAYMENT_GATEWAY == "fake":
        return FakeGateway(webhook_secret=settings.STRIPE_WEBHOOK_SECRET or "whsec_fake")

    if not settings.STRIPE_SECRET_KEY or not settings.STRIPE_WEBHOOK_SECRET:
        warnings.warn(
            "STRIPE_SECRET_KEY / STRIPE_WEBHOOK_SECRET are not set. "
            "Online checkout and webhook verification will fail until they are.",
            stacklevel=2,
        )
    return StripeGateway(
        api_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        currency=settings.PAYMENT_CURRENCY,
        timeout=settings.PAYMENT_PROVIDER_TIMEOUT,
        session_ttl_minutes=settings.CHECKOUT_SESSION_TTL_MINUTES,
    )


__all__ = ["FakeGateway", "PaymentGateway", "StripeGateway", "build_gateway"]
