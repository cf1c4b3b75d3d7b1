"""Stripe Checkout adapter.

The stripe SDK is blocking, so every API call runs in a worker thread under
PAYMENT_PROVIDER_TIMEOUT; a slow provider surfaces as PaymentProviderError
instead of pinning the request.
"""

import asyncio
import time
from functools import partial

import stripe
import structlog

from shared.errors import PaymentProviderError, PaymentSessionNotFound, WebhookSignatureError

from .port import CheckoutLine, CheckoutSession, GatewayEvent, PaymentGateway

logger = structlog.get_logger(__name__)

# Stripe only accepts expires_at between 30 minutes and 24 hours out.
MIN_SESSION_TTL_MINUTES = 30
MAX_SESSION_TTL_MINUTES = 24 * 60


def _metadata(obj) -> dict:
    metadata = getattr(obj, "metadata", None) or {}
    found = {}
    for key in ("order_id", "user_id"):
        try:
            found[key] = metadata[key]
        except KeyError:
            continue
    return found


def _to_session(obj) -> CheckoutSession:
    return CheckoutSession(
        id=obj.id,
        url=getattr(obj, "url", None),
        payment_status=getattr(obj, "payment_status", None) or "unpaid",
        metadata=_metadata(obj),
        payment_intent=getattr(obj, "payment_intent", None),
        amount_total=getattr(obj, "amount_total", None),
    )


class StripeGateway(PaymentGateway):

    def __init__(
        self,
        api_key: str,
        webhook_secret: str,
        currency: str = "inr",
        timeout: float = 15.0,
        session_ttl_minutes: int = 0,
    ) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.currency = currency
        self.timeout = timeout
        self.session_ttl_minutes = session_ttl_minutes

    async def _call(self, operation: str, func, *args, **kwargs):
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(partial(func, *args, api_key=self.api_key, **kwargs)),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error("payment_provider_timeout", operation=operation, timeout=self.timeout)
            raise PaymentProviderError(f"Payment provider timed out during {operation}")
        except stripe.InvalidRequestError as exc:
            if getattr(exc, "code", None) == "resource_missing":
                raise PaymentSessionNotFound(str(kwargs.get("id") or (args[0] if args else "")))
            logger.error("payment_provider_error", operation=operation, error=str(exc))
            raise PaymentProviderError(exc.user_message or str(exc))
        except stripe.StripeError as exc:
            logger.error("payment_provider_error", operation=operation, error=str(exc))
            raise PaymentProviderError(exc.user_message or str(exc))

    async def create_checkout_session(
        self,
        order_id: int,
        user_id: int,
        lines: list[CheckoutLine],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        params = {
            "mode": "payment",
            "line_items": [
                {
                    "price_data": {
                        "currency": self.currency,
                        "product_data": {"name": line.name},
                        "unit_amount": line.unit_amount,
                    },
                    "quantity": line.quantity,
                }
                for line in lines
            ],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": {"order_id": str(order_id), "user_id": str(user_id)},
            # At most one provider session per order, however often creation is attempted
            "idempotency_key": f"checkout-session-order-{order_id}",
        }
        if self.session_ttl_minutes > 0:
            ttl = min(max(self.session_ttl_minutes, MIN_SESSION_TTL_MINUTES), MAX_SESSION_TTL_MINUTES)
            params["expires_at"] = int(time.time()) + ttl * 60

        session = await self._call("create_checkout_session", stripe.checkout.Session.create, **params)
        return _to_session(session)

    async def retrieve_session(self, session_id: str) -> CheckoutSession:
        session = await self._call("retrieve_session", stripe.checkout.Session.retrieve, session_id)
        return _to_session(session)

    def construct_event(self, payload: bytes, signature: str) -> GatewayEvent:
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as exc:
            raise WebhookSignatureError(f"Invalid payload: {exc}")
        except stripe.SignatureVerificationError as exc:
            raise WebhookSignatureError(str(exc))
        return GatewayEvent(id=event.id, type=event.type, session=_to_session(event.data.object))
