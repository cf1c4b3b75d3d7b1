"""In-memory payment gateway for development and testing.

Sessions live in a dict; webhook payloads are signed with HMAC-SHA256 over the
raw bytes, mirroring how the real provider authenticates its pushes.
"""

import hashlib
import hmac
import json
from dataclasses import replace
from uuid import uuid4

from shared.errors import PaymentProviderError, PaymentSessionNotFound, WebhookSignatureError

from .port import CheckoutLine, CheckoutSession, GatewayEvent, PaymentGateway


class FakeGateway(PaymentGateway):

    def __init__(self, webhook_secret: str = "whsec_fake") -> None:
        self.webhook_secret = webhook_secret
        self.sessions: dict[str, CheckoutSession] = {}
        self.calls: list[dict] = []
        self.should_fail: bool = False

    def configure(self, should_fail: bool) -> None:
        self.should_fail = should_fail

    async def create_checkout_session(
        self,
        order_id: int,
        user_id: int,
        lines: list[CheckoutLine],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        self.calls.append({
            "method": "create_checkout_session",
            "order_id": order_id,
            "user_id": user_id,
            "lines": lines,
            "success_url": success_url,
            "cancel_url": cancel_url,
        })
        if self.should_fail:
            raise PaymentProviderError("Payment provider unavailable")

        session_id = f"cs_fake_{uuid4().hex[:16]}"
        session = CheckoutSession(
            id=session_id,
            url=f"https://checkout.fake.test/pay/{session_id}",
            metadata={"order_id": str(order_id), "user_id": str(user_id)},
            amount_total=sum(line.unit_amount * line.quantity for line in lines),
        )
        self.sessions[session_id] = session
        return session

    async def retrieve_session(self, session_id: str) -> CheckoutSession:
        self.calls.append({"method": "retrieve_session", "session_id": session_id})
        if self.should_fail:
            raise PaymentProviderError("Payment provider unavailable")
        try:
            return self.sessions[session_id]
        except KeyError:
            raise PaymentSessionNotFound(session_id)

    def complete_payment(self, session_id: str) -> CheckoutSession:
        """Simulate the buyer paying on the hosted page."""
        session = replace(
            self.sessions[session_id],
            payment_status="paid",
            payment_intent=f"pi_fake_{uuid4().hex[:12]}",
        )
        self.sessions[session_id] = session
        return session

    def sign(self, payload: bytes) -> str:
        return hmac.new(self.webhook_secret.encode(), payload, hashlib.sha256).hexdigest()

    def build_event(self, event_type: str, session_id: str, event_id: str | None = None) -> bytes:
        session = self.sessions[session_id]
        return json.dumps({
            "id": event_id or f"evt_fake_{uuid4().hex[:12]}",
            "type": event_type,
            "data": {"object": {
                "id": session.id,
                "url": session.url,
                "payment_status": session.payment_status,
                "metadata": session.metadata,
                "payment_intent": session.payment_intent,
                "amount_total": session.amount_total,
            }},
        }).encode()

    def construct_event(self, payload: bytes, signature: str) -> GatewayEvent:
        expected = self.sign(payload)
        if not signature or not hmac.compare_digest(expected, signature):
            raise WebhookSignatureError("No signatures found matching the expected signature for payload")
        try:
            body = json.loads(payload)
            obj = body["data"]["object"]
            return GatewayEvent(
                id=body["id"],
                type=body["type"],
                session=CheckoutSession(
                    id=obj["id"],
                    url=obj.get("url"),
                    payment_status=obj.get("payment_status") or "unpaid",
                    metadata=obj.get("metadata") or {},
                    payment_intent=obj.get("payment_intent"),
                    amount_total=obj.get("amount_total"),
                ),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise WebhookSignatureError(f"Invalid payload: {exc}")
