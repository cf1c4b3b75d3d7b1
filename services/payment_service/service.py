"""
Payment confirmation reconciler.

Three signals converge here: the provider's webhook push, the buyer's
fallback confirm after the success redirect, and session expiry/failure.
Every path is safe to repeat and to race with the others:

- paying is a conditional flip of is_paid, so paid_at and the receipt are
  written once and the cart is cleared once;
- discarding deletes the order only while it is still unpaid, and stock is
  released only by the call whose delete succeeded.
"""
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from services.cart_service.service import CartService
from services.order_service.repository import OrderRepository
from services.product_service.service import InventoryLedger, StockLevel, get_inventory_ledger
from shared.dependencies import get_payment_gateway
from shared.errors import OrderNotFound, ValidationError
from shared.observability import storefront_payment_events_total

from .gateway.port import (
    ASYNC_FAILED_EVENT,
    ASYNC_SUCCEEDED_EVENT,
    COMPLETED_EVENT,
    EXPIRED_EVENT,
    CheckoutSession,
    GatewayEvent,
    PaymentGateway,
)
from .models import PaymentEvent
from .repository import PaymentEventRepository
from .schemas import ConfirmResponse

logger = structlog.get_logger(__name__)

PAYMENT_METHOD = "Stripe"

PAID_EVENTS = frozenset({COMPLETED_EVENT, ASYNC_SUCCEEDED_EVENT})
DISCARD_EVENTS = frozenset({EXPIRED_EVENT, ASYNC_FAILED_EVENT})


def _order_id(session: CheckoutSession) -> Optional[int]:
    try:
        return int(session.metadata["order_id"])
    except (KeyError, TypeError, ValueError):
        return None


def _receipt(session: CheckoutSession) -> dict:
    return {
        "id": session.payment_intent,
        "status": session.payment_status,
        "amount_received": (session.amount_total or 0) / 100,
    }


class PaymentReconciler:

    def __init__(self, ledger: InventoryLedger, gateway: PaymentGateway):
        self.ledger = ledger
        self.gateway = gateway

    async def apply_payment(self, db: AsyncSession, order_id: int, session: CheckoutSession) -> str:
        """
        Marks the order paid and clears the buyer's cart. Does not commit.

        Returns "paid" for the call that flipped the order, "unchanged" when it
        was already paid, and "orphaned" when the money arrived for an order
        that was discarded or cancelled in the meantime.
        """
        user_id = await OrderRepository.mark_paid(
            db,
            order_id,
            paid_at=datetime.now(timezone.utc),
            payment_method=PAYMENT_METHOD,
            payment_info=_receipt(session),
        )
        if user_id is not None:
            await CartService.clear_cart(db, user_id)
            return "paid"

        order = await OrderRepository.get_order(db, order_id)
        if order is not None and order.is_paid:
            return "unchanged"

        # Needs a manual refund: nothing on our side will ship for this payment.
        logger.error(
            "payment_for_missing_order",
            order_id=order_id,
            session_id=session.id,
            payment_intent=session.payment_intent,
            order_status=order.status if order is not None else None,
        )
        return "orphaned"

    async def discard_order(self, db: AsyncSession, order_id: int) -> list[StockLevel]:
        """
        Restores stock for every line and hard-deletes the order, provided it is
        still unpaid. Returns the new stock levels to publish after the caller
        commits; empty when there was nothing (left) to discard.
        """
        order = await OrderRepository.get_order(db, order_id)
        if order is None or order.is_paid:
            return []

        lines = [(item.product_id, item.quantity) for item in order.items]
        if not await OrderRepository.delete_unpaid(db, order_id):
            return []

        levels = []
        for product_id, quantity in lines:
            level = await self.ledger.release(db, product_id, quantity)
            if level is not None:
                levels.append(level)
        return levels

    async def handle_event(self, db: AsyncSession, event: GatewayEvent) -> str:
        """Apply one verified webhook event. Returns the outcome label."""
        if event.type not in PAID_EVENTS and event.type not in DISCARD_EVENTS:
            outcome = "ignored"
            storefront_payment_events_total.labels("webhook", event.type, outcome).inc()
            return outcome

        order_id = _order_id(event.session)
        if order_id is None:
            # Acknowledge anyway: retrying cannot add the metadata we need.
            logger.error("webhook_missing_metadata", event_id=event.id, session_id=event.session.id)
            outcome = "missing_metadata"
            storefront_payment_events_total.labels("webhook", event.type, outcome).inc()
            return outcome

        record = PaymentEvent(id=event.id, type=event.type, session_id=event.session.id, order_id=order_id)
        levels = []
        try:
            if not await PaymentEventRepository.record(db, record):
                logger.info("webhook_replay_ignored", event_id=event.id, order_id=order_id)
                outcome = "replayed"
                storefront_payment_events_total.labels("webhook", event.type, outcome).inc()
                return outcome

            if event.type in PAID_EVENTS:
                if event.session.is_paid:
                    outcome = await self.apply_payment(db, order_id, event.session)
                else:
                    # Delayed payment methods complete later via async_payment_succeeded.
                    outcome = "awaiting_payment"
            else:
                levels = await self.discard_order(db, order_id)
                outcome = "discarded" if levels else "nothing_to_discard"

            await db.commit()
        except Exception:
            await db.rollback()
            raise

        await self.ledger.publish(levels)
        storefront_payment_events_total.labels("webhook", event.type, outcome).inc()
        logger.info("webhook_processed", event_id=event.id, type=event.type, order_id=order_id, outcome=outcome)
        return outcome

    async def confirm_session(self, db: AsyncSession, session_id: Optional[str]) -> ConfirmResponse:
        """Client pull after the success redirect, for when the webhook never arrives."""
        if not session_id:
            raise ValidationError("Missing session_id")

        session = await self.gateway.retrieve_session(session_id)
        if not session.is_paid:
            storefront_payment_events_total.labels("confirm", "poll", "not_paid").inc()
            return ConfirmResponse(success=False, message="Payment not completed yet")

        order_id = _order_id(session)
        if order_id is None or "user_id" not in session.metadata:
            raise ValidationError("Missing metadata")

        try:
            outcome = await self.apply_payment(db, order_id, session)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        storefront_payment_events_total.labels("confirm", "poll", outcome).inc()
        if outcome == "orphaned":
            raise OrderNotFound(order_id)
        logger.info("payment_confirmed", session_id=session_id, order_id=order_id, outcome=outcome)
        return ConfirmResponse(success=True, message="Payment confirmed")


def get_payment_reconciler(
    ledger: InventoryLedger = Depends(get_inventory_ledger),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentReconciler:
    return PaymentReconciler(ledger, gateway)
