"""
Provider-facing endpoints.

The webhook reads the raw body: the signature covers the exact bytes the
provider sent, so the payload must not be parsed before verification.
"""
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Header, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.errors import StorefrontError, WebhookSignatureError

from .schemas import ConfirmResponse, WebhookAck
from .service import PaymentReconciler, get_payment_reconciler

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/order/stripe", tags=["Payments"])


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="stripe-signature"),
    db: AsyncSession = Depends(get_db),
    reconciler: PaymentReconciler = Depends(get_payment_reconciler),
):
    payload = await request.body()
    try:
        event = reconciler.gateway.construct_event(payload, stripe_signature or "")
    except WebhookSignatureError as exc:
        logger.error("webhook_signature_rejected", error=exc.message)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"received": False, "message": f"Webhook Error: {exc.message}"},
        )

    try:
        await reconciler.handle_event(db, event)
    except (StorefrontError, SQLAlchemyError) as exc:
        # 5xx makes the provider redeliver later
        logger.exception("webhook_processing_failed", event_id=event.id, type=event.type)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"received": False, "message": str(exc)},
        )

    return WebhookAck(received=True)


@router.get("/confirm", response_model=ConfirmResponse)
async def confirm_payment(
    session_id: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
    reconciler: PaymentReconciler = Depends(get_payment_reconciler),
):
    # No auth: the session id is the credential and only unlocks its own order.
    return await reconciler.confirm_session(db, session_id)
