from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.models import PaymentType
from shared.config import settings
from shared.config.database import get_db
from shared.security import get_current_user, limiter

from .schemas import PlaceOrderRequest, PlaceOrderResponse
from .service import CheckoutService, get_checkout_service

router = APIRouter(prefix="/api/order", tags=["Checkout"])


@router.post("/cod", response_model=PlaceOrderResponse)
@limiter.limit(settings.CHECKOUT_RATE_LIMIT)
async def place_order_cod(
    request: Request,                          # REQUIRED: slowapi needs this to check IP/Headers
    payload: PlaceOrderRequest,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    return await checkout.place_order(db, user_id, payload, PaymentType.COD)


@router.post("/stripe", response_model=PlaceOrderResponse)
@limiter.limit(settings.CHECKOUT_RATE_LIMIT)
async def place_order_online(
    request: Request,
    payload: PlaceOrderRequest,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    return await checkout.place_order(
        db, user_id, payload, PaymentType.ONLINE, origin=request.headers.get("origin")
    )
