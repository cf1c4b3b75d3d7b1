import time
from typing import Optional

import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.models import PaymentType
from services.payment_service.gateway.port import PaymentGateway
from services.payment_service.service import PaymentReconciler
from services.product_service.service import InventoryLedger, get_inventory_ledger
from shared.config import settings
from shared.dependencies import get_payment_gateway
from shared.observability import storefront_checkout_duration_seconds, storefront_checkout_total

from .checkout_saga import build_checkout_saga
from .schemas import PlaceOrderRequest, PlaceOrderResponse

logger = structlog.get_logger(__name__)


class CheckoutService:

    def __init__(self, ledger: InventoryLedger, gateway: PaymentGateway):
        self.ledger = ledger
        self.gateway = gateway
        self.reconciler = PaymentReconciler(ledger, gateway)

    async def place_order(
        self,
        db: AsyncSession,
        user_id: int,
        data: PlaceOrderRequest,
        payment_type: PaymentType,
        origin: Optional[str] = None,
    ) -> PlaceOrderResponse:
        ctx = {
            "db": db,
            "ledger": self.ledger,
            "gateway": self.gateway,
            "reconciler": self.reconciler,
            "user_id": user_id,
            "address_id": data.address_id,
            "items": data.items,
            "payment_type": payment_type,
            "origin": origin or settings.CLIENT_URL,
        }

        started = time.perf_counter()
        try:
            await build_checkout_saga(payment_type).execute(ctx)
        except Exception as e:
            storefront_checkout_total.labels(status="failed", payment_type=payment_type.value).inc()
            logger.info("order_rejected", user_id=user_id, payment_type=payment_type.value, reason=str(e))
            raise e
        finally:
            storefront_checkout_duration_seconds.labels(payment_type=payment_type.value).observe(
                time.perf_counter() - started
            )

        storefront_checkout_total.labels(status="success", payment_type=payment_type.value).inc()
        logger.info(
            "order_placed",
            order_id=ctx["order_id"],
            user_id=user_id,
            payment_type=payment_type.value,
            amount=ctx["amount"],
        )

        if payment_type is PaymentType.ONLINE:
            return PlaceOrderResponse(url=ctx["url"], order_id=ctx["order_id"])
        return PlaceOrderResponse(message="Order Placed Successfully", order_id=ctx["order_id"])


def get_checkout_service(
    ledger: InventoryLedger = Depends(get_inventory_ledger),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> CheckoutService:
    return CheckoutService(ledger, gateway)
