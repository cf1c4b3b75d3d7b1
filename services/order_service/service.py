import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from services.product_service.service import InventoryLedger, get_inventory_ledger
from shared.errors import (
    AuthorizationError,
    ConflictError,
    InvalidStatus,
    InvalidTransition,
    OrderLocked,
    OrderNotFound,
)
from shared.observability import storefront_order_transitions_total

from .models import Order, OrderStatus, PaymentType
from .repository import OrderRepository

logger = structlog.get_logger(__name__)

# Delivered and Cancelled have no outgoing edges.
TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PLACED: frozenset({OrderStatus.CONFIRMED, OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)


class OrderService:

    @staticmethod
    async def list_user_orders(db: AsyncSession, user_id: int):
        return await OrderRepository.list_user_orders(db, user_id)

    @staticmethod
    async def list_seller_orders(db: AsyncSession, seller_id: int):
        return await OrderRepository.list_seller_orders(db, seller_id)


class OrderStatusMachine:
    """Seller-driven lifecycle. Cancelling puts every line's quantity back on the shelf."""

    def __init__(self, ledger: InventoryLedger):
        self.ledger = ledger

    async def transition(self, db: AsyncSession, order_id: int, target: str, seller_id: int) -> Order:
        try:
            target_status = OrderStatus(target)
        except ValueError:
            raise InvalidStatus(target)

        order = await OrderRepository.get_order(db, order_id)
        # Unpaid online orders are hidden from every listing and belong to the payment flow
        if order is None or (order.payment_type == PaymentType.ONLINE.value and not order.is_paid):
            raise OrderNotFound(order_id)
        if not any(item.seller_id == seller_id for item in order.items):
            raise AuthorizationError("Not authorized to update this order")

        current = OrderStatus(order.status)
        if current in TERMINAL_STATUSES:
            raise OrderLocked(current.value)
        if target_status not in TRANSITIONS[current]:
            raise InvalidTransition(current.value, target_status.value)

        levels = []
        try:
            if not await OrderRepository.update_status(db, order_id, current.value, target_status.value):
                raise ConflictError("Order was updated concurrently, please retry")
            if target_status is OrderStatus.CANCELLED:
                for item in order.items:
                    levels.append(await self.ledger.release(db, item.product_id, item.quantity))
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        await self.ledger.publish(levels)
        storefront_order_transitions_total.labels(
            from_status=current.value, to_status=target_status.value
        ).inc()
        logger.info(
            "order_status_changed",
            order_id=order_id,
            from_status=current.value,
            to_status=target_status.value,
            seller_id=seller_id,
        )
        return await OrderRepository.get_order(db, order_id)


def get_order_status_machine(
    ledger: InventoryLedger = Depends(get_inventory_ledger),
) -> OrderStatusMachine:
    return OrderStatusMachine(ledger)
