from datetime import datetime
from typing import Optional

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Order, OrderItem, OrderStatus, PaymentType


def _visible_to_buyers():
    # Online orders stay hidden until the provider confirms payment
    return or_(Order.payment_type == PaymentType.COD.value, Order.is_paid.is_(True))


class OrderRepository:

    @staticmethod
    async def add_order(db: AsyncSession, order: Order) -> Order:
        """Stages the order and assigns its id. Does not commit."""
        db.add(order)
        await db.flush()
        return order

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int) -> Optional[Order]:
        result = await db.execute(
            select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def list_user_orders(db: AsyncSession, user_id: int):
        result = await db.execute(
            select(Order)
            .where(Order.user_id == user_id, _visible_to_buyers())
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return result.scalars().all()

    @staticmethod
    async def list_seller_orders(db: AsyncSession, seller_id: int):
        result = await db.execute(
            select(Order)
            .where(Order.items.any(OrderItem.seller_id == seller_id), _visible_to_buyers())
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return result.scalars().all()

    @staticmethod
    async def mark_paid(
        db: AsyncSession,
        order_id: int,
        paid_at: datetime,
        payment_method: str,
        payment_info: dict,
    ) -> Optional[int]:
        """
        Flips an unpaid, uncancelled order to paid. Only the first caller wins,
        so paid_at and the receipt are written exactly once however many
        confirmations race in. Returns the owning user id when this call applied the change,
        None otherwise. Does not commit.
        """
        stmt = (
            update(Order)
            .where(
                Order.id == order_id,
                Order.is_paid.is_(False),
                Order.status != OrderStatus.CANCELLED.value,
            )
            .values(
                is_paid=True,
                paid_at=paid_at,
                payment_method=payment_method,
                payment_info=payment_info,
            )
            .returning(Order.user_id)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def delete_unpaid(db: AsyncSession, order_id: int) -> bool:
        """
        Hard-deletes the order (items cascade) if it is still unpaid. A cancelled
        order already gave its stock back, so it is left alone. Does not commit.
        """
        stmt = (
            delete(Order)
            .where(
                Order.id == order_id,
                Order.is_paid.is_(False),
                Order.status != OrderStatus.CANCELLED.value,
            )
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    @staticmethod
    async def update_status(db: AsyncSession, order_id: int, current: str, target: str) -> bool:
        """Compare-and-set on status; False when someone else moved the order first. Does not commit."""
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status == current)
            .values(status=target)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1
