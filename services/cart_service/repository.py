from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import CartItem


class CartRepository:

    @staticmethod
    async def get_items(db: AsyncSession, user_id: int):
        result = await db.execute(
            select(CartItem).where(CartItem.user_id == user_id).order_by(CartItem.id)
        )
        return result.scalars().all()

    @staticmethod
    async def replace_items(db: AsyncSession, user_id: int, items: dict[int, int]):
        await db.execute(delete(CartItem).where(CartItem.user_id == user_id))
        for product_id, quantity in items.items():
            db.add(CartItem(user_id=user_id, product_id=product_id, quantity=quantity))
        await db.commit()

    @staticmethod
    async def clear_cart(db: AsyncSession, user_id: int) -> int:
        """Deletes every item in the user's cart. Joins the caller's transaction."""
        result = await db.execute(delete(CartItem).where(CartItem.user_id == user_id))
        return result.rowcount
