from sqlalchemy.ext.asyncio import AsyncSession

from services.product_service.repository import ProductRepository
from shared.errors import ProductNotFound

from .repository import CartRepository


class CartService:

    @staticmethod
    async def get_cart(db: AsyncSession, user_id: int) -> dict[int, int]:
        items = await CartRepository.get_items(db, user_id)
        return {item.product_id: item.quantity for item in items}

    @staticmethod
    async def replace_cart(db: AsyncSession, user_id: int, items: dict[int, int]) -> dict[int, int]:
        # Zero or negative quantity means "remove the entry"
        kept = {product_id: quantity for product_id, quantity in items.items() if quantity >= 1}
        if kept:
            known = await ProductRepository.get_products_by_ids(db, list(kept))
            for product_id in kept:
                if product_id not in known:
                    raise ProductNotFound(product_id)
        await CartRepository.replace_items(db, user_id, kept)
        return kept

    @staticmethod
    async def clear_cart(db: AsyncSession, user_id: int) -> None:
        await CartRepository.clear_cart(db, user_id)
