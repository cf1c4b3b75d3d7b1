from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Product


class ProductRepository:

    @staticmethod
    async def create_product(db: AsyncSession, product: Product):
        db.add(product)
        await db.commit()
        await db.refresh(product)
        return product

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: int) -> Optional[Product]:
        result = await db.execute(
            select(Product).where(Product.id == product_id).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_products_by_ids(db: AsyncSession, product_ids: list[int]) -> dict[int, Product]:
        result = await db.execute(
            select(Product).where(Product.id.in_(product_ids)).execution_options(populate_existing=True)
        )
        return {product.id: product for product in result.scalars().all()}

    @staticmethod
    async def list_in_stock(db: AsyncSession):
        result = await db.execute(
            select(Product).where(Product.in_stock.is_(True)).order_by(Product.id)
        )
        return result.scalars().all()

    @staticmethod
    async def list_by_seller(db: AsyncSession, seller_id: int):
        result = await db.execute(
            select(Product).where(Product.seller_id == seller_id).order_by(Product.id)
        )
        return result.scalars().all()

    @staticmethod
    async def decrement_stock(db: AsyncSession, product_id: int, quantity: int) -> Optional[int]:
        """
        Compare-and-decrement in a single statement: the row only changes when
        enough stock is left, so concurrent callers can never drive it negative.
        Returns the new stock, or None when the guard rejected the update.
        Does not commit.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity, in_stock=(Product.stock - quantity) > 0)
            .returning(Product.stock)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def increment_stock(db: AsyncSession, product_id: int, quantity: int) -> Optional[int]:
        """Returns the new stock, or None if the product no longer exists. Does not commit."""
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity, in_stock=(Product.stock + quantity) > 0)
            .returning(Product.stock)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def update_seller_product(
        db: AsyncSession, product_id: int, seller_id: int, **values
    ) -> Optional[Product]:
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.seller_id == seller_id)
            .values(**values)
            .returning(Product.id)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        if result.scalar_one_or_none() is None:
            await db.rollback()
            return None
        await db.commit()
        result = await db.execute(
            select(Product).where(Product.id == product_id).execution_options(populate_existing=True)
        )
        return result.scalars().first()
