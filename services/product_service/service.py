from dataclasses import dataclass
from typing import Iterable, Optional

import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from services.broadcast_service.broadcaster import StockBroadcaster
from shared.dependencies import get_stock_broadcaster
from shared.errors import InsufficientStock, NotFoundError, ProductNotFound, ValidationError

from .models import Product
from .repository import ProductRepository
from .schemas import ProductCreate

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StockLevel:
    product_id: int
    stock: int


class InventoryLedger:
    """
    Owns per-product stock. reserve/release run inside the caller's transaction;
    once the caller has committed it hands the returned levels to publish() so
    observers never hear about stock that was rolled back.
    """

    def __init__(self, broadcaster: StockBroadcaster):
        self.broadcaster = broadcaster

    async def reserve(self, db: AsyncSession, product_id: int, quantity: int) -> StockLevel:
        if quantity <= 0:
            raise ValidationError("Quantity must be a positive integer")

        stock = await ProductRepository.decrement_stock(db, product_id, quantity)
        if stock is None:
            product = await ProductRepository.get_product_by_id(db, product_id)
            if product is None:
                raise ProductNotFound(product_id)
            raise InsufficientStock(product.name)

        logger.info("stock_reserved", product_id=product_id, quantity=quantity, stock=stock)
        return StockLevel(product_id, stock)

    async def release(self, db: AsyncSession, product_id: int, quantity: int) -> Optional[StockLevel]:
        # No upper bound: restoring more than was reserved is the caller's bug.
        stock = await ProductRepository.increment_stock(db, product_id, quantity)
        if stock is None:
            logger.warning("stock_release_skipped", product_id=product_id, quantity=quantity)
            return None

        logger.info("stock_released", product_id=product_id, quantity=quantity, stock=stock)
        return StockLevel(product_id, stock)

    async def publish(self, levels: Iterable[Optional[StockLevel]]) -> None:
        for level in levels:
            if level is not None:
                await self.broadcaster.notify(level.product_id, level.stock)


def get_inventory_ledger(
    broadcaster: StockBroadcaster = Depends(get_stock_broadcaster),
) -> InventoryLedger:
    return InventoryLedger(broadcaster)


class ProductService:

    @staticmethod
    async def create_product(db: AsyncSession, seller_id: int, data: ProductCreate):
        stock = max(0, data.stock)
        product = Product(
            name=data.name,
            description=data.description,
            category=data.category,
            price=data.price,
            offer_price=data.offer_price,
            stock=stock,
            in_stock=stock > 0,
            seller_id=seller_id,
        )
        return await ProductRepository.create_product(db, product)

    @staticmethod
    async def list_products(db: AsyncSession):
        return await ProductRepository.list_in_stock(db)

    @staticmethod
    async def list_seller_products(db: AsyncSession, seller_id: int):
        return await ProductRepository.list_by_seller(db, seller_id)

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: int) -> Product:
        product = await ProductRepository.get_product_by_id(db, product_id)
        if not product:
            raise ProductNotFound(product_id)
        return product

    @staticmethod
    async def set_availability(
        db: AsyncSession, ledger: InventoryLedger, seller_id: int, product_id: int, in_stock: bool
    ) -> Product:
        # Manual override: turning off zeroes stock, turning on leaves stock alone.
        values = {"in_stock": in_stock}
        if not in_stock:
            values["stock"] = 0
        product = await ProductRepository.update_seller_product(db, product_id, seller_id, **values)
        if product is None:
            raise NotFoundError("Not authorized or product not found")

        logger.info("availability_changed", product_id=product_id, in_stock=in_stock, stock=product.stock)
        await ledger.publish([StockLevel(product.id, product.stock)])
        return product

    @staticmethod
    async def set_stock(
        db: AsyncSession, ledger: InventoryLedger, seller_id: int, product_id: int, stock: int
    ) -> Product:
        stock = max(0, stock)
        product = await ProductRepository.update_seller_product(
            db, product_id, seller_id, stock=stock, in_stock=stock > 0
        )
        if product is None:
            raise NotFoundError("Not authorized or product not found")

        logger.info("stock_set", product_id=product_id, stock=stock)
        await ledger.publish([StockLevel(product.id, product.stock)])
        return product
