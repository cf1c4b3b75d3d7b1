from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security.dependencies import get_current_seller

from .schemas import (
    ProductCreate,
    ProductEnvelope,
    ProductListResponse,
    StockToggle,
    StockUpdate,
)
from .service import InventoryLedger, ProductService, get_inventory_ledger

router = APIRouter(prefix="/api/product", tags=["Products"])


@router.get("/list", response_model=ProductListResponse)
async def list_products(db: AsyncSession = Depends(get_db)):
    # Shoppers only ever see items flagged in stock
    products = await ProductService.list_products(db)
    return ProductListResponse(products=products)


@router.get("/id/{product_id}", response_model=ProductEnvelope)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    product = await ProductService.get_product_by_id(db, product_id)
    return ProductEnvelope(product=product)


@router.get("/seller", response_model=ProductListResponse)
async def seller_products(
    seller_id: int = Depends(get_current_seller),
    db: AsyncSession = Depends(get_db),
):
    products = await ProductService.list_seller_products(db, seller_id)
    return ProductListResponse(products=products)


@router.post("/add", response_model=ProductEnvelope, status_code=201)
async def add_product(
    payload: ProductCreate,
    seller_id: int = Depends(get_current_seller),
    db: AsyncSession = Depends(get_db),
):
    product = await ProductService.create_product(db, seller_id, payload)
    return ProductEnvelope(message="Product Added", product=product)


@router.post("/stock", response_model=ProductEnvelope)
async def change_availability(
    payload: StockToggle,
    seller_id: int = Depends(get_current_seller),
    db: AsyncSession = Depends(get_db),
    ledger: InventoryLedger = Depends(get_inventory_ledger),
):
    product = await ProductService.set_availability(db, ledger, seller_id, payload.id, payload.in_stock)
    return ProductEnvelope(message="Stock status updated", product=product)


@router.patch("/stock/update", response_model=ProductEnvelope)
async def update_stock(
    payload: StockUpdate,
    seller_id: int = Depends(get_current_seller),
    db: AsyncSession = Depends(get_db),
    ledger: InventoryLedger = Depends(get_inventory_ledger),
):
    product = await ProductService.set_stock(db, ledger, seller_id, payload.id, payload.stock)
    return ProductEnvelope(message="Stock updated", product=product)
