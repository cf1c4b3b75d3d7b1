from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security.dependencies import get_current_user

from .schemas import CartResponse, CartUpdate
from .service import CartService

router = APIRouter(prefix="/api/cart", tags=["Cart"])


@router.get("", response_model=CartResponse, response_model_by_alias=True)
async def get_cart(
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return CartResponse(cart_items=await CartService.get_cart(db, user_id))


@router.post("/update", response_model=CartResponse, response_model_by_alias=True)
async def update_cart(
    payload: CartUpdate,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items = await CartService.replace_cart(db, user_id, payload.cart_items)
    return CartResponse(cart_items=items)
