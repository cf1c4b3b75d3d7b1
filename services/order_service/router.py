from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security.dependencies import get_current_seller, get_current_user

from .schemas import OrderListResponse, StatusUpdate, StatusUpdateResponse
from .service import OrderService, OrderStatusMachine, get_order_status_machine

router = APIRouter(prefix="/api/order", tags=["Orders"])


@router.get("/user", response_model=OrderListResponse)
async def user_orders(
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    orders = await OrderService.list_user_orders(db, user_id)
    return OrderListResponse(orders=orders)


@router.get("/seller", response_model=OrderListResponse)
async def seller_orders(
    seller_id: int = Depends(get_current_seller),
    db: AsyncSession = Depends(get_db),
):
    orders = await OrderService.list_seller_orders(db, seller_id)
    return OrderListResponse(orders=orders)


@router.patch("/{order_id}/status", response_model=StatusUpdateResponse)
async def update_order_status(
    order_id: int,
    payload: StatusUpdate,
    seller_id: int = Depends(get_current_seller),
    db: AsyncSession = Depends(get_db),
    machine: OrderStatusMachine = Depends(get_order_status_machine),
):
    order = await machine.transition(db, order_id, payload.status, seller_id)
    return StatusUpdateResponse(message=f"Order updated to {order.status}", order=order)
