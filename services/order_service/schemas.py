from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class ProductSummary(BaseModel):
    id: int
    name: str
    offer_price: float

    class Config:
        from_attributes = True


class OrderItemResponse(BaseModel):
    product_id: int
    quantity: int
    seller_id: int
    product: Optional[ProductSummary] = None

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    user_id: int
    items: list[OrderItemResponse]
    amount: int
    address_id: int
    payment_type: str
    is_paid: bool
    paid_at: Optional[datetime]
    payment_method: Optional[str]
    payment_info: Optional[dict[str, Any]]
    status: str
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class OrderListResponse(BaseModel):
    success: bool = True
    orders: list[OrderResponse]


class StatusUpdate(BaseModel):
    status: str


class StatusUpdateResponse(BaseModel):
    success: bool = True
    message: str
    order: OrderResponse
