from typing import Optional

from pydantic import BaseModel, Field


class OrderLineRequest(BaseModel):
    product_id: int = Field(alias="product")
    quantity: int = Field(gt=0)

    class Config:
        populate_by_name = True


class PlaceOrderRequest(BaseModel):
    items: list[OrderLineRequest] = Field(min_length=1)
    address_id: int = Field(alias="address")

    class Config:
        populate_by_name = True


class PlaceOrderResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    url: Optional[str] = None
    order_id: Optional[int] = None
