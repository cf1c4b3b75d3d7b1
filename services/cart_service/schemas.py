from pydantic import BaseModel, Field


class CartUpdate(BaseModel):
    cart_items: dict[int, int] = Field(alias="cartItems")


class CartResponse(BaseModel):
    success: bool = True
    cart_items: dict[int, int] = Field(serialization_alias="cartItems")
