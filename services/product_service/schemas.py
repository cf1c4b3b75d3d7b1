from typing import Optional

from pydantic import BaseModel, Field


class ProductCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    price: float = Field(ge=0)
    offer_price: float = Field(ge=0)
    stock: int = 0


class ProductResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    category: Optional[str]
    price: float
    offer_price: float
    stock: int
    in_stock: bool
    seller_id: Optional[int]

    class Config:
        from_attributes = True


class ProductEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    product: ProductResponse


class ProductListResponse(BaseModel):
    success: bool = True
    products: list[ProductResponse]


class StockToggle(BaseModel):
    id: int
    in_stock: bool = Field(alias="inStock")


class StockUpdate(BaseModel):
    id: int
    stock: int
