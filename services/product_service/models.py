from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String
from sqlalchemy.sql import func

from shared.config.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String, nullable=True)
    category = Column(String(120), nullable=True)
    price = Column(Float, nullable=False)
    offer_price = Column(Float, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    # Usually stock > 0, but sellers may force it either way by hand
    in_stock = Column(Boolean, nullable=False, default=True)
    seller_id = Column(Integer, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
