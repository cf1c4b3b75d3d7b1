import enum

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shared.config.database import Base


class PaymentType(str, enum.Enum):
    COD = "COD"
    ONLINE = "Online"


class OrderStatus(str, enum.Enum):
    PLACED = "Order Placed"
    CONFIRMED = "Confirmed"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # tax included, fixed at creation
    address_id = Column(Integer, nullable=False)
    payment_type = Column(String(16), nullable=False)
    is_paid = Column(Boolean, nullable=False, default=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    payment_method = Column(String(32), nullable=True)
    payment_info = Column(JSON, nullable=True)
    status = Column(String(32), nullable=False, default=OrderStatus.PLACED.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderItem.id",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    # Copied from the product at order time so attribution survives product edits
    seller_id = Column(Integer, nullable=False, index=True)

    order = relationship("Order", back_populates="items")
    product = relationship("Product", lazy="selectin")
