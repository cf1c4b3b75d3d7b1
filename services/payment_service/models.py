from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from shared.config.database import Base


class PaymentEvent(Base):
    """Provider events already applied; the primary key makes replays collide."""

    __tablename__ = "payment_events"

    id = Column(String(255), primary_key=True)  # provider event id
    type = Column(String(64), nullable=False)
    session_id = Column(String(255), nullable=True)
    order_id = Column(Integer, nullable=True, index=True)
    received_at = Column(DateTime(timezone=True), server_default=func.now())
