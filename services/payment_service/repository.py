from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession

from .models import PaymentEvent


class PaymentEventRepository:

    @staticmethod
    async def record(db: AsyncSession, event: PaymentEvent) -> bool:
        """
        Stages the event inside the caller's transaction. Returns False when the
        same provider event was already recorded (the transaction is rolled back).
        """
        db.add(event)
        try:
            await db.flush()
        except sa_exc.IntegrityError:
            await db.rollback()
            return False
        return True
