"""Payment gateway port (abstract interface).

Checkout and reconciliation only talk to this contract, so the Stripe adapter
can be swapped for the in-memory fake in development and tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

COMPLETED_EVENT = "checkout.session.completed"
ASYNC_SUCCEEDED_EVENT = "checkout.session.async_payment_succeeded"
EXPIRED_EVENT = "checkout.session.expired"
ASYNC_FAILED_EVENT = "checkout.session.async_payment_failed"

PAID = "paid"


@dataclass(frozen=True)
class CheckoutLine:
    """One provider line: unit price already in minor currency units."""

    name: str
    unit_amount: int
    quantity: int


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: Optional[str] = None
    payment_status: str = "unpaid"
    metadata: dict = field(default_factory=dict)
    payment_intent: Optional[str] = None
    amount_total: Optional[int] = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PAID


@dataclass(frozen=True)
class GatewayEvent:
    id: str
    type: str
    session: CheckoutSession


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    async def create_checkout_session(
        self,
        order_id: int,
        user_id: int,
        lines: list[CheckoutLine],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        """Open a hosted checkout page for an order already persisted unpaid."""
        ...

    @abstractmethod
    async def retrieve_session(self, session_id: str) -> CheckoutSession:
        """Fetch the current state of a checkout session."""
        ...

    @abstractmethod
    def construct_event(self, payload: bytes, signature: str) -> GatewayEvent:
        """Verify the signature over the exact request bytes and parse the event."""
        ...
