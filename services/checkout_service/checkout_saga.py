from dataclasses import dataclass

import structlog

from services.cart_service.service import CartService
from services.order_service.models import Order, OrderItem, OrderStatus, PaymentType
from services.order_service.pricing import apply_tax, subtotal, to_minor_units
from services.order_service.repository import OrderRepository
from services.payment_service.gateway.port import CheckoutLine
from services.product_service.repository import ProductRepository
from shared.config import settings
from shared.errors import BelowMinimumAmount, InsufficientStock, MissingSellerLink, ProductNotFound

from .saga import SagaOrchestrator

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    name: str
    unit_price: float
    quantity: int
    seller_id: int


# --- ACTIONS ---

async def price_order(ctx: dict):
    """Validates every line and fixes the order amount before any stock moves."""
    db, requested = ctx["db"], ctx["items"]
    products = await ProductRepository.get_products_by_ids(db, [line.product_id for line in requested])

    lines = []
    for line in requested:
        product = products.get(line.product_id)
        if product is None:
            raise ProductNotFound(line.product_id)
        if product.seller_id is None:
            raise MissingSellerLink(product.name)
        # Early answer for the buyer; the conditional decrement is the real guard.
        if product.stock < line.quantity:
            raise InsufficientStock(product.name)
        lines.append(PricedLine(product.id, product.name, product.offer_price, line.quantity, product.seller_id))

    amount = apply_tax(subtotal((line.unit_price, line.quantity) for line in lines))
    if ctx["payment_type"] is PaymentType.ONLINE and amount < settings.MIN_ONLINE_AMOUNT:
        raise BelowMinimumAmount(amount, settings.MIN_ONLINE_AMOUNT)

    ctx["lines"] = lines
    ctx["amount"] = amount


async def reserve_and_record(ctx: dict):
    """All reservations and the order row commit together or not at all."""
    db, ledger, payment_type = ctx["db"], ctx["ledger"], ctx["payment_type"]
    try:
        levels = []
        for line in ctx["lines"]:
            levels.append(await ledger.reserve(db, line.product_id, line.quantity))

        order = Order(
            user_id=ctx["user_id"],
            amount=ctx["amount"],
            address_id=ctx["address_id"],
            payment_type=payment_type.value,
            is_paid=False,
            status=OrderStatus.PLACED.value,
            items=[
                OrderItem(product_id=line.product_id, quantity=line.quantity, seller_id=line.seller_id)
                for line in ctx["lines"]
            ],
        )
        await OrderRepository.add_order(db, order)

        # Online carts are cleared once the provider confirms payment
        if payment_type is PaymentType.COD:
            await CartService.clear_cart(db, ctx["user_id"])

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    ctx["order_id"] = order.id
    await ledger.publish(levels)


async def open_payment_session(ctx: dict):
    origin = ctx["origin"].rstrip("/")
    lines = [
        CheckoutLine(name=line.name, unit_amount=to_minor_units(line.unit_price), quantity=line.quantity)
        for line in ctx["lines"]
    ]
    session = await ctx["gateway"].create_checkout_session(
        order_id=ctx["order_id"],
        user_id=ctx["user_id"],
        lines=lines,
        # The provider substitutes {CHECKOUT_SESSION_ID} so the client can run the fallback confirm
        success_url=f"{origin}/my-orders?payment=success&session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{origin}/cart",
    )
    ctx["session_id"] = session.id
    ctx["url"] = session.url


# --- COMPENSATIONS (Rollbacks) ---

async def discard_order(ctx: dict):
    db, order_id = ctx["db"], ctx.get("order_id")
    if order_id is None:
        return
    try:
        levels = await ctx["reconciler"].discard_order(db, order_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await ctx["ledger"].publish(levels)
    logger.info("order_discarded", order_id=order_id, restored=len(levels))


# --- BUILDER FACTORY ---

def build_checkout_saga(payment_type: PaymentType) -> SagaOrchestrator:
    saga = SagaOrchestrator()
    saga.add_step("price_order", price_order, None)  # Read-only, no rollback needed
    saga.add_step("reserve_and_record", reserve_and_record, discard_order)
    if payment_type is PaymentType.ONLINE:
        saga.add_step("open_payment_session", open_payment_session, None)
    return saga
