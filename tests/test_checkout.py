import asyncio

import pytest
from sqlalchemy import func, select

from services.cart_service.models import CartItem
from services.checkout_service.checkout_saga import build_checkout_saga
from services.checkout_service.schemas import PlaceOrderRequest
from services.checkout_service.service import CheckoutService
from services.order_service.models import Order, OrderStatus, PaymentType
from services.product_service.service import InventoryLedger
from shared.errors import BelowMinimumAmount, InsufficientStock, MissingSellerLink, PaymentProviderError, ProductNotFound

from conftest import ADDRESS_ID, BUYER_ID, SELLER_ID


def request_for(*lines):
    return PlaceOrderRequest(
        items=[{"product": product_id, "quantity": quantity} for product_id, quantity in lines],
        address=ADDRESS_ID,
    )


@pytest.fixture
def checkout(ledger, gateway):
    return CheckoutService(ledger, gateway)


async def count_orders(session_factory):
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(Order))


async def load_order(session_factory, order_id):
    async with session_factory() as session:
        return await session.get(Order, order_id)


async def fill_cart(session_factory, user_id, product_id, quantity=1):
    async with session_factory() as session:
        session.add(CartItem(user_id=user_id, product_id=product_id, quantity=quantity))
        await session.commit()


async def cart_size(session_factory, user_id):
    async with session_factory() as session:
        return await session.scalar(
            select(func.count()).select_from(CartItem).where(CartItem.user_id == user_id)
        )


def step_names(saga):
    return [step.name for step in saga.steps]


def test_online_saga_adds_payment_session_step():
    assert step_names(build_checkout_saga(PaymentType.COD)) == ["price_order", "reserve_and_record"]
    assert step_names(build_checkout_saga(PaymentType.ONLINE)) == [
        "price_order",
        "reserve_and_record",
        "open_payment_session",
    ]


async def test_cod_checkout_reserves_stock_and_records_order(
    db, checkout, session_factory, make_product, read_product, broadcaster
):
    product_id = await make_product(stock=5, offer_price=100.0)
    await fill_cart(session_factory, BUYER_ID, product_id)

    response = await checkout.place_order(db, BUYER_ID, request_for((product_id, 3)), PaymentType.COD)

    assert response.success is True
    assert response.message == "Order Placed Successfully"
    assert response.url is None
    assert (await read_product(product_id)).stock == 2
    assert broadcaster.notifications == [(product_id, 2)]

    order = await load_order(session_factory, response.order_id)
    assert order.amount == 306  # floor(300 * 1.02)
    assert order.payment_type == PaymentType.COD.value
    assert order.status == OrderStatus.PLACED.value
    assert order.is_paid is False
    assert [(item.product_id, item.quantity, item.seller_id) for item in order.items] == [
        (product_id, 3, SELLER_ID)
    ]
    assert await cart_size(session_factory, BUYER_ID) == 0


async def test_second_checkout_beyond_remaining_stock_fails(
    db, checkout, session_factory, make_product, read_product
):
    product_id = await make_product(name="Kettle", stock=5, offer_price=40.0)
    await checkout.place_order(db, BUYER_ID, request_for((product_id, 3)), PaymentType.COD)

    with pytest.raises(InsufficientStock) as excinfo:
        await checkout.place_order(db, BUYER_ID, request_for((product_id, 3)), PaymentType.COD)

    assert "Kettle" in excinfo.value.message
    assert (await read_product(product_id)).stock == 2
    assert await count_orders(session_factory) == 1


async def test_multi_line_checkout_is_all_or_nothing(
    db, checkout, session_factory, make_product, read_product, broadcaster
):
    plenty = await make_product(name="Mug", stock=10)
    scarce = await make_product(name="Teapot", stock=1)

    with pytest.raises(InsufficientStock):
        await checkout.place_order(db, BUYER_ID, request_for((plenty, 2), (scarce, 2)), PaymentType.COD)

    assert (await read_product(plenty)).stock == 10
    assert (await read_product(scarce)).stock == 1
    assert await count_orders(session_factory) == 0
    assert broadcaster.notifications == []


async def test_stock_taken_between_pricing_and_reservation_rolls_back_every_line(
    db, checkout, session_factory, make_product, read_product, monkeypatch
):
    first = await make_product(name="Pen", stock=5)
    second = await make_product(name="Ink", stock=5)

    # Another buyer empties the second product after this checkout has priced it.
    original_reserve = InventoryLedger.reserve

    async def racing_reserve(self, session, product_id, quantity):
        if product_id == first:
            async with session_factory() as other:
                await original_reserve(self, other, second, 5)
                await other.commit()
        return await original_reserve(self, session, product_id, quantity)

    monkeypatch.setattr(InventoryLedger, "reserve", racing_reserve)

    with pytest.raises(InsufficientStock):
        await checkout.place_order(db, BUYER_ID, request_for((first, 1), (second, 1)), PaymentType.COD)

    assert (await read_product(first)).stock == 5
    assert (await read_product(second)).stock == 0
    assert await count_orders(session_factory) == 0


async def test_unknown_product_is_rejected_before_any_reservation(db, checkout, make_product, read_product):
    product_id = await make_product(stock=5)

    with pytest.raises(ProductNotFound):
        await checkout.place_order(db, BUYER_ID, request_for((product_id, 1), (999, 1)), PaymentType.COD)

    assert (await read_product(product_id)).stock == 5


async def test_product_without_seller_is_an_integrity_failure(db, checkout, make_product, session_factory):
    product_id = await make_product(name="Orphan", seller_id=None)

    with pytest.raises(MissingSellerLink) as excinfo:
        await checkout.place_order(db, BUYER_ID, request_for((product_id, 1)), PaymentType.COD)

    assert excinfo.value.status_code == 500
    assert await count_orders(session_factory) == 0


async def test_online_checkout_below_minimum_persists_nothing(
    db, checkout, gateway, session_factory, make_product, read_product
):
    product_id = await make_product(stock=5, offer_price=12.5)

    with pytest.raises(BelowMinimumAmount):
        # floor(25 * 1.02) = 25
        await checkout.place_order(db, BUYER_ID, request_for((product_id, 2)), PaymentType.ONLINE)

    assert (await read_product(product_id)).stock == 5
    assert await count_orders(session_factory) == 0
    assert gateway.calls == []


async def test_cod_has_no_minimum(db, checkout, make_product):
    product_id = await make_product(stock=5, offer_price=5.0)

    response = await checkout.place_order(db, BUYER_ID, request_for((product_id, 1)), PaymentType.COD)

    assert response.success is True


async def test_online_checkout_returns_redirect_and_keeps_order_unpaid(
    db, checkout, gateway, session_factory, make_product, read_product
):
    product_id = await make_product(name="Headphones", stock=4, offer_price=19.99)
    await fill_cart(session_factory, BUYER_ID, product_id)

    response = await checkout.place_order(
        db, BUYER_ID, request_for((product_id, 2)), PaymentType.ONLINE, origin="https://shop.example/"
    )

    session_id = next(iter(gateway.sessions))
    assert response.url == gateway.sessions[session_id].url
    assert (await read_product(product_id)).stock == 2

    order = await load_order(session_factory, response.order_id)
    assert order.payment_type == PaymentType.ONLINE.value
    assert order.is_paid is False
    assert order.amount == 40  # floor(39.98 * 1.02)
    # Cart stays until the payment is confirmed
    assert await cart_size(session_factory, BUYER_ID) == 1

    call = gateway.calls[0]
    assert call["order_id"] == response.order_id
    assert call["user_id"] == BUYER_ID
    assert [(line.name, line.unit_amount, line.quantity) for line in call["lines"]] == [("Headphones", 1999, 2)]
    assert call["success_url"] == (
        "https://shop.example/my-orders?payment=success&session_id={CHECKOUT_SESSION_ID}"
    )
    assert call["cancel_url"] == "https://shop.example/cart"
    assert gateway.sessions[session_id].metadata == {"order_id": str(response.order_id), "user_id": str(BUYER_ID)}


async def test_online_checkout_falls_back_to_client_url(db, checkout, gateway, make_product):
    product_id = await make_product(stock=4, offer_price=100.0)

    await checkout.place_order(db, BUYER_ID, request_for((product_id, 1)), PaymentType.ONLINE)

    assert gateway.calls[0]["cancel_url"] == "http://localhost:5173/cart"


async def test_payment_provider_failure_discards_order_and_restores_stock(
    db, checkout, gateway, session_factory, make_product, read_product, broadcaster
):
    product_id = await make_product(stock=4, offer_price=100.0)
    gateway.configure(should_fail=True)

    with pytest.raises(PaymentProviderError):
        await checkout.place_order(db, BUYER_ID, request_for((product_id, 3)), PaymentType.ONLINE)

    assert (await read_product(product_id)).stock == 4
    assert await count_orders(session_factory) == 0
    assert broadcaster.notifications == [(product_id, 1), (product_id, 4)]


async def test_concurrent_checkouts_exhaust_stock_exactly(
    session_factory, ledger, gateway, make_product, read_product
):
    product_id = await make_product(stock=4, offer_price=100.0)
    checkout = CheckoutService(ledger, gateway)

    async def attempt(user_id):
        async with session_factory() as session:
            try:
                await checkout.place_order(session, user_id, request_for((product_id, 1)), PaymentType.COD)
                return True
            except InsufficientStock:
                return False

    outcomes = await asyncio.gather(*(attempt(user_id) for user_id in range(1, 11)))

    assert outcomes.count(True) == 4
    assert (await read_product(product_id)).stock == 0
    assert await count_orders(session_factory) == 4
