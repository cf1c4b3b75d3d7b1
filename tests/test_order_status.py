import pytest

from services.checkout_service.schemas import PlaceOrderRequest
from services.checkout_service.service import CheckoutService
from services.order_service.models import Order, OrderStatus, PaymentType
from services.order_service.service import TERMINAL_STATUSES, OrderStatusMachine
from services.payment_service.service import PaymentReconciler
from shared.errors import AuthorizationError, InvalidStatus, InvalidTransition, OrderLocked, OrderNotFound

from conftest import ADDRESS_ID, BUYER_ID, OTHER_SELLER_ID, SELLER_ID


@pytest.fixture
def machine(ledger):
    return OrderStatusMachine(ledger)


@pytest.fixture
def place_cod_order(session_factory, ledger, gateway):
    async def _place(*lines):
        async with session_factory() as session:
            response = await CheckoutService(ledger, gateway).place_order(
                session,
                BUYER_ID,
                PlaceOrderRequest(
                    items=[{"product": product_id, "quantity": quantity} for product_id, quantity in lines],
                    address=ADDRESS_ID,
                ),
                PaymentType.COD,
            )
        return response.order_id

    return _place


async def current_status(session_factory, order_id):
    async with session_factory() as session:
        return (await session.get(Order, order_id)).status


def test_delivered_and_cancelled_are_terminal():
    assert TERMINAL_STATUSES == {OrderStatus.DELIVERED, OrderStatus.CANCELLED}


async def test_seller_walks_order_through_lifecycle(db, machine, place_cod_order, make_product, session_factory):
    product_id = await make_product(stock=5)
    order_id = await place_cod_order((product_id, 1))

    for target in ("Confirmed", "Shipped", "Delivered"):
        order = await machine.transition(db, order_id, target, SELLER_ID)
        assert order.status == target

    assert await current_status(session_factory, order_id) == "Delivered"


async def test_cancel_restores_each_reserved_quantity(
    db, machine, place_cod_order, make_product, read_product, broadcaster
):
    first = await make_product(name="P1", stock=5)
    second = await make_product(name="P2", stock=4)
    order_id = await place_cod_order((first, 2), (second, 1))
    assert (await read_product(first)).stock == 3
    assert (await read_product(second)).stock == 3
    broadcaster.notifications.clear()

    order = await machine.transition(db, order_id, "Cancelled", SELLER_ID)

    assert order.status == "Cancelled"
    assert (await read_product(first)).stock == 5
    assert (await read_product(second)).stock == 4
    assert broadcaster.notifications == [(first, 5), (second, 4)]


async def test_delivered_order_is_locked(db, machine, place_cod_order, make_product, read_product, session_factory):
    product_id = await make_product(stock=5)
    order_id = await place_cod_order((product_id, 2))
    await machine.transition(db, order_id, "Shipped", SELLER_ID)
    await machine.transition(db, order_id, "Delivered", SELLER_ID)

    for target in ("Cancelled", "Shipped", "Order Placed"):
        with pytest.raises(OrderLocked) as excinfo:
            await machine.transition(db, order_id, target, SELLER_ID)
        assert excinfo.value.message == "Delivered orders cannot be changed"

    assert await current_status(session_factory, order_id) == "Delivered"
    assert (await read_product(product_id)).stock == 3


async def test_cancelled_order_cannot_be_cancelled_again(db, machine, place_cod_order, make_product, read_product):
    product_id = await make_product(stock=5)
    order_id = await place_cod_order((product_id, 2))
    await machine.transition(db, order_id, "Cancelled", SELLER_ID)

    with pytest.raises(OrderLocked):
        await machine.transition(db, order_id, "Cancelled", SELLER_ID)

    assert (await read_product(product_id)).stock == 5


async def test_backward_move_is_rejected(db, machine, place_cod_order, make_product, session_factory):
    product_id = await make_product(stock=5)
    order_id = await place_cod_order((product_id, 1))
    await machine.transition(db, order_id, "Shipped", SELLER_ID)

    with pytest.raises(InvalidTransition):
        await machine.transition(db, order_id, "Confirmed", SELLER_ID)

    assert await current_status(session_factory, order_id) == "Shipped"


async def test_unknown_status_value(db, machine, place_cod_order, make_product):
    product_id = await make_product(stock=5)
    order_id = await place_cod_order((product_id, 1))

    with pytest.raises(InvalidStatus):
        await machine.transition(db, order_id, "Lost in transit", SELLER_ID)


async def test_missing_order(db, machine):
    with pytest.raises(OrderNotFound):
        await machine.transition(db, 404, "Shipped", SELLER_ID)


async def test_seller_without_a_line_in_the_order_is_refused(
    db, machine, place_cod_order, make_product, session_factory
):
    product_id = await make_product(stock=5)
    order_id = await place_cod_order((product_id, 1))

    with pytest.raises(AuthorizationError):
        await machine.transition(db, order_id, "Shipped", OTHER_SELLER_ID)

    assert await current_status(session_factory, order_id) == "Order Placed"


async def test_order_cannot_skip_shipping(db, machine, place_cod_order, make_product):
    product_id = await make_product(stock=5)
    order_id = await place_cod_order((product_id, 1))

    with pytest.raises(InvalidTransition):
        await machine.transition(db, order_id, "Delivered", SELLER_ID)


@pytest.fixture
def place_online_order(session_factory, ledger, gateway):
    async def _place(*lines):
        async with session_factory() as session:
            response = await CheckoutService(ledger, gateway).place_order(
                session,
                BUYER_ID,
                PlaceOrderRequest(
                    items=[{"product": product_id, "quantity": quantity} for product_id, quantity in lines],
                    address=ADDRESS_ID,
                ),
                PaymentType.ONLINE,
            )
        return response.order_id, list(gateway.sessions)[-1]

    return _place


async def test_unpaid_online_order_cannot_be_moved(
    db, machine, place_online_order, make_product, read_product, session_factory
):
    product_id = await make_product(stock=5, offer_price=100.0)
    order_id, _ = await place_online_order((product_id, 2))

    with pytest.raises(OrderNotFound):
        await machine.transition(db, order_id, "Cancelled", SELLER_ID)

    assert await current_status(session_factory, order_id) == "Order Placed"
    assert (await read_product(product_id)).stock == 3


async def test_paid_online_order_can_be_cancelled(
    db, machine, place_online_order, make_product, read_product, gateway, ledger
):
    product_id = await make_product(stock=5, offer_price=100.0)
    order_id, session_id = await place_online_order((product_id, 2))
    gateway.complete_payment(session_id)
    await PaymentReconciler(ledger, gateway).confirm_session(db, session_id)

    order = await machine.transition(db, order_id, "Cancelled", SELLER_ID)

    assert order.status == "Cancelled"
    assert (await read_product(product_id)).stock == 5
