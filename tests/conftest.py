import os
import tempfile

# Configuration is read at import time, so it has to be in place before the app loads.
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{tempfile.mkdtemp()}/storefront.db"
os.environ["PAYMENT_GATEWAY"] = "fake"
os.environ["OTEL_TRACING_ENABLED"] = "false"
os.environ["METRICS_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402

from main import app  # noqa: E402
from services.broadcast_service.broadcaster import StockBroadcaster  # noqa: E402
from services.payment_service.gateway.fake_adapter import FakeGateway  # noqa: E402
from services.product_service.models import Product  # noqa: E402
from services.product_service.service import InventoryLedger  # noqa: E402
from shared.config.database import Base, enable_sqlite_foreign_keys, get_db  # noqa: E402
from shared.security import create_access_token, create_seller_token  # noqa: E402

BUYER_ID = 101
SELLER_ID = 7
OTHER_SELLER_ID = 8
ADDRESS_ID = 55


class RecordingBroadcaster(StockBroadcaster):
    def __init__(self):
        self.notifications = []

    async def notify(self, product_id: int, stock: int) -> None:
        self.notifications.append((product_id, stock))

    def latest(self, product_id: int):
        for pid, stock in reversed(self.notifications):
            if pid == product_id:
                return stock
        return None


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def ledger(broadcaster):
    return InventoryLedger(broadcaster)


@pytest.fixture
def gateway():
    return FakeGateway(webhook_secret="whsec_test")


@pytest.fixture
def make_product(session_factory):
    async def _make(name="Widget", stock=10, offer_price=100.0, price=None, seller_id=SELLER_ID, in_stock=None):
        async with session_factory() as session:
            product = Product(
                name=name,
                price=price if price is not None else offer_price,
                offer_price=offer_price,
                stock=stock,
                in_stock=stock > 0 if in_stock is None else in_stock,
                seller_id=seller_id,
            )
            session.add(product)
            await session.commit()
            return product.id

    return _make


@pytest.fixture
def read_product(session_factory):
    async def _read(product_id):
        async with session_factory() as session:
            return await session.get(Product, product_id)

    return _read


@pytest.fixture
async def client(session_factory, broadcaster, gateway):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.stock_broadcaster = broadcaster
    app.state.payment_gateway = gateway
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def buyer_headers():
    return {"Authorization": f"Bearer {create_access_token(BUYER_ID)}"}


@pytest.fixture
def seller_headers():
    return {"Authorization": f"Bearer {create_seller_token(SELLER_ID)}"}


@pytest.fixture
def other_seller_headers():
    return {"Authorization": f"Bearer {create_seller_token(OTHER_SELLER_ID)}"}
