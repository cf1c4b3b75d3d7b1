from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shared.config import settings
from shared.config.database import Base, engine
from shared.errors import register_error_handlers
from shared.observability import setup_observability
from shared.security import limiter

# IMPORTANT: import models so they register with Base
from services.product_service import models as product_models  # noqa: F401
from services.cart_service import models as cart_models  # noqa: F401
from services.order_service import models as order_models  # noqa: F401
from services.payment_service import models as payment_models  # noqa: F401

from services.broadcast_service.broadcaster import WebSocketStockBroadcaster
from services.broadcast_service.router import router as stock_router
from services.cart_service.router import router as cart_router
from services.checkout_service.router import router as checkout_router
from services.order_service.router import router as order_router
from services.payment_service.gateway import build_gateway
from services.payment_service.router import router as payment_router
from services.product_service.router import router as product_router

app = FastAPI(title="Storefront", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(app, "storefront")

# --- SECURITY SETUP ---
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- SHARED COLLABORATORS ---
app.state.stock_broadcaster = WebSocketStockBroadcaster(send_timeout=settings.BROADCAST_SEND_TIMEOUT)
app.state.payment_gateway = build_gateway()


@app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@app.get("/healthz")
async def health_check():
    return {"status": "ok"}


app.include_router(product_router)
app.include_router(cart_router)
# Payment routes first so /stripe/confirm never reaches the order routes
app.include_router(payment_router)
app.include_router(checkout_router)
app.include_router(order_router)
app.include_router(stock_router)
