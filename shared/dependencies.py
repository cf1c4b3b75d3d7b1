"""
Request-scoped accessors for the collaborators wired onto app.state in main.py.

Business code receives these through FastAPI's Depends() instead of reaching
for process-wide globals, so tests can swap them per app.
"""
from fastapi import Request

from services.broadcast_service.broadcaster import StockBroadcaster
from services.payment_service.gateway.port import PaymentGateway


def get_stock_broadcaster(request: Request) -> StockBroadcaster:
    return request.app.state.stock_broadcaster


def get_payment_gateway(request: Request) -> PaymentGateway:
    return request.app.state.payment_gateway
