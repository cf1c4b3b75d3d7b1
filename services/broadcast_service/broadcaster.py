"""
Realtime stock fan-out.

Notifications are a best-effort cache-invalidation signal: nothing is queued
for disconnected observers, and a client that reconnects re-fetches products.
"""
import asyncio
from abc import ABC, abstractmethod

import structlog
from fastapi import WebSocket

from shared.observability import storefront_stock_broadcast_total, storefront_stock_observers

logger = structlog.get_logger(__name__)


class StockBroadcaster(ABC):

    @abstractmethod
    async def notify(self, product_id: int, stock: int) -> None:
        """Push `{productId, stock}` to every connected observer."""
        ...


class WebSocketStockBroadcaster(StockBroadcaster):

    def __init__(self, send_timeout: float = 2.0):
        self.send_timeout = send_timeout
        self._connections: set[WebSocket] = set()

    @property
    def observer_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.add(websocket)
        storefront_stock_observers.set(len(self._connections))
        logger.info("stock_observer_connected", observers=len(self._connections))

    def disconnect(self, websocket: WebSocket) -> None:
        self._connections.discard(websocket)
        storefront_stock_observers.set(len(self._connections))

    async def notify(self, product_id: int, stock: int) -> None:
        targets = list(self._connections)
        if not targets:
            return
        message = {"productId": product_id, "stock": stock}
        await asyncio.gather(*(self._send(ws, message) for ws in targets))

    async def _send(self, websocket: WebSocket, message: dict) -> None:
        try:
            await asyncio.wait_for(websocket.send_json(message), timeout=self.send_timeout)
            storefront_stock_broadcast_total.labels(outcome="delivered").inc()
        except Exception as exc:
            # A slow or dead observer is dropped; it re-fetches on reconnect.
            self.disconnect(websocket)
            storefront_stock_broadcast_total.labels(outcome="dropped").inc()
            logger.warning("stock_observer_dropped", error=str(exc) or type(exc).__name__)
