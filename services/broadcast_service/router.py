from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter()


@router.websocket("/ws/stock")
async def stock_channel(websocket: WebSocket):
    broadcaster = websocket.app.state.stock_broadcaster
    await broadcaster.connect(websocket)
    try:
        # Server-to-client only; inbound frames are read just to notice the disconnect.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.disconnect(websocket)
