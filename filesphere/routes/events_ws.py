from __future__ import annotations
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from .deps import get_index_ws

router = APIRouter(tags=["ws"])


@router.websocket("/ws")
async def events_ws(websocket: WebSocket):
    """
    Index event stream. Sends {"type": "connected", "totalFiles": n} first,
    then every file-added / file-removed / scan-complete as it happens.
    Supports optional ping/pong (client can send "ping").
    """
    index = get_index_ws(websocket)
    gateway = index.gateway
    await gateway.connect(websocket, hello=index.hello())
    try:
        while True:
            msg = await websocket.receive_text()
            if msg == "ping":
                try:
                    await websocket.send_text("pong")
                except Exception:
                    break
    except WebSocketDisconnect:
        pass
    finally:
        await gateway.disconnect(websocket)
