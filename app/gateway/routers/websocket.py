"""Social Hub – Live Dashboard WebSocket.

The dashboard attaches here to receive mirrored traffic. Only one dashboard
is served at a time; a new connection takes over from the previous one.
"""

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.gateway.dependencies import live_sink

logger = structlog.get_logger()
router = APIRouter(tags=["live"])


@router.websocket("/ws/live")
async def websocket_live(ws: WebSocket) -> None:
    """Push channel for the operator dashboard.

    Inbound frames are only read to detect disconnects.
    """
    await ws.accept()
    live_sink.attach(ws)
    await ws.send_json({"type": "connected"})

    try:
        while True:
            data = await ws.receive_text()
            logger.debug("ws.received", length=len(data))
    except WebSocketDisconnect:
        logger.info("ws.disconnected")
    finally:
        live_sink.detach(ws)
