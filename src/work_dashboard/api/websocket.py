"""WebSocket endpoint delivering calendar updates to the UI."""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from work_dashboard.factory import get_connection_manager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Keep a UI client subscribed to ``calendar-updated`` messages.

    Args:
        websocket: WebSocket connection
    """
    manager = get_connection_manager()
    await manager.connect(websocket)
    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        logger.info("[WebSocket] Client disconnected")
    except Exception as e:
        logger.error(f"[WebSocket] Error: {e}", exc_info=True)
    finally:
        manager.disconnect(websocket)
