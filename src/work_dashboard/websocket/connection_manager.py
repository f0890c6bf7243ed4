"""WebSocket fan-out to dashboard UI clients."""

import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks connected UI clients and pushes update messages to them."""

    def __init__(self) -> None:
        self._clients: list[WebSocket] = []

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def connect(self, websocket: WebSocket) -> None:
        """Accept and register a UI client."""
        await websocket.accept()
        self._clients.append(websocket)
        logger.info(f"[ConnectionManager] Client connected (total: {self.client_count})")

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._clients:
            self._clients.remove(websocket)
            logger.info(f"[ConnectionManager] Client disconnected (total: {self.client_count})")

    async def broadcast(self, message: dict[str, Any]) -> None:
        """Send a JSON message to every client.

        Never raises; clients that fail to receive are dropped.

        Args:
            message: JSON-serializable message with a ``type`` key
        """
        if not self._clients:
            logger.debug(f"[ConnectionManager] No clients for {message.get('type')}")
            return

        stale: list[WebSocket] = []
        for client in list(self._clients):
            try:
                await client.send_json(message)
            except Exception as e:
                logger.warning(f"[ConnectionManager] Failed to send to client: {e}")
                stale.append(client)

        for client in stale:
            self.disconnect(client)
