# src/signoff/web/websocket.py
"""Websocket fan-out of review events."""

from __future__ import annotations

from typing import Any

from fastapi import WebSocket

from signoff.core.logs import get_logger
from signoff.models import ReviewEvent

logger = get_logger(__name__)


class WebSocketManager:
    """Track connected clients and broadcast review events to them.

    Also satisfies :class:`~signoff.review.NotificationPublisher`, so it can
    be handed straight to the notification dispatcher.
    """

    def __init__(self) -> None:
        self.active_connections: list[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

    async def broadcast(self, message: dict[str, Any]) -> None:
        """Send a message to all connected clients."""
        for connection in self.active_connections[:]:
            try:
                await connection.send_json(message)
            except Exception as e:
                # Drop clients that can no longer receive
                logger.warning("Error sending message to client: %s", e)
                self.disconnect(connection)

    async def publish(self, event: ReviewEvent) -> None:
        await self.broadcast(event.to_message())


# Create a global instance
websocket_manager = WebSocketManager()
