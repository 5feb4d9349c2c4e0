"""
Live visitor connections.

Each accepted WebSocket gets a transport-level connection id. The hub only
knows sockets; which session a connection serves is the registry's
business.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict

from fastapi import WebSocket

from support_bridge.logging_config import logger


class ConnectionHub:
    def __init__(self) -> None:
        self._connections: Dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        self._connections[connection_id] = websocket
        logger.info("Visitor connected: connection=%s", connection_id)
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        if self._connections.pop(connection_id, None) is not None:
            logger.info("Visitor disconnected: connection=%s", connection_id)

    async def emit(self, connection_id: str, event: str, payload: Any = None) -> bool:
        """
        Send one event frame to a connection. Best-effort: returns False
        when the connection is gone or the send fails.
        """
        websocket = self._connections.get(connection_id)
        if websocket is None:
            logger.info("Emit %s skipped, connection %s is gone", event, connection_id)
            return False
        try:
            await websocket.send_json({"event": event, "data": payload})
        except Exception as exc:
            logger.warning(
                "Emit %s to connection %s failed: %s", event, connection_id, exc
            )
            return False
        return True


__all__ = ["ConnectionHub"]
