"""
Visitor channel: WS /ws

Frames are JSON objects {"event": <name>, "data": <payload>}.

Inbound events:
    hello           data: proposed session id (string) or null
    client_message  data: {"text": "..."}
    client_end      data: free-form object
Outbound events:
    session         data: resolved session id
    server_ack      data: {"ok": true} | {"ok": false, "error": "..."}
    admin_message   data: {"text": "...", "ts": <epoch ms>}
    session_closed  data: {"cause": "admin" | "client"}

Frames of one connection are handled one at a time, in arrival order.
"""

from __future__ import annotations

import json
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from support_bridge.bridge import SupportBridge
from support_bridge.logging_config import logger
from support_bridge.models import ChannelFrame, VisitorEnd, VisitorMessage


EVENT_HELLO = "hello"
EVENT_CLIENT_MESSAGE = "client_message"
EVENT_CLIENT_END = "client_end"

router = APIRouter()


def parse_frame(raw: str) -> Optional[ChannelFrame]:
    try:
        return ChannelFrame.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning("Ignoring malformed frame %r: %s", raw[:200], exc.__class__.__name__)
        return None


async def handle_frame(bridge: SupportBridge, connection_id: str, frame: ChannelFrame) -> None:
    data = frame.data
    if frame.event == EVENT_HELLO:
        await bridge.router.handle_hello(connection_id, data)
    elif frame.event == EVENT_CLIENT_MESSAGE:
        message = VisitorMessage.model_validate(data if isinstance(data, dict) else {})
        await bridge.router.handle_visitor_message(connection_id, message)
    elif frame.event == EVENT_CLIENT_END:
        payload = VisitorEnd.model_validate(data if isinstance(data, dict) else {})
        await bridge.router.handle_visitor_end(connection_id, payload)
    else:
        logger.debug("Unknown visitor event %r from %s", frame.event, connection_id)


@router.websocket("/ws")
async def visitor_channel(websocket: WebSocket) -> None:
    bridge: SupportBridge = websocket.app.state.bridge
    connection_id = await bridge.hub.connect(websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            frame = parse_frame(raw)
            if frame is None:
                continue
            await handle_frame(bridge, connection_id, frame)
    except WebSocketDisconnect:
        pass
    finally:
        bridge.hub.disconnect(connection_id)
        bridge.router.handle_disconnect(connection_id)


__all__ = ["handle_frame", "parse_frame", "router"]
