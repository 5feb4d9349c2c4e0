"""
Typed contracts for everything that reaches the message router.

Visitor frames arrive over the WebSocket channel as
{"event": <name>, "data": <payload>}; agent events are built from raw
Telegram updates by support_bridge.workspace.updates. Payloads are
validated and trimmed here so the router only ever sees clean values.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .session import Actor, CardReference


GROUP_CHAT_TYPES = frozenset({"group", "supergroup"})


class ChannelFrame(BaseModel):
    """
    One JSON frame on the visitor channel, in either direction.
    """

    event: str = Field(..., min_length=1)
    data: Any = None


class VisitorMessage(BaseModel):
    text: str = ""

    @field_validator("text", mode="before")
    @classmethod
    def _clean_text(cls, value: Any) -> str:
        if value is None or isinstance(value, bool):
            return ""
        if isinstance(value, (str, int, float)):
            return str(value).strip()
        return ""


class VisitorEnd(BaseModel):
    """
    Free-form payload of an explicit end; only logged.
    """

    model_config = ConfigDict(extra="allow")


class ServerAck(BaseModel):
    ok: bool
    error: Optional[str] = None


def coerce_session_id(value: Any) -> Optional[str]:
    """
    Normalise a client-proposed session id; blank or non-string means none.
    """
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    return cleaned or None


class AgentMessage(BaseModel):
    """
    A message typed by an agent in the support group.
    """

    chat_id: Union[int, str]
    chat_type: str = ""
    message_id: int
    thread_id: Optional[int] = None
    text: str = ""
    reply_to_text: Optional[str] = None
    actor: Optional[Actor] = None
    from_bot: bool = False

    @property
    def is_group(self) -> bool:
        return self.chat_type in GROUP_CHAT_TYPES


class AgentCommand(AgentMessage):
    """
    A slash command, e.g. "/close" or "/chatid@SupportBot".
    """

    name: str
    args: str = ""


class AgentCallback(BaseModel):
    """
    An inline-keyboard button press on a bot message.
    """

    callback_id: str
    data: str = ""
    actor: Optional[Actor] = None
    card: Optional[CardReference] = Field(
        default=None, description="Message that carried the pressed button"
    )


__all__ = [
    "AgentCallback",
    "AgentCommand",
    "AgentMessage",
    "ChannelFrame",
    "GROUP_CHAT_TYPES",
    "ServerAck",
    "VisitorEnd",
    "VisitorMessage",
    "coerce_session_id",
]
