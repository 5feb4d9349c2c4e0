"""
Raw Telegram updates -> typed agent events.

Only the fields the router needs are modelled; everything else in the
update is ignored. Updates that fail validation are logged and dropped.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from support_bridge.logging_config import logger
from support_bridge.models import (
    Actor,
    AgentCallback,
    AgentCommand,
    AgentMessage,
    CardReference,
)


COMMAND_RE = re.compile(r"^/([A-Za-z0-9_]+)(?:@\S+)?(?:\s+([\s\S]*))?$")


class _TelegramObject(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TelegramUser(_TelegramObject):
    id: int
    is_bot: bool = False
    username: Optional[str] = None


class TelegramChat(_TelegramObject):
    id: Union[int, str]
    type: str = ""


class TelegramQuotedMessage(_TelegramObject):
    text: Optional[str] = None
    caption: Optional[str] = None


class TelegramMessage(_TelegramObject):
    message_id: int
    chat: TelegramChat
    from_user: Optional[TelegramUser] = Field(default=None, alias="from")
    message_thread_id: Optional[int] = None
    text: Optional[str] = None
    caption: Optional[str] = None
    reply_to_message: Optional[TelegramQuotedMessage] = None


class TelegramCallbackQuery(_TelegramObject):
    id: str
    from_user: Optional[TelegramUser] = Field(default=None, alias="from")
    message: Optional[TelegramMessage] = None
    data: Optional[str] = None


class TelegramUpdate(_TelegramObject):
    update_id: int
    message: Optional[TelegramMessage] = None
    callback_query: Optional[TelegramCallbackQuery] = None


def _actor(user: Optional[TelegramUser]) -> Optional[Actor]:
    if user is None:
        return None
    return Actor(id=user.id, username=user.username)


def _message_event(message: TelegramMessage) -> Union[AgentMessage, AgentCommand]:
    text = message.text or message.caption or ""
    quoted = message.reply_to_message
    fields: Dict[str, Any] = {
        "chat_id": message.chat.id,
        "chat_type": message.chat.type,
        "message_id": message.message_id,
        "thread_id": message.message_thread_id,
        "text": text,
        "reply_to_text": (quoted.text or quoted.caption) if quoted is not None else None,
        "actor": _actor(message.from_user),
        "from_bot": bool(message.from_user and message.from_user.is_bot),
    }
    command = COMMAND_RE.match(text)
    if command is not None:
        return AgentCommand(
            name=command.group(1).lower(),
            args=(command.group(2) or "").strip(),
            **fields,
        )
    return AgentMessage(**fields)


def parse_update(
    raw: Dict[str, Any],
) -> Optional[Union[AgentMessage, AgentCommand, AgentCallback]]:
    try:
        update = TelegramUpdate.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Ignoring malformed Telegram update: %s", exc.errors()[:3])
        return None

    if update.callback_query is not None:
        query = update.callback_query
        card = None
        if query.message is not None:
            card = CardReference(
                chat_id=query.message.chat.id, message_id=query.message.message_id
            )
        logger.debug("update %s: callback_query data=%r", update.update_id, query.data)
        return AgentCallback(
            callback_id=query.id,
            data=query.data or "",
            actor=_actor(query.from_user),
            card=card,
        )

    if update.message is not None:
        event = _message_event(update.message)
        logger.debug(
            "update %s: message chat=%s/%s thread=%s text=%r",
            update.update_id,
            event.chat_type,
            event.chat_id,
            event.thread_id,
            event.text[:80],
        )
        return event

    logger.debug("update %s: nothing to route", update.update_id)
    return None


__all__ = [
    "TelegramCallbackQuery",
    "TelegramMessage",
    "TelegramUpdate",
    "parse_update",
]
