"""
Message router between visitors and agents.

Visitor events come from the WebSocket endpoint keyed by connection id.
Agent events come from Telegram updates and are resolved to a session by,
in order: the forum topic they were posted in, a leading "#<id>" marker,
or a marker inside the message they reply to. Anything that does not
resolve, or resolves to a session without a live connection, is dropped
with a log line; agents type in unrelated threads all the time.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from typing import Callable, Optional, Union

from support_bridge.channel.hub import ConnectionHub
from support_bridge.logging_config import logger
from support_bridge.models import (
    AgentCallback,
    AgentCommand,
    AgentMessage,
    CloseCause,
    ServerAck,
    VisitorEnd,
    VisitorMessage,
    coerce_session_id,
)
from support_bridge.workspace.client import TelegramWorkspace, WorkspaceAPIError
from support_bridge.workspace.keyboards import (
    CLOSE_BUTTON_LABEL,
    CLOSE_CALLBACK_PREFIX,
    remove_keyboard,
)

from .exceptions import ThreadCreationError
from .lifecycle import SessionLifecycleManager, card_closed_text
from .markers import find_marker, format_marker, parse_leading_marker
from .registry import IdentifierRegistry
from .steps import run_step


EVENT_SESSION = "session"
EVENT_SERVER_ACK = "server_ack"
EVENT_ADMIN_MESSAGE = "admin_message"

ACK_THREAD_UNAVAILABLE = "thread_unavailable"
ACK_SEND_FAILED = "send_failed"

CLOSE_USAGE_TEXT = (
    "Session id not found. Run the command inside a session thread "
    "or as a reply to a visitor message."
)

AgentEvent = Union[AgentMessage, AgentCommand, AgentCallback]


def mint_session_id() -> str:
    return secrets.token_hex(8)


@dataclass(frozen=True)
class Resolution:
    session_id: str
    text: str
    via: str


class MessageRouter:
    def __init__(
        self,
        registry: IdentifierRegistry,
        lifecycle: SessionLifecycleManager,
        hub: ConnectionHub,
        workspace: TelegramWorkspace,
        *,
        session_id_factory: Callable[[], str] = mint_session_id,
    ) -> None:
        self._registry = registry
        self._lifecycle = lifecycle
        self._hub = hub
        self._workspace = workspace
        self._mint = session_id_factory

    # Visitor side

    async def handle_hello(self, connection_id: str, proposed: object = None) -> str:
        session_id = coerce_session_id(proposed) or self._mint()
        self._registry.bind_connection(session_id, connection_id)
        logger.info("hello: session=%s connection=%s", session_id, connection_id)
        await self._hub.emit(connection_id, EVENT_SESSION, session_id)
        return session_id

    async def handle_visitor_message(
        self, connection_id: str, message: VisitorMessage
    ) -> Optional[ServerAck]:
        """
        Forward a visitor message into the session's thread and acknowledge.

        Returns None when the message is dropped (no hello yet, or blank).
        """
        session_id = self._registry.lookup_session_by_connection(connection_id)
        if session_id is None:
            logger.info("Dropping visitor message: connection %s has no session", connection_id)
            return None
        if not message.text:
            logger.debug("Dropping blank visitor message for session %s", session_id)
            return None

        first_contact = (
            self._registry.get_card_reference(session_id) is None
            and self._registry.lookup_thread_by_session(session_id) is None
        )
        logger.info(
            "client_message: session=%s first_contact=%s text=%r",
            session_id,
            first_contact,
            message.text[:80],
        )

        try:
            if first_contact:
                await self._lifecycle.start_conversation(session_id, message.text)
            else:
                await self._lifecycle.relay_visitor_message(session_id, message.text)
        except ThreadCreationError as exc:
            logger.error("client_message failed for session %s: %s", session_id, exc)
            ack = ServerAck(ok=False, error=ACK_THREAD_UNAVAILABLE)
        except WorkspaceAPIError as exc:
            logger.error("client_message failed for session %s: %s", session_id, exc)
            ack = ServerAck(ok=False, error=ACK_SEND_FAILED)
        except Exception:
            logger.exception("client_message crashed for session %s", session_id)
            ack = ServerAck(ok=False, error=ACK_SEND_FAILED)
        else:
            ack = ServerAck(ok=True)

        await self._hub.emit(connection_id, EVENT_SERVER_ACK, ack.model_dump(exclude_none=True))
        return ack

    async def handle_visitor_end(self, connection_id: str, payload: Optional[VisitorEnd] = None) -> None:
        session_id = self._registry.lookup_session_by_connection(connection_id)
        if session_id is None:
            return
        extra = payload.model_dump() if payload is not None else {}
        logger.info("client_end: session=%s payload=%s", session_id, extra)
        await self._lifecycle.close_session(session_id, CloseCause.CLIENT)
        self._registry.unbind_connection(connection_id)

    def handle_disconnect(self, connection_id: str) -> Optional[str]:
        """
        Transport went away: evict routing for this connection only. The
        session stays open so the visitor can reconnect and resume.
        """
        session_id = self._registry.unbind_connection(connection_id)
        if session_id is not None:
            logger.info("disconnect: session=%s connection=%s", session_id, connection_id)
        return session_id

    # Agent side

    async def dispatch(self, event: Optional[AgentEvent]) -> None:
        if event is None:
            return
        try:
            if isinstance(event, AgentCallback):
                await self.handle_agent_callback(event)
            elif isinstance(event, AgentCommand):
                await self.handle_agent_command(event)
            else:
                await self.handle_agent_message(event)
        except Exception:
            logger.exception("Agent event handling failed: %s", type(event).__name__)

    def resolve_session(self, message: AgentMessage) -> Optional[Resolution]:
        text = message.text
        if message.thread_id is not None:
            session_id = self._registry.lookup_session_by_thread(message.thread_id)
            if session_id is not None:
                return Resolution(session_id=session_id, text=text, via="thread")

        leading = parse_leading_marker(text)
        if leading is not None:
            return Resolution(session_id=leading.session_id, text=leading.rest, via="marker")

        quoted = find_marker(message.reply_to_text)
        if quoted is not None:
            return Resolution(session_id=quoted, text=text, via="reply")

        return None

    async def handle_agent_message(self, message: AgentMessage) -> bool:
        """
        Relay an agent's message to the visitor. Returns True when an
        admin_message frame was delivered.
        """
        if not message.is_group or message.from_bot:
            return False

        if message.text == CLOSE_BUTTON_LABEL and message.thread_id is not None:
            session_id = self._registry.lookup_session_by_thread(message.thread_id)
            if session_id is None:
                logger.info("Close button pressed in unknown thread %s", message.thread_id)
                return False
            await self._close_by_admin(
                session_id, message, f"⛔️ Closed from thread · Session {format_marker(session_id)}"
            )
            return False

        resolution = self.resolve_session(message)
        if resolution is None or not resolution.text:
            logger.debug(
                "Agent message not routed: chat=%s thread=%s", message.chat_id, message.thread_id
            )
            return False

        connection_id = self._registry.lookup_connection_by_session(resolution.session_id)
        if connection_id is None:
            logger.info("Visitor offline for session %s", resolution.session_id)
            return False

        delivered = await self._hub.emit(
            connection_id,
            EVENT_ADMIN_MESSAGE,
            {"text": resolution.text, "ts": int(time.time() * 1000)},
        )
        logger.info(
            "agent->visitor: session=%s via=%s delivered=%s text=%r",
            resolution.session_id,
            resolution.via,
            delivered,
            resolution.text[:80],
        )
        return delivered

    async def handle_agent_command(self, command: AgentCommand) -> None:
        if command.from_bot:
            return

        if command.name == "chatid":
            await run_step(
                "reply_chatid",
                lambda: self._workspace.send_message(
                    command.chat_id, f"CHAT_ID: {command.chat_id}", thread_id=command.thread_id
                ),
            )
            return

        if command.name != "close":
            # Unknown commands are ordinary text for the visitor.
            await self.handle_agent_message(command)
            return

        if not command.is_group:
            return

        session_id: Optional[str] = None
        if command.thread_id is not None:
            session_id = self._registry.lookup_session_by_thread(command.thread_id)
        if session_id is None:
            session_id = find_marker(command.reply_to_text)

        if session_id is None:
            await run_step(
                "reply_close_usage",
                lambda: self._workspace.send_message(
                    command.chat_id, CLOSE_USAGE_TEXT, thread_id=command.thread_id
                ),
            )
            return

        await self._close_by_admin(
            session_id, command, f"⛔️ Closed with /close · Session {format_marker(session_id)}"
        )

    async def handle_agent_callback(self, callback: AgentCallback) -> None:
        await run_step("answer_callback", lambda: self._workspace.answer_callback(callback.callback_id))

        if not callback.data.startswith(CLOSE_CALLBACK_PREFIX):
            return
        session_id = callback.data[len(CLOSE_CALLBACK_PREFIX):].strip()
        if not session_id:
            return

        await self._lifecycle.close_session(session_id, CloseCause.ADMIN, actor=callback.actor)

        card = callback.card or self._registry.get_card_reference(session_id)
        if card is not None:
            await run_step(
                "card_edit",
                lambda: self._workspace.edit_message(
                    card, card_closed_text(session_id, CloseCause.ADMIN)
                ),
                context=f"session={session_id}",
            )
        await self._lifecycle.post_audit(
            f"⛔️ Closed from card · Session {format_marker(session_id)}"
        )

    async def _close_by_admin(self, session_id: str, message: AgentMessage, audit_text: str) -> None:
        await self._lifecycle.close_session(session_id, CloseCause.ADMIN, actor=message.actor)
        await run_step(
            "confirm_close",
            lambda: self._workspace.send_message(
                message.chat_id,
                f"⛔️ Dialog {format_marker(session_id)} closed.",
                thread_id=message.thread_id,
                controls=remove_keyboard(),
            ),
            context=f"session={session_id}",
        )
        await self._lifecycle.post_audit(audit_text)


__all__ = [
    "ACK_SEND_FAILED",
    "ACK_THREAD_UNAVAILABLE",
    "AgentEvent",
    "CLOSE_USAGE_TEXT",
    "EVENT_ADMIN_MESSAGE",
    "EVENT_SERVER_ACK",
    "EVENT_SESSION",
    "MessageRouter",
    "Resolution",
    "mint_session_id",
]
