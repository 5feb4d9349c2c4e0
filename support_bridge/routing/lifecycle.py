"""
Session lifecycle: thread creation, first contact and close.

A session gets exactly one forum topic, created lazily the first time it is
needed. Closing a session is a sequence of independent best-effort steps
(audit log, thread notice, keyboard removal, card edit, visitor
notification, connection drop); one failing step never prevents the next.
"""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Union

from support_bridge.channel.hub import ConnectionHub
from support_bridge.logging_config import logger
from support_bridge.models import Actor, CardReference, CloseCause
from support_bridge.workspace.client import TelegramWorkspace, WorkspaceAPIError
from support_bridge.workspace.keyboards import (
    card_keyboard,
    close_reply_keyboard,
    topic_link,
)

from .exceptions import ThreadCreationError
from .markers import format_marker
from .registry import IdentifierRegistry
from .steps import Step, StepResult, failed_steps, run_step, run_steps


EVENT_SESSION_CLOSED = "session_closed"


def thread_title(session_id: str) -> str:
    return f"Session {format_marker(session_id)}"


def thread_starter_text(session_id: str) -> str:
    return f"🔰 Thread opened for {thread_title(session_id)}. ID: [{format_marker(session_id)}]"


def visitor_line(session_id: str, text: str) -> str:
    return f"👤 Visitor [{format_marker(session_id)}] ({session_id[:8]}):\n{text}"


def card_text(session_id: str, text: str) -> str:
    return "\n".join(
        [
            "🆘 New support request",
            f"Session: {format_marker(session_id)}",
            "",
            "Message:",
            text,
        ]
    )


def audit_created_text(session_id: str) -> str:
    return f"🟢 Conversation created · Session {format_marker(session_id)}"


def audit_closed_text(session_id: str, cause: CloseCause, actor: Optional[Actor] = None) -> str:
    if cause is CloseCause.ADMIN:
        by = f" {actor.display}" if actor is not None else ""
        return f"⛔️ Session {format_marker(session_id)} closed by admin{by}"
    return f"🔴 Visitor left the chat · Session {format_marker(session_id)}"


def thread_closed_text(session_id: str, cause: CloseCause) -> str:
    if cause is CloseCause.ADMIN:
        return f"⛔️ Dialog {format_marker(session_id)} closed by admin"
    return f"🔴 Visitor left the chat {format_marker(session_id)}"


def card_closed_text(session_id: str, cause: CloseCause) -> str:
    if cause is CloseCause.ADMIN:
        return f"❌ Dialog {format_marker(session_id)} closed by admin."
    return f"❌ Dialog {format_marker(session_id)} closed by visitor."


class SessionLifecycleManager:
    def __init__(
        self,
        registry: IdentifierRegistry,
        workspace: TelegramWorkspace,
        hub: ConnectionHub,
        *,
        group_id: Union[int, str],
        requests_thread_id: int,
        logs_thread_id: int,
    ) -> None:
        self._registry = registry
        self._workspace = workspace
        self._hub = hub
        self._group_id = group_id
        self._requests_thread_id = requests_thread_id
        self._logs_thread_id = logs_thread_id
        self._thread_locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @property
    def registry(self) -> IdentifierRegistry:
        return self._registry

    def _get_lock(self, session_id: str) -> asyncio.Lock:
        if session_id not in self._thread_locks:
            self._thread_locks[session_id] = asyncio.Lock()
        self._lock_users[session_id] = self._lock_users.get(session_id, 0) + 1
        return self._thread_locks[session_id]

    def _release_lock(self, session_id: str) -> None:
        # Drop the lock once nobody holds or waits on it.
        remaining = self._lock_users.get(session_id, 1) - 1
        if remaining > 0:
            self._lock_users[session_id] = remaining
            return
        self._lock_users.pop(session_id, None)
        self._thread_locks.pop(session_id, None)

    async def ensure_thread(self, session_id: str) -> int:
        """
        Return the session's thread id, creating the topic on first use.

        Concurrent first calls for one session share a lock, so at most one
        topic is ever created. Raises ThreadCreationError when Telegram
        refuses to create the topic; nothing is bound in that case.
        """
        existing = self._registry.lookup_thread_by_session(session_id)
        if existing is not None:
            return existing

        lock = self._get_lock(session_id)
        try:
            async with lock:
                existing = self._registry.lookup_thread_by_session(session_id)
                if existing is not None:
                    return existing
                bound = await self._open_thread(session_id)
        finally:
            self._release_lock(session_id)

        logger.info("Thread ready for session %s: thread=%s", session_id, bound)
        return bound

    async def _open_thread(self, session_id: str) -> int:
        try:
            thread_id = await self._workspace.create_thread(
                self._group_id, thread_title(session_id)
            )
        except WorkspaceAPIError as exc:
            logger.error(
                "createForumTopic failed for session %s: %s", session_id, exc.description
            )
            raise ThreadCreationError(
                session_id,
                "enable topics in the group and grant the bot the Manage Topics right "
                f"({exc.description})",
            ) from exc

        # The topic exists from here on; the starter message is cosmetic.
        starter = await run_step(
            "thread_starter",
            lambda: self._workspace.send_message(
                self._group_id,
                thread_starter_text(session_id),
                thread_id=thread_id,
                controls=close_reply_keyboard(),
            ),
            context=f"session={session_id}",
        )
        if starter.ok:
            await run_step(
                "pin_starter",
                lambda: self._workspace.pin_message(starter.value),
                context=f"session={session_id}",
            )

        return self._registry.bind_thread(session_id, thread_id)

    async def post_audit(self, text: str) -> StepResult:
        return await run_step("audit", lambda: self._post_audit_raw(text))

    async def start_conversation(self, session_id: str, text: str) -> CardReference:
        """
        First-contact path: thread, card in the requests thread, audit entry
        and a copy of the visitor's first message inside the thread.

        Thread and card failures propagate; audit and copy are best-effort.
        """
        thread_id = await self.ensure_thread(session_id)
        link = topic_link(self._group_id, thread_id)

        card = await self._workspace.send_message(
            self._group_id,
            card_text(session_id, text),
            thread_id=self._requests_thread_id,
            controls=card_keyboard(link, session_id),
        )
        self._registry.set_card_reference(session_id, card)
        logger.info("Card posted for session %s: message=%s", session_id, card.message_id)

        await run_steps(
            [
                ("audit_created", lambda: self._post_audit_raw(audit_created_text(session_id))),
                (
                    "duplicate_to_thread",
                    lambda: self._workspace.send_message(
                        self._group_id,
                        visitor_line(session_id, text),
                        thread_id=thread_id,
                    ),
                ),
            ],
            context=f"session={session_id}",
        )
        return card

    async def relay_visitor_message(self, session_id: str, text: str) -> CardReference:
        thread_id = await self.ensure_thread(session_id)
        return await self._workspace.send_message(
            self._group_id,
            visitor_line(session_id, text),
            thread_id=thread_id,
        )

    async def close_session(
        self,
        session_id: str,
        cause: Union[CloseCause, str],
        actor: Optional[Actor] = None,
    ) -> List[StepResult]:
        """
        Close a session from either side.

        The closed mark is taken before the first await, so when two close
        paths race only the first one touches the audit log, thread and
        card. Later calls just notify a still-bound connection and drop it.
        Never raises.
        """
        cause = CloseCause(cause)
        first_close = self._registry.mark_closed(session_id)
        context = f"session={session_id}"

        steps: List[Step] = []
        if first_close:
            steps.append(
                ("audit_closed", lambda: self._post_audit_raw(audit_closed_text(session_id, cause, actor)))
            )
            thread_id = self._registry.lookup_thread_by_session(session_id)
            if thread_id is not None:
                steps.append(
                    (
                        "thread_notice",
                        lambda: self._workspace.send_message(
                            self._group_id,
                            thread_closed_text(session_id, cause),
                            thread_id=thread_id,
                        ),
                    )
                )
                steps.append(
                    ("strip_controls", lambda: self._workspace.strip_controls(self._group_id, thread_id))
                )
            card = self._registry.get_card_reference(session_id)
            if card is not None:
                steps.append(
                    ("card_edit", lambda: self._workspace.edit_message(card, card_closed_text(session_id, cause)))
                )
        else:
            logger.info("Session %s is already closed; skipping workspace updates", session_id)

        steps.append(("notify_visitor", lambda: self._notify_closed(session_id, cause)))
        steps.append(("forget_session", lambda: self._forget(session_id)))

        results = await run_steps(steps, context=context)
        failed = failed_steps(results)
        logger.info(
            "Session %s closed (cause=%s, actor=%s)%s",
            session_id,
            cause.value,
            actor.display if actor is not None else "-",
            f", failed steps: {', '.join(failed)}" if failed else "",
        )
        return results

    async def _post_audit_raw(self, text: str) -> CardReference:
        return await self._workspace.send_message(
            self._group_id, text, thread_id=self._logs_thread_id
        )

    async def _notify_closed(self, session_id: str, cause: CloseCause) -> bool:
        connection_id = self._registry.lookup_connection_by_session(session_id)
        if connection_id is None:
            return False
        return await self._hub.emit(connection_id, EVENT_SESSION_CLOSED, {"cause": cause.value})

    async def _forget(self, session_id: str) -> None:
        self._registry.forget_session(session_id)


__all__ = [
    "EVENT_SESSION_CLOSED",
    "SessionLifecycleManager",
    "audit_closed_text",
    "audit_created_text",
    "card_closed_text",
    "card_text",
    "thread_closed_text",
    "thread_starter_text",
    "thread_title",
    "visitor_line",
]
