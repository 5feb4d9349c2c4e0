from __future__ import annotations

import itertools
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from support_bridge.models import AgentMessage, CardReference
from support_bridge.workspace.client import WorkspaceAPIError


GROUP_ID = -1001234567890
REQUESTS_THREAD_ID = 2
LOGS_THREAD_ID = 3


def sequential_ids(prefix: str = "abc") -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter):06x}"


class FakeWorkspace:
    """
    In-memory stand-in for TelegramWorkspace that records every call.

    Names in `fail` make the matching method raise WorkspaceAPIError;
    thread ids in `fail_threads` make sendMessage into them fail.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.fail: Set[str] = set()
        self.fail_threads: Set[int] = set()
        self._thread_ids = itertools.count(1000)
        self._message_ids = itertools.count(1)

    def _record(self, method: str, **kwargs: Any) -> None:
        self.calls.append((method, kwargs))
        if method in self.fail:
            raise WorkspaceAPIError(method, "Bad Request: simulated failure", error_code=400)

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def sent(self, thread_id: Optional[int] = None) -> List[Dict[str, Any]]:
        return [
            kwargs
            for name, kwargs in self.calls
            if name == "send_message" and (thread_id is None or kwargs["thread_id"] == thread_id)
        ]

    def sent_texts(self, thread_id: Optional[int] = None) -> List[str]:
        return [kwargs["text"] for kwargs in self.sent(thread_id)]

    async def create_thread(self, group_id, title: str) -> int:
        self._record("create_thread", group_id=group_id, title=title)
        return next(self._thread_ids)

    async def send_message(self, group_id, text: str, *, thread_id=None, controls=None) -> CardReference:
        self.calls.append(
            ("send_message", {"group_id": group_id, "text": text, "thread_id": thread_id, "controls": controls})
        )
        if "send_message" in self.fail or thread_id in self.fail_threads:
            raise WorkspaceAPIError("sendMessage", "Bad Request: simulated failure", error_code=400)
        return CardReference(chat_id=group_id, message_id=next(self._message_ids))

    async def edit_message(self, ref: CardReference, text: str) -> None:
        self._record("edit_message", ref=ref, text=text)

    async def strip_controls(self, group_id, thread_id: int, text: str = "Dialog closed.") -> CardReference:
        self._record("strip_controls", group_id=group_id, thread_id=thread_id)
        return CardReference(chat_id=group_id, message_id=next(self._message_ids))

    async def pin_message(self, ref: CardReference) -> None:
        self._record("pin_message", ref=ref)

    async def answer_callback(self, callback_id: str, text: Optional[str] = None) -> None:
        self._record("answer_callback", callback_id=callback_id)


class RecordingHub:
    """
    ConnectionHub stand-in: connections are ids in `connected`, and every
    emitted frame is appended to `frames`.
    """

    def __init__(self) -> None:
        self.connected: Set[str] = set()
        self.frames: List[Tuple[str, str, Any]] = []

    def open(self, connection_id: str) -> str:
        self.connected.add(connection_id)
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        self.connected.discard(connection_id)

    async def emit(self, connection_id: str, event: str, payload: Any = None) -> bool:
        if connection_id not in self.connected:
            return False
        self.frames.append((connection_id, event, payload))
        return True

    def events(self, connection_id: Optional[str] = None) -> List[Tuple[str, Any]]:
        return [
            (event, payload)
            for cid, event, payload in self.frames
            if connection_id is None or cid == connection_id
        ]


def agent_message(
    text: str,
    *,
    thread_id: Optional[int] = None,
    reply_to_text: Optional[str] = None,
    chat_type: str = "supergroup",
    from_bot: bool = False,
) -> AgentMessage:
    return AgentMessage(
        chat_id=GROUP_ID,
        chat_type=chat_type,
        message_id=500,
        thread_id=thread_id,
        text=text,
        reply_to_text=reply_to_text,
        from_bot=from_bot,
    )
