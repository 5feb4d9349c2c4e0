"""
In-memory identifier registry.

Three identifier spaces meet here: the ephemeral WebSocket connection id,
the durable session id and the Telegram forum topic (thread) id. The
registry is the only owner of the maps between them. Every operation is
a plain dict operation: nothing awaits, nothing raises, and absence is
reported as None.

Thread bindings are never removed. After a close, agents replying in the
old topic still resolve to the session; the router then finds no live
connection and drops the reply.
"""

from __future__ import annotations

import time
from typing import Dict, Optional, Set

from support_bridge.models import CardReference, SessionSnapshot, SessionState


class IdentifierRegistry:
    def __init__(self) -> None:
        self._connection_by_session: Dict[str, str] = {}
        self._session_by_connection: Dict[str, str] = {}
        self._thread_by_session: Dict[str, int] = {}
        self._session_by_thread: Dict[int, str] = {}
        self._card_by_session: Dict[str, CardReference] = {}
        self._created_at: Dict[str, float] = {}
        self._closed_at: Dict[str, float] = {}
        self._closed: Set[str] = set()

    def _touch(self, session_id: str) -> None:
        self._created_at.setdefault(session_id, time.time())

    # Connections

    def bind_connection(self, session_id: str, connection_id: str) -> None:
        """
        Make connection_id the live connection of session_id.

        Latest connection wins: a previous connection of the same session
        keeps its reverse entry until its own disconnect evicts it.
        """
        self._touch(session_id)
        previous_session = self._session_by_connection.get(connection_id)
        if (
            previous_session is not None
            and previous_session != session_id
            and self._connection_by_session.get(previous_session) == connection_id
        ):
            del self._connection_by_session[previous_session]
        self._connection_by_session[session_id] = connection_id
        self._session_by_connection[connection_id] = session_id

    def lookup_session_by_connection(self, connection_id: str) -> Optional[str]:
        return self._session_by_connection.get(connection_id)

    def lookup_connection_by_session(self, session_id: str) -> Optional[str]:
        return self._connection_by_session.get(session_id)

    def unbind_connection(self, connection_id: str) -> Optional[str]:
        """
        Drop the entries of one connection; session and thread survive.

        The session's forward entry is only removed while it still points
        at this connection. Returns the session the connection served.
        """
        session_id = self._session_by_connection.pop(connection_id, None)
        if (
            session_id is not None
            and self._connection_by_session.get(session_id) == connection_id
        ):
            del self._connection_by_session[session_id]
        return session_id

    def forget_session(self, session_id: str) -> None:
        """
        Drop the live connection of a session so it stops receiving relays.
        """
        self._connection_by_session.pop(session_id, None)

    # Threads

    def bind_thread(self, session_id: str, thread_id: int) -> int:
        """
        Bind a thread to a session once; an existing binding is kept and
        returned unchanged.
        """
        existing = self._thread_by_session.get(session_id)
        if existing is not None:
            return existing
        self._touch(session_id)
        self._thread_by_session[session_id] = thread_id
        self._session_by_thread[thread_id] = session_id
        return thread_id

    def lookup_thread_by_session(self, session_id: str) -> Optional[int]:
        return self._thread_by_session.get(session_id)

    def lookup_session_by_thread(self, thread_id: int) -> Optional[str]:
        return self._session_by_thread.get(thread_id)

    # Cards

    def set_card_reference(self, session_id: str, ref: CardReference) -> None:
        self._touch(session_id)
        self._card_by_session[session_id] = ref

    def get_card_reference(self, session_id: str) -> Optional[CardReference]:
        return self._card_by_session.get(session_id)

    # Lifecycle marks

    def mark_closed(self, session_id: str) -> bool:
        """
        Flag the session as closed. Returns False when it already was.
        """
        if session_id in self._closed:
            return False
        self._touch(session_id)
        self._closed.add(session_id)
        self._closed_at[session_id] = time.time()
        return True

    def is_closed(self, session_id: str) -> bool:
        return session_id in self._closed

    def state(self, session_id: str) -> SessionState:
        if session_id in self._closed:
            return SessionState.CLOSED
        if session_id in self._thread_by_session:
            return SessionState.THREADED
        if session_id in self._created_at:
            return SessionState.ACTIVE
        return SessionState.UNINITIALIZED

    def snapshot(self, session_id: str) -> Optional[SessionSnapshot]:
        if session_id not in self._created_at:
            return None
        return SessionSnapshot(
            session_id=session_id,
            state=self.state(session_id),
            created_at=self._created_at.get(session_id),
            thread_id=self._thread_by_session.get(session_id),
            connection_id=self._connection_by_session.get(session_id),
            card=self._card_by_session.get(session_id),
            closed_at=self._closed_at.get(session_id),
        )


__all__ = ["IdentifierRegistry"]
