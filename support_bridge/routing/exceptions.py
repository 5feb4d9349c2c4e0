from __future__ import annotations

from typing import Optional


class ThreadCreationError(RuntimeError):
    """
    Raised when a forum topic for a session cannot be created.

    Usually the group has topics disabled or the bot lacks the
    "Manage Topics" right. Nothing is bound when this is raised.
    """

    def __init__(self, session_id: str, reason: Optional[str] = None):
        self.session_id = session_id
        self.reason = reason
        message = f"Could not create a thread for session {session_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


__all__ = ["ThreadCreationError"]
