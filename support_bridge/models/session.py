from __future__ import annotations

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    THREADED = "threaded"
    CLOSED = "closed"


class CloseCause(str, Enum):
    ADMIN = "admin"
    CLIENT = "client"


class CardReference(BaseModel):
    """
    Handle to a message posted by the bot, used to edit it in place later.
    """

    model_config = ConfigDict(frozen=True)

    chat_id: Union[int, str] = Field(..., description="Chat the message lives in")
    message_id: int = Field(..., description="Telegram message id")


class Actor(BaseModel):
    """
    Agent who triggered an action in the support group.
    """

    id: int
    username: Optional[str] = None

    @property
    def display(self) -> str:
        return f"@{self.username or self.id}"


class SessionSnapshot(BaseModel):
    """
    Read-only view of everything the registry knows about one session.
    """

    session_id: str
    state: SessionState
    created_at: Optional[float] = Field(
        default=None, description="First time the session was seen (epoch seconds)"
    )
    thread_id: Optional[int] = None
    connection_id: Optional[str] = None
    card: Optional[CardReference] = None
    closed_at: Optional[float] = Field(
        default=None, description="Time of the last close (epoch seconds)"
    )


__all__ = [
    "Actor",
    "CardReference",
    "CloseCause",
    "SessionSnapshot",
    "SessionState",
]
