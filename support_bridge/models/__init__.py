from .events import (
    AgentCallback,
    AgentCommand,
    AgentMessage,
    ChannelFrame,
    ServerAck,
    VisitorEnd,
    VisitorMessage,
    coerce_session_id,
)
from .session import Actor, CardReference, CloseCause, SessionSnapshot, SessionState

__all__ = [
    "Actor",
    "AgentCallback",
    "AgentCommand",
    "AgentMessage",
    "CardReference",
    "ChannelFrame",
    "CloseCause",
    "ServerAck",
    "SessionSnapshot",
    "SessionState",
    "VisitorEnd",
    "VisitorMessage",
    "coerce_session_id",
]
