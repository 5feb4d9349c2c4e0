"""
Reply markup attached to bot messages in the support group.
"""

from __future__ import annotations

from typing import Any, Dict, Union


# Reply-keyboard label shown in every session thread. Pressing it sends the
# label as plain text, which the router treats as a close action.
CLOSE_BUTTON_LABEL = "❌ Close ticket"
OPEN_THREAD_LABEL = "🔗 Open thread"
CLOSE_CALLBACK_PREFIX = "close:"


def close_reply_keyboard() -> Dict[str, Any]:
    return {
        "keyboard": [[{"text": CLOSE_BUTTON_LABEL}]],
        "resize_keyboard": True,
        "is_persistent": True,
    }


def remove_keyboard() -> Dict[str, Any]:
    return {"remove_keyboard": True}


def close_callback_data(session_id: str) -> str:
    return f"{CLOSE_CALLBACK_PREFIX}{session_id}"


def card_keyboard(thread_link: str, session_id: str) -> Dict[str, Any]:
    return {
        "inline_keyboard": [
            [
                {"text": OPEN_THREAD_LABEL, "url": thread_link},
                {"text": CLOSE_BUTTON_LABEL, "callback_data": close_callback_data(session_id)},
            ]
        ]
    }


def topic_link(chat_id: Union[int, str], thread_id: int) -> str:
    """
    Deep link to a forum topic of a private supergroup, t.me/c/<id>/<topic>.
    """
    internal_id = str(chat_id).replace("-100", "", 1)
    return f"https://t.me/c/{internal_id}/{thread_id}"


__all__ = [
    "CLOSE_BUTTON_LABEL",
    "CLOSE_CALLBACK_PREFIX",
    "OPEN_THREAD_LABEL",
    "card_keyboard",
    "close_callback_data",
    "close_reply_keyboard",
    "remove_keyboard",
    "topic_link",
]
