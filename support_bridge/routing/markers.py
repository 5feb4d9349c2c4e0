"""
Inline session markers in agent-typed text.

Grammar (case-insensitive):

    marker  = "#" hexid
    hexid   = 6*32 HEXDIG
    leading = marker 1*WSP rest      ; at the very start, rest non-empty

Agents address a session from any thread by starting a message with
"#<id> <text>", or by replying to a bot message that contains "#<id>"
somewhere (cards, thread starters and relayed visitor messages all do).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional


LEADING_MARKER_RE = re.compile(r"^#([a-f0-9]{6,32})\s+([\s\S]+)", re.IGNORECASE)
MARKER_RE = re.compile(r"#([a-f0-9]{6,32})", re.IGNORECASE)


@dataclass(frozen=True)
class LeadingMarker:
    session_id: str
    rest: str


def parse_leading_marker(text: Optional[str]) -> Optional[LeadingMarker]:
    """
    Split "#<id> <rest>" into its parts; None when the text does not start
    with a marker followed by whitespace and something else.
    """
    if not text:
        return None
    match = LEADING_MARKER_RE.match(text)
    if match is None:
        return None
    rest = match.group(2)
    if not rest.strip():
        return None
    return LeadingMarker(session_id=match.group(1), rest=rest)


def find_marker(text: Optional[str]) -> Optional[str]:
    """
    Return the session id of the first marker anywhere in the text.
    """
    if not text:
        return None
    match = MARKER_RE.search(text)
    if match is None:
        return None
    return match.group(1)


def format_marker(session_id: str) -> str:
    return f"#{session_id}"


__all__ = [
    "LeadingMarker",
    "find_marker",
    "format_marker",
    "parse_leading_marker",
]
