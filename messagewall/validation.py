"""
Content, type and nickname rules for new messages.

``validate_new_message`` runs after the rate-limit check and raises the first
failing rule as an ``ApiError``. Its result is ready to insert: content is
trimmed and HTML-escaped, kind is normalized, nickname is clamped.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from messagewall.errors import BadContent, BadType, TooLong
from messagewall.utils import char_count, escape_html, js_string

NICKNAME_MAX_CHARS = 16

# Stands for a key that was left out of the request body, as opposed to null
MISSING = object()


class MessageKind(str, Enum):
    WALL = "wall"
    NOTE = "note"

    @property
    def max_chars(self) -> int:
        return KIND_LIMITS[self][0]

    @property
    def too_long_message(self) -> str:
        return KIND_LIMITS[self][1]


KIND_LIMITS = {
    MessageKind.WALL: (500, "留言 ≤500 字"),
    MessageKind.NOTE: (12, "小纸条 ≤12 字"),
}


@dataclass(frozen=True)
class NewMessage:
    content: str
    kind: MessageKind
    nickname: str


def normalize_content(content: Any) -> str:
    """Trimmed content; rejects non-strings and blank text."""
    if not isinstance(content, str) or not content.strip():
        raise BadContent()
    return content.strip()


def normalize_kind(kind: Any = MISSING) -> MessageKind:
    """Case-insensitive kind; only a missing value means wall, an explicit null is "null"."""
    value = "wall" if kind is MISSING else js_string(kind).lower()
    try:
        return MessageKind(value)
    except ValueError:
        raise BadType()


def check_length(content: str, kind: MessageKind) -> None:
    if char_count(content) > kind.max_chars:
        raise TooLong(kind.too_long_message)


def clamp_nickname(nickname: Any, default: str) -> str:
    if not isinstance(nickname, str):
        return default
    return nickname.strip()[:NICKNAME_MAX_CHARS] or default


def validate_new_message(content: Any, kind: Any, nickname: Any, default_nickname: str) -> NewMessage:
    """
    Apply the content rules in order: presence, type, length, escaping, nickname.

    Raises:
        BadContent: content missing, not a string, or blank after trimming
        BadType: kind is not wall or note
        TooLong: trimmed content exceeds the kind's code point limit
    """
    text = normalize_content(content)
    message_kind = normalize_kind(kind)
    check_length(text, message_kind)
    return NewMessage(
        content=escape_html(text),
        kind=message_kind,
        nickname=clamp_nickname(nickname, default_nickname),
    )
