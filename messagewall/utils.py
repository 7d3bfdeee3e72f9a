"""
Utility functions for the message wall API.
"""

import re
import time
from typing import Any, Optional

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def now_ms() -> int:
    """Current wall-clock time in milliseconds since epoch."""
    return int(time.time() * 1000)


def escape_html(value: str) -> str:
    """
    Escape HTML special characters so the result renders as plain text.

    ``&`` is replaced first so the entities produced afterwards are not
    escaped twice. Single quotes become ``&#39;``.
    """
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


def char_count(value: str) -> int:
    """Number of Unicode code points, so a CJK character or an emoji counts once."""
    return len(value)


def parse_int(value: Optional[str], default: int) -> int:
    """
    Lenient integer parsing for query parameters.

    A leading integer is used ("3abc" -> 3); missing or unparsable values
    fall back to ``default``.
    """
    if not value:
        return default
    match = _LEADING_INT.match(value)
    if match is None:
        return default
    return int(match.group(1))


def clamp(value: int, low: int, high: Optional[int] = None) -> int:
    value = max(value, low)
    if high is not None:
        value = min(value, high)
    return value


def js_string(value: Any) -> str:
    """
    Stringify a decoded JSON value the way JavaScript's ``String()`` does.

    ``None`` is "null", booleans are lower case, integral floats drop ".0",
    arrays join their items with "," (null items become ""), objects are
    "[object Object]".
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list):
        return ",".join("" if item is None else js_string(item) for item in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)
