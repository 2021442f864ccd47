"""String helpers for file names, HTML embedding and Gmail search queries."""

from __future__ import annotations

import re

MAX_FILENAME_LENGTH = 150

_FORBIDDEN_CHARS = re.compile(r'[\\/:*?"<>|]+')
_WHITESPACE = re.compile(r"\s+")


def sanitize_filename(name: str) -> str:
    """Make a name safe for the destination file store.

    Each run of ``\\ / : * ? " < > |`` becomes one underscore, whitespace runs
    collapse to a single space, and the result is trimmed and truncated to
    150 characters.
    """
    name = _FORBIDDEN_CHARS.sub("_", name)
    name = _WHITESPACE.sub(" ", name).strip()
    return name[:MAX_FILENAME_LENGTH]


def escape_html(value: str | None) -> str:
    """Escape ``& < > "`` so untrusted header values can be embedded in HTML."""
    return (
        str(value or "")
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def quote_query(text: str) -> str:
    """Wrap a label name in double quotes for a Gmail search query."""
    escaped = text.replace('"', '\\"')
    return f'"{escaped}"'
