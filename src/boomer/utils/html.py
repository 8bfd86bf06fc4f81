"""HTML escaping for rendered chunks.

Single-pass escaping via ``str.translate()``. Values exposing
``__html__`` (``Markup`` and compatible types) are trusted and passed
through unchanged.
"""

from __future__ import annotations

from typing import Any

_ESCAPE_TABLE = str.maketrans(
    {
        "&": "&amp;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&quot;",
        "'": "&#x27;",
    }
)


class Markup(str):
    """A string that is already safe to emit without escaping."""

    __slots__ = ()

    def __html__(self) -> str:
        return str(self)

    def __repr__(self) -> str:
        return f"Markup({str.__repr__(self)})"


def html_escape(value: Any) -> str:
    """Escape a value for HTML text or a double-quoted attribute.

    ``None`` renders as the empty string.

    Example:
        >>> html_escape("<b>&</b>")
        '&lt;b&gt;&amp;&lt;/b&gt;'
        >>> html_escape(Markup("<b>"))
        '<b>'
    """
    if value is None:
        return ""
    html = getattr(value, "__html__", None)
    if html is not None:
        return str(html())
    return str(value).translate(_ESCAPE_TABLE)


def stringify(value: Any) -> str:
    """Convert a value to text without escaping (``None`` -> ``''``)."""
    if value is None:
        return ""
    return str(value)


_TEXT_ESCAPE_TABLE = str.maketrans({"&": "&amp;", "<": "&lt;", ">": "&gt;"})


def escape_text(text: str) -> str:
    """Escape static text content; quotes are left alone outside attributes."""
    return text.translate(_TEXT_ESCAPE_TABLE)
