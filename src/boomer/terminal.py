"""Terminal color helpers for compiler and render diagnostics.

ANSI escapes are applied only when the output stream is a TTY, unless
overridden by the NO_COLOR / FORCE_COLOR environment variables.
"""

from __future__ import annotations

import os
import re
import sys
from typing import Literal

_CODES = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "yellow": "\033[33m",
    "cyan": "\033[36m",
    "green": "\033[32m",
    "bright_red": "\033[91m",
    "bright_yellow": "\033[93m",
    "bright_blue": "\033[94m",
}

ColorName = Literal[
    "reset", "bold", "dim", "red", "yellow", "cyan", "green",
    "bright_red", "bright_yellow", "bright_blue",
]

_ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


def _should_use_colors() -> bool:
    """Decide once whether diagnostics are colored.

    FORCE_COLOR wins over NO_COLOR (https://no-color.org/); otherwise
    colors follow ``sys.stdout.isatty()``.
    """
    if os.environ.get("FORCE_COLOR"):
        return True
    if os.environ.get("NO_COLOR"):
        return False
    return sys.stdout.isatty()


_USE_COLORS = _should_use_colors()


def supports_color() -> bool:
    return _USE_COLORS


def colorize(text: str, *colors: ColorName) -> str:
    """Wrap text in the given ANSI codes, or return it unchanged.

    Example:
        >>> colorize("B-GRA-001", "bright_red", "bold")
        '\\033[91m\\033[1mB-GRA-001\\033[0m'  # colors enabled
    """
    if not _USE_COLORS or not colors:
        return text
    prefix = "".join(_CODES.get(color, "") for color in colors)
    if not prefix:
        return text
    return f"{prefix}{text}{_CODES['reset']}"


def strip_colors(text: str) -> str:
    """Remove every ANSI escape sequence from text."""
    return _ANSI_ESCAPE.sub("", text)


def error_code(text: str) -> str:
    return colorize(text, "bright_red", "bold")


def warning_code(text: str) -> str:
    return colorize(text, "bright_yellow", "bold")


def location(text: str) -> str:
    return colorize(text, "cyan")


def hint(text: str) -> str:
    return colorize(text, "green")


def dim_text(text: str) -> str:
    return colorize(text, "dim")


def docs_url(text: str) -> str:
    return colorize(text, "bright_blue")


def format_error_header(code: str | None, message: str, *, warning: bool = False) -> str:
    """Format ``CODE: message`` with the code highlighted.

    Warnings use yellow instead of red so they read as non-fatal.
    """
    if not code:
        return message
    styled = warning_code(code) if warning else error_code(code)
    return f"{styled}: {message}"
