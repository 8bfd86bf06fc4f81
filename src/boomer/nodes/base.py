"""Base node class for front-end input records."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Node:
    """Base class for all input nodes.

    All nodes track their source location for error reporting.
    Nodes are immutable so a compilation input can be shared freely.

    """

    lineno: int
    col_offset: int
