"""Template markup nodes: the embedded element tree of a component."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from boomer.nodes.base import Node


@dataclass(frozen=True, slots=True)
class Text(Node):
    """Static text between markup constructs."""

    value: str


@dataclass(frozen=True, slots=True)
class Expr(Node):
    """Embedded expression: ``<p>Current Page {page()}</p>``

    ``accessor`` is evaluated at render time. ``reads`` lists the names the
    expression reads, which decides whether it is client-reactive.
    """

    accessor: Callable[[], Any]
    reads: frozenset[str] = frozenset()
    source: str = ""
    escape: bool | None = None


@dataclass(frozen=True, slots=True)
class Await(Node):
    """Explicitly awaited expression: ``<pre>{await get()}</pre>``"""

    producer: Callable[[], Awaitable[Any]]
    reads: frozenset[str] = frozenset()
    source: str = ""
    escape: bool | None = None


@dataclass(frozen=True, slots=True)
class Attr(Node):
    """Element attribute, static (``str``) or computed (``Expr``)."""

    name: str
    value: str | Expr | None = None


@dataclass(frozen=True, slots=True)
class EventBinding(Node):
    """Client event handler: ``<button onClick={incrementPage}>``

    Never rendered on the server; the element is anchored so the client
    runtime can attach ``handler`` to ``event``.
    """

    event: str
    handler: str


@dataclass(frozen=True, slots=True)
class Conditional(Node):
    """Server-evaluated branch: ``{cond ? <a/> : <b/>}``"""

    test: Callable[[], Any]
    body: Sequence[Node]
    else_: Sequence[Node] = ()
    reads: frozenset[str] = frozenset()
    source: str = ""


@dataclass(frozen=True, slots=True)
class Element(Node):
    """HTML element with attributes, event bindings and children."""

    tag: str
    attrs: Sequence[Attr | EventBinding] = ()
    children: Sequence[Node] = ()


@dataclass(frozen=True, slots=True)
class Fragment(Node):
    """Ordered children without a wrapping element."""

    children: Sequence[Node] = ()


# Elements that never take a closing tag.
VOID_ELEMENTS: frozenset[str] = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "source",
        "track",
        "wbr",
    }
)
