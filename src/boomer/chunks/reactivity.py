"""Reactivity information for the chunk compiler.

The compiler asks one question of every expression-bearing markup node:
which client signals does it react to? An empty answer means the node is
static for the client and compiles without an anchor.

Nodes are identified by their ``MarkupPath``: child indices from the
template root, ``"@<i>"`` for the i-th attribute, and ``"then"`` /
``"else"`` before indices inside a conditional's branches.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator, Sequence
from dataclasses import dataclass

from boomer.analysis.propagation import PropagationResult, ResolvedStatement
from boomer.nodes import (
    Attr,
    Await,
    Conditional,
    Element,
    Expr,
    Fragment,
    Node,
    ReactiveStatement,
)

MarkupPath = tuple[int | str, ...]


@dataclass(frozen=True, slots=True)
class MarkupKey:
    """Statement handle identifying a markup node by its path."""

    path: MarkupPath


class Reactivity:
    """Base policy: nothing is reactive (pure server rendering)."""

    def signals(self, node: Node, path: MarkupPath) -> tuple[str, ...]:
        """Reactive signal names read by ``node``, sorted; () if static."""
        return ()

    @classmethod
    def none(cls) -> Reactivity:
        return cls()

    @staticmethod
    def from_signals(names: Iterable[str]) -> Reactivity:
        """Reactive iff the node reads one of ``names``."""
        return SignalSetReactivity(frozenset(names))

    @staticmethod
    def from_propagation(result: PropagationResult) -> Reactivity:
        """Reactive iff the node's statement resolved without degrading."""
        return PropagationReactivity(result)


class SignalSetReactivity(Reactivity):
    """Name-based reactivity: intersect a node's reads with known signals."""

    __slots__ = ("_names",)

    def __init__(self, names: frozenset[str]) -> None:
        self._names = names

    def signals(self, node: Node, path: MarkupPath) -> tuple[str, ...]:
        return tuple(sorted(_reads(node) & self._names))


class PropagationReactivity(Reactivity):
    """Reactivity decided by the propagation resolver.

    Markup statements are registered with ``MarkupKey`` handles (see
    ``markup_statements``); a degraded statement compiles as static.
    """

    __slots__ = ("_statements",)

    def __init__(self, result: PropagationResult) -> None:
        statements: dict[Hashable, ResolvedStatement] = {}
        for statement in result.statements:
            if isinstance(statement.handle, MarkupKey):
                statements.setdefault(statement.handle, statement)
        self._statements = statements

    def signals(self, node: Node, path: MarkupPath) -> tuple[str, ...]:
        statement = self._statements.get(MarkupKey(path))
        if statement is None or not statement.reactive:
            return ()
        return statement.signals


def _reads(node: Node) -> frozenset[str]:
    if isinstance(node, Attr):
        return node.value.reads if isinstance(node.value, Expr) else frozenset()
    return getattr(node, "reads", frozenset())


def iter_markup(root: Node, path: MarkupPath = ()) -> Iterator[tuple[MarkupPath, Node]]:
    """Yield (path, node) for every expression-bearing node, in source order."""
    if isinstance(root, Element):
        for index, attr in enumerate(root.attrs):
            if isinstance(attr, Attr) and isinstance(attr.value, Expr):
                yield (*path, f"@{index}"), attr
        yield from _iter_children(root.children, path)
    elif isinstance(root, Fragment):
        yield from _iter_children(root.children, path)
    elif isinstance(root, (Expr, Await)):
        yield path, root
    elif isinstance(root, Conditional):
        yield path, root
        yield from _iter_children(root.body, (*path, "then"))
        yield from _iter_children(root.else_, (*path, "else"))


def _iter_children(
    children: Sequence[Node], path: MarkupPath
) -> Iterator[tuple[MarkupPath, Node]]:
    for index, child in enumerate(children):
        yield from iter_markup(child, (*path, index))


def markup_statements(root: Node) -> tuple[ReactiveStatement, ...]:
    """Reactive statements for every markup node that reads something.

    Appended to the template's scope record before building the scope
    graph, so that template reads are resolved like any other statement.
    """
    return tuple(
        ReactiveStatement(
            node.lineno,
            node.col_offset,
            depends_on=_reads(node),
            handle=MarkupKey(path),
        )
        for path, node in iter_markup(root)
        if _reads(node)
    )
