"""Scope graph data model.

An arena of ``ScopeNode`` records indexed by integer id. Ids are assigned
once, in pre-order, and never reused within a compilation; the root is
always id 0. The graph is a tree and is immutable once built, so one
instance can be shared read-only by any number of resolutions.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from boomer.exceptions import CycleDetected, InvalidGraphError

ROOT_ID = 0


@dataclass(frozen=True, slots=True)
class Call:
    """A resolved call site: ``target`` is the callee's scope id."""

    target: int
    args: tuple[str | None, ...]
    depth: int = 0
    index: int = 0
    lineno: int | None = None
    col_offset: int | None = None


@dataclass(frozen=True, slots=True)
class Statement:
    """A reactive statement as stored on its scope."""

    depends_on: frozenset[str]
    handle: Hashable
    index: int
    lineno: int | None = None
    col_offset: int | None = None


@dataclass(frozen=True, slots=True)
class ScopeNode:
    """One lexical scope.

    Attributes:
        id: Stable id within one compilation (pre-order position).
        name: Front-end key of the scope.
        parent: Parent id, None for the root.
        children: Child ids in source order.
        declarations: Locally declared bindings ("local signals").
        params: Parameter names in positional order.
        calls: Outgoing calls in source order.
        statements: Reactive statements in source order.
    """

    id: int
    name: str
    parent: int | None
    children: tuple[int, ...]
    declarations: frozenset[str]
    params: tuple[str, ...]
    calls: tuple[Call, ...]
    statements: tuple[Statement, ...]
    lineno: int | None = None
    col_offset: int | None = None

    def declares(self, name: str) -> bool:
        return name in self.declarations

    def param_position(self, name: str) -> int | None:
        """Positional index of parameter ``name``, or None."""
        try:
            return self.params.index(name)
        except ValueError:
            return None


class ScopeGraph:
    """Arena mapping id -> ScopeNode, rooted at ``ROOT_ID``.

    Thread-safe: read-only after construction.

    Example:
            >>> graph = ScopeGraphBuilder().build(root_record)
            >>> [n.name for n in graph.walk()]
            ['module', 'log', 'error']
            >>> list(graph.ancestors(1))
            [0]

    """

    __slots__ = ("_by_name", "_nodes", "root")

    def __init__(self, nodes: tuple[ScopeNode, ...]) -> None:
        self._nodes = nodes
        self._by_name: Mapping[str, int] = MappingProxyType({n.name: n.id for n in nodes})
        self.root = ROOT_ID

    def node(self, scope_id: int) -> ScopeNode:
        return self._nodes[scope_id]

    def by_name(self, name: str) -> ScopeNode:
        """Look up a scope by its front-end key (KeyError if missing)."""
        return self._nodes[self._by_name[name]]

    def ancestors(self, scope_id: int) -> Iterator[ScopeNode]:
        """Yield ancestors of ``scope_id``, nearest first."""
        parent = self._nodes[scope_id].parent
        while parent is not None:
            node = self._nodes[parent]
            yield node
            parent = node.parent

    def depth(self, scope_id: int) -> int:
        """Number of ancestors of ``scope_id`` (root has depth 0)."""
        return sum(1 for _ in self.ancestors(scope_id))

    def walk(self) -> Iterator[ScopeNode]:
        """Yield every scope in pre-order (which is id order)."""
        yield from self._nodes

    def validate(self) -> None:
        """Check the tree invariants.

        Raises:
            InvalidGraphError: ids out of order or parent/child links disagree.
            CycleDetected: a parent chain loops.
        """
        if not self._nodes:
            raise InvalidGraphError("Scope graph has no root")
        if self._nodes[ROOT_ID].parent is not None:
            raise InvalidGraphError("Root scope must not have a parent", scope=self._nodes[0].name)

        for position, node in enumerate(self._nodes):
            if node.id != position:
                raise InvalidGraphError(
                    f"Scope id {node.id} stored at position {position}", scope=node.name
                )
            for child_id in node.children:
                if not 0 <= child_id < len(self._nodes):
                    raise InvalidGraphError(f"Unknown child id {child_id}", scope=node.name)
                child = self._nodes[child_id]
                if child.parent != node.id:
                    raise InvalidGraphError(
                        f"Child '{child.name}' records parent {child.parent}, expected {node.id}",
                        scope=child.name,
                        lineno=child.lineno,
                        col_offset=child.col_offset,
                    )
            for call in node.calls:
                if not 0 <= call.target < len(self._nodes):
                    raise InvalidGraphError(f"Call to unknown id {call.target}", scope=node.name)

        # Parent chains must reach the root without repeating.
        for node in self._nodes:
            seen = [node.name]
            for ancestor in self.ancestors(node.id):
                if ancestor.name in seen:
                    raise CycleDetected((*seen, ancestor.name))
                seen.append(ancestor.name)
                if len(seen) > len(self._nodes):
                    raise CycleDetected(tuple(seen))

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[ScopeNode]:
        return iter(self._nodes)

    def __contains__(self, scope_id: object) -> bool:
        return isinstance(scope_id, int) and 0 <= scope_id < len(self._nodes)

    def __repr__(self) -> str:
        return f"<ScopeGraph scopes={len(self._nodes)}>"
