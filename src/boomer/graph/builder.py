"""Scope graph builder.

Turns the front-end's nested ``ScopeRecord`` tree into a ``ScopeGraph``.
Ids are assigned in pre-order as scopes are visited; parent/child links
are recorded on the way down. Call targets are resolved by scope key once
every scope is known, so a call may name a scope declared later in source.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from boomer.exceptions import CycleDetected, DanglingCall
from boomer.graph.model import Call, ScopeGraph, ScopeNode, Statement
from boomer.nodes import CallSite, ScopeRecord

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Draft:
    """Mutable scope state while the traversal is in progress."""

    id: int
    record: ScopeRecord
    parent: int | None
    children: list[int] = field(default_factory=list)


class ScopeGraphBuilder:
    """Build a ScopeGraph from front-end scope records.

    Thread-safe: Creates new state for each build() call.

    Example:
            >>> root = ScopeRecord(1, 0, "module", declarations=frozenset({"value"}),
            ...     calls=(CallSite(5, 0, "log", ("value",)),),
            ...     children=(ScopeRecord(2, 0, "log", params=("x",)),))
            >>> graph = ScopeGraphBuilder().build(root)
            >>> graph.node(1).parent
            0

    Errors:
        - DanglingCall: a call names a key no scope declares
        - CycleDetected: a scope is reached twice, or calls recurse

    """

    def __init__(self) -> None:
        self._drafts: list[_Draft] = []
        self._ids: dict[str, int] = {}
        self._stack: list[str] = []
        self._seen_records: set[int] = set()

    def build(self, root: ScopeRecord) -> ScopeGraph:
        """Build and validate the graph rooted at ``root``.

        Args:
            root: Outermost scope record (module or component scope).

        Returns:
            Immutable ScopeGraph with pre-order ids.
        """
        self._drafts = []
        self._ids = {}
        self._stack = []
        self._seen_records = set()

        self._visit(root, None)
        nodes = tuple(self._finish(draft) for draft in self._drafts)
        graph = ScopeGraph(nodes)
        self._check_call_cycles(graph)
        graph.validate()
        logger.debug("Built scope graph with %d scopes", len(graph))
        return graph

    def _visit(self, record: ScopeRecord, parent: int | None) -> int:
        """Assign the next id to ``record`` and visit its children."""
        if record.name in self._stack:
            start = self._stack.index(record.name)
            raise CycleDetected(
                (*self._stack[start:], record.name),
                lineno=record.lineno,
                col_offset=record.col_offset,
            )
        if id(record) in self._seen_records or record.name in self._ids:
            # Reached a second time through another parent: not a tree.
            raise CycleDetected(
                (*self._stack, record.name),
                lineno=record.lineno,
                col_offset=record.col_offset,
            )

        scope_id = len(self._drafts)
        self._seen_records.add(id(record))
        self._ids[record.name] = scope_id
        draft = _Draft(id=scope_id, record=record, parent=parent)
        self._drafts.append(draft)

        self._stack.append(record.name)
        for child in record.children:
            draft.children.append(self._visit(child, scope_id))
        self._stack.pop()
        return scope_id

    def _finish(self, draft: _Draft) -> ScopeNode:
        record = draft.record
        return ScopeNode(
            id=draft.id,
            name=record.name,
            parent=draft.parent,
            children=tuple(draft.children),
            declarations=frozenset(record.declarations),
            params=tuple(record.params),
            calls=tuple(
                self._resolve_call(record, site, index) for index, site in enumerate(record.calls)
            ),
            statements=tuple(
                Statement(
                    depends_on=frozenset(stmt.depends_on),
                    handle=stmt.handle,
                    index=index,
                    lineno=stmt.lineno,
                    col_offset=stmt.col_offset,
                )
                for index, stmt in enumerate(record.statements)
            ),
            lineno=record.lineno,
            col_offset=record.col_offset,
        )

    def _resolve_call(self, caller: ScopeRecord, site: CallSite, index: int) -> Call:
        target = self._ids.get(site.callee)
        if target is None:
            raise DanglingCall(
                caller.name, site.callee, lineno=site.lineno, col_offset=site.col_offset
            )
        return Call(
            target=target,
            args=tuple(site.args),
            depth=site.depth,
            index=index,
            lineno=site.lineno,
            col_offset=site.col_offset,
        )

    def _check_call_cycles(self, graph: ScopeGraph) -> None:
        """Reject self and mutual recursion in the caller -> callee graph."""
        # 0 = unvisited, 1 = on the current path, 2 = done
        state = [0] * len(graph)
        path: list[int] = []

        def visit(scope_id: int) -> None:
            state[scope_id] = 1
            path.append(scope_id)
            node = graph.node(scope_id)
            for call in node.calls:
                if state[call.target] == 1:
                    start = path.index(call.target)
                    names = [graph.node(i).name for i in path[start:]]
                    raise CycleDetected(
                        (*names, graph.node(call.target).name),
                        lineno=call.lineno,
                        col_offset=call.col_offset,
                    )
                if state[call.target] == 0:
                    visit(call.target)
            path.pop()
            state[scope_id] = 2

        for node in graph.walk():
            if state[node.id] == 0:
                visit(node.id)


def build_scope_graph(root: ScopeRecord) -> ScopeGraph:
    """Convenience wrapper: ``ScopeGraphBuilder().build(root)``."""
    return ScopeGraphBuilder().build(root)
