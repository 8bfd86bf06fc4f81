"""End-to-end component compilation.

Runs the whole pipeline for one component:

1. Template reads are registered as reactive statements of the scope that
   owns the template, so they are resolved like any other statement.
2. The scope graph is built and validated.
3. Every statement is resolved to propagation branches; unresolved reads
   become warnings (or an error in strict mode).
4. Branches are inverted into the client update graph.
5. The template is compiled to a chunk tree, anchoring exactly the
   markup whose statements stayed reactive.

Example:
    >>> source = ComponentSource(
    ...     name="pager",
    ...     scope=ScopeRecord(1, 0, "pager", declarations=frozenset({"page"})),
    ...     template=Element(2, 0, "p", children=(
    ...         Text(2, 3, "Current Page "),
    ...         Expr(2, 16, accessor=lambda: 1, reads=frozenset({"page"}), source="page()"),
    ...     )),
    ... )
    >>> component = compile_component(source)
    >>> await component.render_to_string()
    '<p data-bmr="scope_0_signal_page">Current Page 1</p>'
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, replace

from boomer.analysis import (
    PropagationResult,
    SignalResolver,
    UpdateGraph,
    build_update_graph,
)
from boomer.chunks import ChunkCompiler, ChunkTree, Reactivity, markup_statements
from boomer.config import DEFAULT_CONFIG, CompilerConfig
from boomer.exceptions import InvalidGraphError, PropagationWarning
from boomer.graph import ScopeGraph, ScopeGraphBuilder
from boomer.nodes import Node, ReactiveStatement, ScopeRecord
from boomer.render import RenderSink, render, render_stream, render_to_string

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ComponentSource:
    """Front-end output for one component.

    Attributes:
        name: Component name, used in log messages.
        scope: Root scope record of the component module.
        template: Root markup node of the component's template.
        template_scope: Key of the scope owning the template; defaults to
            the root scope.
    """

    name: str
    scope: ScopeRecord
    template: Node
    template_scope: str | None = None


@dataclass(frozen=True, slots=True)
class CompiledComponent:
    """All compile outputs of one component. Immutable and shareable."""

    name: str
    graph: ScopeGraph
    propagation: PropagationResult
    updates: UpdateGraph
    chunks: ChunkTree
    template_scope_id: int

    @property
    def warnings(self) -> tuple[PropagationWarning, ...]:
        return self.propagation.warnings

    async def render(self, sink: RenderSink, *, config: CompilerConfig | None = None) -> None:
        await render(self.chunks, sink, config=config)

    async def render_to_string(self, *, config: CompilerConfig | None = None) -> str:
        return await render_to_string(self.chunks, config=config)

    def render_stream(self, *, config: CompilerConfig | None = None) -> AsyncIterator[bytes]:
        return render_stream(self.chunks, config=config)


def compile_component(
    source: ComponentSource,
    *,
    config: CompilerConfig | None = None,
) -> CompiledComponent:
    """Compile one component end to end.

    Raises:
        DanglingCall, CycleDetected, InvalidGraphError: Scope graph errors
        UnresolvedSignalError: Strict mode and a read could not be resolved
    """
    config = config or DEFAULT_CONFIG
    owner = source.template_scope or source.scope.name
    root = _attach_statements(source.scope, owner, markup_statements(source.template))

    graph = ScopeGraphBuilder().build(root)
    propagation = SignalResolver(graph, config).resolve()
    updates = build_update_graph(propagation)
    template_scope_id = graph.by_name(owner).id
    chunks = ChunkCompiler(config).compile(
        source.template,
        Reactivity.from_propagation(propagation),
        scope_id=template_scope_id,
    )

    logger.debug(
        "Compiled component %r: %d scopes, %d statements, %d anchors, %d warnings",
        source.name,
        len(graph),
        len(propagation.statements),
        len(chunks.anchors),
        len(propagation.warnings),
    )
    return CompiledComponent(
        name=source.name,
        graph=graph,
        propagation=propagation,
        updates=updates,
        chunks=chunks,
        template_scope_id=template_scope_id,
    )


def _attach_statements(
    root: ScopeRecord, owner: str, statements: tuple[ReactiveStatement, ...]
) -> ScopeRecord:
    """Copy of ``root`` with ``statements`` appended to scope ``owner``."""
    found = False

    def attach(record: ScopeRecord) -> ScopeRecord:
        nonlocal found
        if record.name == owner and not found:
            found = True
            return replace(record, statements=(*record.statements, *statements))
        if not record.children:
            return record
        return replace(record, children=tuple(attach(child) for child in record.children))

    attached = attach(root)
    if not found:
        raise InvalidGraphError(f"Template scope '{owner}' not found", scope=root.name)
    return attached
