"""Boomer: compiler core for streaming, server-rendered reactive components.

Takes a scope-annotated component (from an external front-end) and
produces everything needed to serve it:

- a scope graph of the component's lexical scopes,
- propagation branches tracing every signal read back to its declaration,
- a client update graph (owner signal -> statements to re-run),
- a chunk tree that streams server-rendered HTML with anchors marking
  exactly the parts the client must patch.

Quickstart:
    >>> from boomer import ComponentSource, compile_component, BufferSink
    >>> component = compile_component(source)
    >>> component.warnings
    ()
    >>> sink = BufferSink()
    >>> await component.render(sink)
    >>> sink.text()
    '<p data-bmr="scope_0_signal_page">Current Page 1</p>'

Architecture:
ScopeRecord tree -> ScopeGraphBuilder -> ScopeGraph -> SignalResolver
    -> PropagationResult -> UpdateGraph
markup tree + PropagationResult -> ChunkCompiler -> ChunkTree -> render(sink)

Determinism:
- Scope ids, branches, chunk trees and anchor ids depend only on the input
- Compiled graphs and chunk trees are immutable and shareable
- Each render keeps its state in its own RenderContext (ContextVar)

Errors:
Graph errors abort compilation, unresolved signals are returned as
warnings (raised with ``CompilerConfig(strict=True)``), and render errors
abort only the render that hit them. Every error has a ``B-XXX-NNN`` code.

"""

from boomer.analysis import (
    ContextBinding,
    Hop,
    PropagationBranch,
    PropagationResult,
    Relation,
    ResolvedStatement,
    SignalResolver,
    Subscription,
    UpdateGraph,
    build_update_graph,
    resolve_signals,
)
from boomer.chunks import (
    AnchorInfo,
    ChunkCompiler,
    ChunkTree,
    Deferred,
    Dynamic,
    Group,
    Literal,
    Reactivity,
    compile_chunks,
    dump_tree,
)
from boomer.component import CompiledComponent, ComponentSource, compile_component
from boomer.config import DEFAULT_CONFIG, CompilerConfig
from boomer.exceptions import (
    AccessorFailed,
    BoomerError,
    CycleDetected,
    DanglingCall,
    DeferredRejected,
    ErrorCode,
    GraphError,
    InvalidGraphError,
    PropagationWarning,
    RenderError,
    RenderStateError,
    SinkAborted,
    UnresolvedSignalError,
)
from boomer.graph import ScopeGraph, ScopeGraphBuilder, ScopeNode, build_scope_graph
from boomer.nodes import (
    Attr,
    Await,
    CallSite,
    Conditional,
    Element,
    EventBinding,
    Expr,
    Fragment,
    ReactiveStatement,
    ScopeRecord,
    Text,
)
from boomer.render import (
    BufferSink,
    QueueSink,
    RenderSink,
    RenderState,
    StreamingRenderer,
    StreamWriterSink,
    render,
    render_stream,
    render_to_string,
)
from boomer.render_context import RenderContext, get_render_context
from boomer.utils.html import Markup

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_CONFIG",
    "AccessorFailed",
    "AnchorInfo",
    "Attr",
    "Await",
    "BoomerError",
    "BufferSink",
    "CallSite",
    "ChunkCompiler",
    "ChunkTree",
    "CompiledComponent",
    "CompilerConfig",
    "ComponentSource",
    "Conditional",
    "ContextBinding",
    "CycleDetected",
    "DanglingCall",
    "Deferred",
    "DeferredRejected",
    "Dynamic",
    "Element",
    "ErrorCode",
    "EventBinding",
    "Expr",
    "Fragment",
    "GraphError",
    "Group",
    "Hop",
    "InvalidGraphError",
    "Literal",
    "Markup",
    "PropagationBranch",
    "PropagationResult",
    "PropagationWarning",
    "QueueSink",
    "Reactivity",
    "ReactiveStatement",
    "Relation",
    "RenderContext",
    "RenderError",
    "RenderSink",
    "RenderState",
    "RenderStateError",
    "ResolvedStatement",
    "ScopeGraph",
    "ScopeGraphBuilder",
    "ScopeNode",
    "ScopeRecord",
    "SignalResolver",
    "SinkAborted",
    "StreamWriterSink",
    "StreamingRenderer",
    "Subscription",
    "Text",
    "UnresolvedSignalError",
    "UpdateGraph",
    "__version__",
    "build_scope_graph",
    "build_update_graph",
    "compile_chunks",
    "compile_component",
    "dump_tree",
    "get_render_context",
    "render",
    "render_stream",
    "render_to_string",
    "resolve_signals",
]
