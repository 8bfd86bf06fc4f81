"""Chunk trees: compiled, render-ready component templates.

    >>> from boomer.chunks import compile_chunks, Reactivity
    >>> tree = compile_chunks(template, Reactivity.from_signals({"page"}))
    >>> print(dump_tree(tree))

"""

from boomer.chunks.compiler import ChunkCompiler, compile_chunks
from boomer.chunks.nodes import (
    AnchorInfo,
    AsyncBranchSelector,
    BindingKind,
    BranchSelector,
    ChunkNode,
    ChunkTree,
    Deferred,
    Dynamic,
    Group,
    Hole,
    Leaf,
    Literal,
    contains_deferred,
    dump_tree,
    iter_leaves,
    render_async,
    render_sync,
    to_text,
)
from boomer.chunks.reactivity import (
    MarkupKey,
    MarkupPath,
    PropagationReactivity,
    Reactivity,
    SignalSetReactivity,
    iter_markup,
    markup_statements,
)

__all__ = [
    "AnchorInfo",
    "AsyncBranchSelector",
    "BindingKind",
    "BranchSelector",
    "ChunkCompiler",
    "ChunkNode",
    "ChunkTree",
    "Deferred",
    "Dynamic",
    "Group",
    "Hole",
    "Leaf",
    "Literal",
    "MarkupKey",
    "MarkupPath",
    "PropagationReactivity",
    "Reactivity",
    "SignalSetReactivity",
    "compile_chunks",
    "contains_deferred",
    "dump_tree",
    "iter_leaves",
    "iter_markup",
    "markup_statements",
    "render_async",
    "render_sync",
    "to_text",
]
