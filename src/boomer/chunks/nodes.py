"""Chunk tree nodes.

A compiled template is a tree of four node kinds:

- ``Literal``: static markup, written as-is
- ``Dynamic``: zero-argument accessor evaluated synchronously at render time
- ``Deferred``: zero-argument async producer; its output position is fixed
  by source order regardless of when it resolves
- ``Group``: ordered children, no content of its own

Reactive subtrees carry a stable ``anchor`` id. Trees are immutable and
may be shared by any number of concurrent renders.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from boomer.utils.html import Markup, html_escape, stringify


@dataclass(frozen=True, slots=True)
class Literal:
    """Static text."""

    text: str


@dataclass(frozen=True, slots=True)
class Dynamic:
    """Server-evaluated expression: ``accessor()`` at render time."""

    accessor: Callable[[], Any]
    escape: bool = True
    source: str = ""
    anchor: str | None = None


@dataclass(frozen=True, slots=True)
class Deferred:
    """Awaited expression: ``await producer()`` at render time."""

    producer: Callable[[], Awaitable[Any]]
    escape: bool = True
    source: str = ""
    anchor: str | None = None


@dataclass(frozen=True, slots=True)
class Group:
    """Ordered children; ``anchor`` marks a patchable reactive subtree."""

    children: tuple[ChunkNode, ...] = ()
    anchor: str | None = None


ChunkNode = Literal | Dynamic | Deferred | Group


class BindingKind(Enum):
    """What made a subtree reactive (second segment of an anchor id)."""

    SIGNAL = "signal"
    HANDLER = "handler"


@dataclass(frozen=True, slots=True)
class Hole:
    """Placeholder in a client patch template for a server expression."""

    source: str


@dataclass(frozen=True, slots=True)
class AnchorInfo:
    """Client-side description of one anchored subtree.

    Attributes:
        anchor: ``scope_<scopeId>_<bindingKind>_<bindingName>`` id.
        scope_id: Component scope owning the template.
        kind: Binding kind that named the anchor.
        binding: Binding name that named the anchor.
        reads: Every reactive signal read directly inside the subtree.
        handlers: (event, handler) pairs to attach on the client.
        template: innerHTML patch template, strings interleaved with holes.
    """

    anchor: str
    scope_id: int
    kind: BindingKind
    binding: str
    reads: tuple[str, ...] = ()
    handlers: tuple[tuple[str, str], ...] = ()
    template: tuple[str | Hole, ...] = ()


@dataclass(frozen=True, slots=True)
class ChunkTree:
    """Compiled template: root group plus anchor metadata."""

    root: Group
    anchors: tuple[AnchorInfo, ...] = ()

    @property
    def anchor_ids(self) -> tuple[str, ...]:
        return tuple(info.anchor for info in self.anchors)

    def anchor(self, anchor_id: str) -> AnchorInfo:
        for info in self.anchors:
            if info.anchor == anchor_id:
                return info
        raise KeyError(anchor_id)


@dataclass(frozen=True, slots=True)
class Leaf:
    """A non-group chunk reached by flattening, with its position."""

    path: tuple[int, ...]
    chunk: Literal | Dynamic | Deferred
    anchor: str | None


def iter_leaves(node: ChunkNode) -> Iterator[Leaf]:
    """Flatten groups in document order.

    Uses an explicit stack; every group is entered exactly once, so the
    walk is bounded by the number of nodes in the (immutable) tree.
    ``anchor`` is the nearest enclosing anchor, or the leaf's own.
    """
    stack: list[tuple[ChunkNode, tuple[int, ...], str | None]] = [(node, (), None)]
    while stack:
        current, path, anchor = stack.pop()
        if isinstance(current, Group):
            inner = current.anchor or anchor
            for index in range(len(current.children) - 1, -1, -1):
                stack.append((current.children[index], (*path, index), inner))
        elif isinstance(current, Literal):
            yield Leaf(path, current, anchor)
        else:
            yield Leaf(path, current, current.anchor or anchor)


def to_text(value: Any, escape: bool) -> str:
    """Text for an evaluated Dynamic/Deferred value."""
    return html_escape(value) if escape else stringify(value)


def render_sync(node: ChunkNode) -> str:
    """Evaluate a tree with no Deferred chunks to a string."""
    parts: list[str] = []
    for leaf in iter_leaves(node):
        chunk = leaf.chunk
        if isinstance(chunk, Literal):
            parts.append(chunk.text)
        elif isinstance(chunk, Dynamic):
            parts.append(to_text(chunk.accessor(), chunk.escape))
        else:
            raise TypeError(f"Deferred chunk {chunk.source!r} in a synchronous subtree")
    return "".join(parts)


async def render_async(node: ChunkNode) -> str:
    """Evaluate a tree to a string, awaiting Deferred chunks in order."""
    parts: list[str] = []
    for leaf in iter_leaves(node):
        chunk = leaf.chunk
        if isinstance(chunk, Literal):
            parts.append(chunk.text)
        elif isinstance(chunk, Dynamic):
            parts.append(to_text(chunk.accessor(), chunk.escape))
        else:
            parts.append(to_text(await chunk.producer(), chunk.escape))
    return "".join(parts)


@dataclass(frozen=True, slots=True)
class BranchSelector:
    """Accessor for a lowered conditional: render the branch ``test`` picks.

    A frozen dataclass rather than a closure so that compiling the same
    input twice yields equal trees.
    """

    test: Callable[[], Any]
    then_: Group
    else_: Group

    def __call__(self) -> Markup:
        return Markup(render_sync(self.then_ if self.test() else self.else_))


@dataclass(frozen=True, slots=True)
class AsyncBranchSelector:
    """Producer for a lowered conditional whose branches await."""

    test: Callable[[], Any]
    then_: Group
    else_: Group

    async def __call__(self) -> Markup:
        return Markup(await render_async(self.then_ if self.test() else self.else_))


def contains_deferred(node: ChunkNode) -> bool:
    return any(isinstance(leaf.chunk, Deferred) for leaf in iter_leaves(node))


def dump_tree(tree: ChunkTree) -> str:
    """Stable textual form of a chunk tree.

    Accessors are shown by their source text, so two compilations of the
    same input dump identically. Used for caching and determinism checks.
    """
    lines: list[str] = []

    def dump(node: ChunkNode, indent: int) -> None:
        pad = "  " * indent
        if isinstance(node, Group):
            suffix = f" #{node.anchor}" if node.anchor else ""
            lines.append(f"{pad}Group{suffix}")
            for child in node.children:
                dump(child, indent + 1)
        elif isinstance(node, Literal):
            lines.append(f"{pad}Literal {node.text!r}")
        else:
            kind = type(node).__name__
            flags = "" if node.escape else " raw"
            suffix = f" #{node.anchor}" if node.anchor else ""
            lines.append(f"{pad}{kind} {node.source!r}{flags}{suffix}")

    dump(tree.root, 0)
    for info in tree.anchors:
        template = "".join(
            part if isinstance(part, str) else f"{{{part.source}}}" for part in info.template
        )
        lines.append(
            f"anchor {info.anchor} scope={info.scope_id} kind={info.kind.value} "
            f"binding={info.binding} reads={list(info.reads)} "
            f"handlers={list(info.handlers)} template={template!r}"
        )
    return "\n".join(lines)
