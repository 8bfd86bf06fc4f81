"""Chunk tree compiler.

Lowers a component's markup tree into a ``ChunkTree``:

- Static text and attributes become ``Literal`` chunks; adjacent literals
  are merged, so ``<div><h1>`` is one chunk.
- Expressions become ``Dynamic`` chunks wrapping the node's accessor.
- Awaited expressions become ``Deferred`` chunks.
- Conditionals become one ``Dynamic`` (or ``Deferred`` when a branch
  awaits) whose callable renders the branch chosen at render time.

Anchors:
    The nearest element enclosing reactive content (a reactive expression,
    reactive attribute, event binding, or a conditional whose test or
    branches read a signal or bind a handler) becomes an anchored
    ``Group``; its opening tag carries
    ``data-bmr="scope_<scopeId>_<kind>_<name>"``. Ancestors are left
    alone, so the client patches exactly that element. Reactive content
    with no enclosing element is delimited by comment markers instead.
    Subtrees without reactive content never get an anchor.

Compilation is pure: the same input always yields an equal tree with the
same anchor ids.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

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
    Literal,
    contains_deferred,
    iter_leaves,
)
from boomer.chunks.reactivity import MarkupPath, Reactivity
from boomer.config import DEFAULT_CONFIG, CompilerConfig
from boomer.nodes import (
    VOID_ELEMENTS,
    Attr,
    Await,
    Conditional,
    Element,
    EventBinding,
    Expr,
    Fragment,
    Node,
    Text,
)
from boomer.utils.html import escape_text, html_escape

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Buffer:
    """Chunks of one group under construction, merging adjacent literals."""

    merge: bool
    chunks: list[ChunkNode] = field(default_factory=list)

    def literal(self, text: str) -> None:
        if not text:
            return
        if self.merge and self.chunks and isinstance(self.chunks[-1], Literal):
            self.chunks[-1] = Literal(self.chunks[-1].text + text)
        else:
            self.chunks.append(Literal(text))

    def add(self, chunk: ChunkNode) -> None:
        if isinstance(chunk, Literal):
            self.literal(chunk.text)
        else:
            self.chunks.append(chunk)

    def extend(self, chunks: Sequence[ChunkNode]) -> None:
        for chunk in chunks:
            self.add(chunk)


@dataclass(slots=True)
class _Binding:
    """A direct reactive binding of an element (or root-level node)."""

    kind: BindingKind
    name: str
    reads: tuple[str, ...] = ()
    handlers: tuple[tuple[str, str], ...] = ()


class ChunkCompiler:
    """Compile markup nodes into a ChunkTree.

    Thread-safe: Creates new state for each compile() call.

    Example:
            >>> template = Element(1, 0, "p", children=(
            ...     Text(1, 3, "Current Page "),
            ...     Expr(1, 16, accessor=page, reads=frozenset({"page"}), source="page()"),
            ... ))
            >>> tree = ChunkCompiler().compile(template, Reactivity.from_signals({"page"}))
            >>> tree.anchor_ids
            ('scope_0_signal_page',)

    """

    def __init__(self, config: CompilerConfig | None = None) -> None:
        self._config = config or DEFAULT_CONFIG
        self._reactivity: Reactivity = Reactivity.none()
        self._scope_id = 0
        self._anchors: list[AnchorInfo] = []
        self._anchor_counts: dict[str, int] = {}
        self._issued: set[str] = set()
        self._current_anchor: str | None = None
        self._element_depth = 0
        self._suppress_anchors = 0
        self._dispatch: dict[str, Callable[[Node, MarkupPath, _Buffer], None]] = {
            "Element": self._compile_element,
            "Fragment": self._compile_fragment,
            "Text": self._compile_text,
            "Expr": self._compile_expr,
            "Await": self._compile_await,
            "Conditional": self._compile_conditional,
        }

    def compile(
        self,
        template: Node,
        reactivity: Reactivity | None = None,
        *,
        scope_id: int = 0,
    ) -> ChunkTree:
        """Compile ``template`` for the component scope ``scope_id``.

        Args:
            template: Root markup node (usually an Element or Fragment).
            reactivity: Which reads are client-reactive; default none.
            scope_id: Scope id used in anchor names.

        Returns:
            Immutable ChunkTree.
        """
        self._reactivity = reactivity or Reactivity.none()
        self._scope_id = scope_id
        self._anchors = []
        self._anchor_counts = {}
        self._issued = set()
        self._current_anchor = None
        self._element_depth = 0
        self._suppress_anchors = 0

        buffer = self._new_buffer()
        self._compile_child(template, (), buffer)
        tree = ChunkTree(root=Group(tuple(buffer.chunks)), anchors=tuple(self._anchors))
        logger.debug(
            "Compiled chunk tree for scope %d: %d top-level chunks, %d anchors",
            scope_id,
            len(tree.root.children),
            len(tree.anchors),
        )
        return tree

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _new_buffer(self) -> _Buffer:
        return _Buffer(merge=self._config.merge_literals)

    def _compile_child(self, node: Node, path: MarkupPath, buffer: _Buffer) -> None:
        handler = self._dispatch.get(type(node).__name__)
        if handler is None:
            raise TypeError(f"Cannot compile markup node {type(node).__name__}")

        # Reactive content outside any element gets comment markers.
        if self._element_depth == 0 and not self._suppress_anchors:
            binding = self._node_binding(node, path)
            if binding is not None:
                self._compile_marked(node, path, buffer, binding)
                return
        handler(node, path, buffer)

    def _compile_children(
        self, children: Sequence[Node], path: MarkupPath, buffer: _Buffer
    ) -> None:
        for index, child in enumerate(children):
            self._compile_child(child, (*path, index), buffer)

    # ------------------------------------------------------------------
    # Node handlers
    # ------------------------------------------------------------------

    def _compile_text(self, node: Text, path: MarkupPath, buffer: _Buffer) -> None:
        buffer.literal(escape_text(node.value))

    def _compile_fragment(self, node: Fragment, path: MarkupPath, buffer: _Buffer) -> None:
        self._compile_children(node.children, path, buffer)

    def _compile_expr(self, node: Expr, path: MarkupPath, buffer: _Buffer) -> None:
        reactive = bool(self._signals(node, path))
        buffer.add(
            Dynamic(
                accessor=node.accessor,
                escape=self._escape(node.escape),
                source=node.source,
                anchor=self._current_anchor if reactive else None,
            )
        )

    def _compile_await(self, node: Await, path: MarkupPath, buffer: _Buffer) -> None:
        reactive = bool(self._signals(node, path))
        buffer.add(
            Deferred(
                producer=node.producer,
                escape=self._escape(node.escape),
                source=node.source,
                anchor=self._current_anchor if reactive else None,
            )
        )

    def _compile_conditional(
        self, node: Conditional, path: MarkupPath, buffer: _Buffer
    ) -> None:
        # The conditional is patched as a whole; nested content gets no anchors.
        self._suppress_anchors += 1
        try:
            then_buffer = self._new_buffer()
            self._compile_children(node.body, (*path, "then"), then_buffer)
            else_buffer = self._new_buffer()
            self._compile_children(node.else_, (*path, "else"), else_buffer)
        finally:
            self._suppress_anchors -= 1

        then_ = Group(tuple(then_buffer.chunks))
        else_ = Group(tuple(else_buffer.chunks))
        anchor = self._current_anchor if self._node_binding(node, path) else None
        if contains_deferred(then_) or contains_deferred(else_):
            buffer.add(
                Deferred(
                    producer=AsyncBranchSelector(node.test, then_, else_),
                    escape=False,
                    source=node.source,
                    anchor=anchor,
                )
            )
        else:
            buffer.add(
                Dynamic(
                    accessor=BranchSelector(node.test, then_, else_),
                    escape=False,
                    source=node.source,
                    anchor=anchor,
                )
            )

    def _compile_element(self, node: Element, path: MarkupPath, buffer: _Buffer) -> None:
        bindings = [] if self._suppress_anchors else self._element_bindings(node, path)
        if not bindings:
            self._element_depth += 1
            try:
                self._emit_element(node, path, buffer, anchor=None)
            finally:
                self._element_depth -= 1
            return

        anchor = self._allocate_anchor(bindings[0])
        outer_anchor = self._current_anchor
        self._current_anchor = anchor
        self._element_depth += 1
        try:
            inner = self._new_buffer()
            body = self._emit_element(node, path, inner, anchor=anchor)
        finally:
            self._element_depth -= 1
            self._current_anchor = outer_anchor

        buffer.add(Group(tuple(inner.chunks), anchor=anchor))
        self._register_anchor(anchor, bindings, body)

    def _emit_element(
        self, node: Element, path: MarkupPath, buffer: _Buffer, *, anchor: str | None
    ) -> tuple[ChunkNode, ...]:
        """Emit tag, attributes and children; return the compiled children."""
        buffer.literal(f"<{node.tag}")
        if anchor is not None:
            buffer.literal(f' {self._config.anchor_attribute}="{anchor}"')
        for index, attr in enumerate(node.attrs):
            if isinstance(attr, Attr):
                self._emit_attr(attr, (*path, f"@{index}"), buffer)
        buffer.literal(">")

        if node.tag.lower() in VOID_ELEMENTS and not node.children:
            return ()

        body = self._new_buffer()
        self._compile_children(node.children, path, body)
        buffer.extend(body.chunks)
        buffer.literal(f"</{node.tag}>")
        return tuple(body.chunks)

    def _emit_attr(self, attr: Attr, path: MarkupPath, buffer: _Buffer) -> None:
        if attr.value is None:
            buffer.literal(f" {attr.name}")
        elif isinstance(attr.value, str):
            buffer.literal(f' {attr.name}="{html_escape(attr.value)}"')
        else:
            reactive = bool(self._signals(attr, path))
            buffer.literal(f' {attr.name}="')
            buffer.add(
                Dynamic(
                    accessor=attr.value.accessor,
                    escape=self._escape(attr.value.escape),
                    source=attr.value.source,
                    anchor=self._current_anchor if reactive else None,
                )
            )
            buffer.literal('"')

    def _compile_marked(
        self, node: Node, path: MarkupPath, buffer: _Buffer, binding: _Binding
    ) -> None:
        """Root-level reactive content: ``<!--id-->...<!--/id-->``."""
        anchor = self._allocate_anchor(binding)
        outer_anchor = self._current_anchor
        self._current_anchor = anchor
        # Depth 1 stops _compile_child from marking the node a second time.
        self._element_depth += 1
        try:
            body = self._new_buffer()
            self._dispatch[type(node).__name__](node, path, body)
        finally:
            self._element_depth -= 1
            self._current_anchor = outer_anchor

        inner = self._new_buffer()
        inner.literal(f"<!--{anchor}-->")
        inner.extend(body.chunks)
        inner.literal(f"<!--/{anchor}-->")
        buffer.add(Group(tuple(inner.chunks), anchor=anchor))
        self._register_anchor(anchor, [binding], tuple(body.chunks))

    # ------------------------------------------------------------------
    # Reactivity and anchors
    # ------------------------------------------------------------------

    def _escape(self, escape: bool | None) -> bool:
        return self._config.autoescape if escape is None else escape

    def _signals(self, node: Node, path: MarkupPath) -> tuple[str, ...]:
        return self._reactivity.signals(node, path)

    def _node_binding(self, node: Node, path: MarkupPath) -> _Binding | None:
        """Binding for a directly reactive expression or conditional."""
        if isinstance(node, (Expr, Await)):
            signals = self._signals(node, path)
            if signals:
                return _Binding(BindingKind.SIGNAL, signals[0], signals)
        elif isinstance(node, Conditional):
            found: set[str] = set()
            handlers: dict[tuple[str, str], None] = {}
            self._collect_conditional(node, path, found, handlers)
            reads = tuple(sorted(found))
            if reads:
                return _Binding(BindingKind.SIGNAL, reads[0], reads, tuple(handlers))
            if handlers:
                first = next(iter(handlers))
                return _Binding(BindingKind.HANDLER, first[1], handlers=tuple(handlers))
        return None

    def _collect_conditional(
        self,
        node: Conditional,
        path: MarkupPath,
        signals: set[str],
        handlers: dict[tuple[str, str], None],
    ) -> None:
        """Signals read and handlers bound by the test or either branch.

        Branch content compiles without anchors of its own, so everything
        it binds belongs to the conditional's anchor.
        """
        signals.update(self._signals(node, path))
        for branch, children in (("then", node.body), ("else", node.else_)):
            for index, child in enumerate(children):
                self._collect_deep(child, (*path, branch, index), signals, handlers)

    def _collect_deep(
        self,
        node: Node,
        path: MarkupPath,
        signals: set[str],
        handlers: dict[tuple[str, str], None],
    ) -> None:
        if isinstance(node, (Expr, Await)):
            signals.update(self._signals(node, path))
        elif isinstance(node, Conditional):
            self._collect_conditional(node, path, signals, handlers)
        elif isinstance(node, (Element, Fragment)):
            if isinstance(node, Element):
                for index, attr in enumerate(node.attrs):
                    if isinstance(attr, EventBinding):
                        handlers[(attr.event, attr.handler)] = None
                    elif isinstance(attr, Attr):
                        signals.update(self._signals(attr, (*path, f"@{index}")))
            for index, child in enumerate(node.children):
                self._collect_deep(child, (*path, index), signals, handlers)

    def _element_bindings(self, node: Element, path: MarkupPath) -> list[_Binding]:
        """Direct reactive bindings of an element, in source order."""
        bindings: list[_Binding] = []
        for index, attr in enumerate(node.attrs):
            if isinstance(attr, EventBinding):
                bindings.append(
                    _Binding(
                        BindingKind.HANDLER, attr.handler, handlers=((attr.event, attr.handler),)
                    )
                )
            elif isinstance(attr, Attr):
                signals = self._signals(attr, (*path, f"@{index}"))
                if signals:
                    bindings.append(_Binding(BindingKind.SIGNAL, signals[0], signals))
        self._collect_child_bindings(node.children, path, bindings)
        return bindings

    def _collect_child_bindings(
        self, children: Sequence[Node], path: MarkupPath, bindings: list[_Binding]
    ) -> None:
        for index, child in enumerate(children):
            child_path = (*path, index)
            if isinstance(child, Fragment):
                self._collect_child_bindings(child.children, child_path, bindings)
                continue
            binding = self._node_binding(child, child_path)
            if binding is not None:
                bindings.append(binding)

    def _allocate_anchor(self, binding: _Binding) -> str:
        base = f"scope_{self._scope_id}_{binding.kind.value}_{binding.name}"
        count = self._anchor_counts.get(base, 0)
        while True:
            count += 1
            anchor = base if count == 1 else f"{base}_{count}"
            # A suffixed id may equal another binding's plain id.
            if anchor not in self._issued:
                break
        self._anchor_counts[base] = count
        self._issued.add(anchor)
        return anchor

    def _register_anchor(
        self, anchor: str, bindings: Sequence[_Binding], body: tuple[ChunkNode, ...]
    ) -> None:
        reads = sorted({name for binding in bindings for name in binding.reads})
        handlers = tuple(dict.fromkeys(h for binding in bindings for h in binding.handlers))
        self._anchors.append(
            AnchorInfo(
                anchor=anchor,
                scope_id=self._scope_id,
                kind=bindings[0].kind,
                binding=bindings[0].name,
                reads=tuple(reads),
                handlers=handlers,
                template=_patch_template(body),
            )
        )


def _patch_template(body: tuple[ChunkNode, ...]) -> tuple[str | Hole, ...]:
    """innerHTML template: literal text with a hole per evaluated chunk."""
    parts: list[str | Hole] = []
    for leaf in iter_leaves(Group(body)):
        chunk = leaf.chunk
        if isinstance(chunk, Literal):
            if parts and isinstance(parts[-1], str):
                parts[-1] += chunk.text
            else:
                parts.append(chunk.text)
        else:
            parts.append(Hole(chunk.source))
    return tuple(parts)


def compile_chunks(
    template: Node,
    reactivity: Reactivity | None = None,
    *,
    scope_id: int = 0,
    config: CompilerConfig | None = None,
) -> ChunkTree:
    """Convenience wrapper: ``ChunkCompiler(config).compile(...)``."""
    return ChunkCompiler(config).compile(template, reactivity, scope_id=scope_id)
