"""Boomer RenderContext: per-render state held in a ContextVar.

Accessors and producers are zero-argument callables, so anything they
need to know about the render in progress (which chunk is being
evaluated, framework metadata such as a request id) is read from here.

Each render invocation runs in its own context; concurrent renders of the
same chunk tree, including ones interleaved on one event loop, never see
each other's state.
"""

from __future__ import annotations

import itertools
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field

_render_ids = itertools.count(1)


@dataclass
class RenderContext:
    """Per-render state.

    Attributes:
        render_id: Process-unique id of the render invocation.
        chunk_path: Index path of the chunk currently being evaluated.
        anchor: Anchor id enclosing that chunk, if any.
        bytes_written: Bytes handed to the sink so far.
    """

    render_id: int = field(default_factory=lambda: next(_render_ids))
    chunk_path: tuple[int, ...] = ()
    anchor: str | None = None
    bytes_written: int = 0

    # Framework metadata (request ids, locale, ...)
    _meta: dict[str, object] = field(default_factory=dict)

    def get_meta(self, key: str, default: object = None) -> object:
        """Get framework-specific metadata.

        Example:
            async with async_render_context(parent_meta={"locale": "de"}):
                await render(tree, sink)

            # In an accessor:
            # get_render_context().get_meta("locale")
        """
        return self._meta.get(key, default)

    def set_meta(self, key: str, value: object) -> None:
        self._meta[key] = value


_render_context: ContextVar[RenderContext | None] = ContextVar(
    "boomer_render_context",
    default=None,
)


def get_render_context() -> RenderContext | None:
    """Get current render context (None if not in render)."""
    return _render_context.get()


def get_render_context_required() -> RenderContext:
    """Get current render context, raise if not in render.

    Raises:
        RuntimeError: If not in a render context
    """
    ctx = _render_context.get()
    if ctx is None:
        raise RuntimeError("Not in a render context")
    return ctx


@contextmanager
def render_context(parent_meta: dict[str, object] | None = None) -> Iterator[RenderContext]:
    """Context manager for render-scoped state.

    Restores the previous context on exit.
    """
    ctx = RenderContext(_meta=parent_meta.copy() if parent_meta else {})
    token: Token[RenderContext | None] = _render_context.set(ctx)
    try:
        yield ctx
    finally:
        _render_context.reset(token)


@asynccontextmanager
async def async_render_context(
    parent_meta: dict[str, object] | None = None,
) -> AsyncIterator[RenderContext]:
    """Async variant of ``render_context()`` for ``async with``.

    Metadata of an enclosing context is inherited unless ``parent_meta``
    is given.
    """
    if parent_meta is None:
        outer = _render_context.get()
        parent_meta = outer._meta if outer is not None else None
    ctx = RenderContext(_meta=parent_meta.copy() if parent_meta else {})
    token: Token[RenderContext | None] = _render_context.set(ctx)
    try:
        yield ctx
    finally:
        _render_context.reset(token)
