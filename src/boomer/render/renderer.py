"""Streaming renderer.

Writes a compiled chunk tree to a sink in document order:

- ``Literal``: encoded and written immediately.
- ``Dynamic``: accessor called synchronously, then written.
- ``Deferred``: the render suspends until the producer resolves; later
  chunks wait behind it, so output order is source order, never
  completion order.

Before every write the renderer awaits ``sink.ready()``, and it awaits each
write before evaluating the next chunk, so a single render never has more
than one write outstanding.

State machine (one ``StreamingRenderer`` per render invocation)::

    IDLE -> STREAMING -> CLOSED
                      -> ERRORED

Terminal states are final. A sink belongs to exactly one render: passing
it to a second render raises ``RenderStateError``.

Cancellation:
    Cancelling the task running ``render()`` aborts the sink and re-raises
    ``CancelledError``. A producer being awaited at that moment receives
    the cancellation; work it started elsewhere (threads, other tasks) is
    not cancelled by the renderer.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import AsyncIterator
from enum import Enum

from boomer.chunks.nodes import ChunkNode, ChunkTree, Dynamic, Leaf, Literal, iter_leaves, to_text
from boomer.config import DEFAULT_CONFIG, CompilerConfig
from boomer.exceptions import (
    AccessorFailed,
    DeferredRejected,
    RenderError,
    RenderStateError,
    SinkAborted,
)
from boomer.render.sinks import BufferSink, QueueSink, RenderSink
from boomer.render_context import RenderContext, async_render_context

logger = logging.getLogger(__name__)


class RenderState(Enum):
    """Lifecycle of one render invocation."""

    IDLE = "idle"
    STREAMING = "streaming"
    CLOSED = "closed"
    ERRORED = "errored"

    @property
    def terminal(self) -> bool:
        return self in (RenderState.CLOSED, RenderState.ERRORED)


_TRANSITIONS: dict[RenderState, frozenset[RenderState]] = {
    RenderState.IDLE: frozenset({RenderState.STREAMING}),
    RenderState.STREAMING: frozenset({RenderState.CLOSED, RenderState.ERRORED}),
    RenderState.CLOSED: frozenset(),
    RenderState.ERRORED: frozenset(),
}

# Sinks that have been handed to a render.
_claimed_sinks: weakref.WeakSet[RenderSink] = weakref.WeakSet()


class StreamingRenderer:
    """Render one chunk tree into one sink.

    Thread-safe: No. One instance per render; the chunk tree itself may be
    shared by any number of concurrent renderers.

    Example:
            >>> sink = BufferSink()
            >>> await StreamingRenderer(tree, sink).run()
            >>> sink.text()
            '<div>...</div>'

    """

    __slots__ = ("_config", "_root", "_sink", "_state")

    def __init__(
        self,
        tree: ChunkTree | ChunkNode,
        sink: RenderSink,
        *,
        config: CompilerConfig | None = None,
    ) -> None:
        self._root = tree.root if isinstance(tree, ChunkTree) else tree
        self._sink = sink
        self._config = config or DEFAULT_CONFIG
        self._state = RenderState.IDLE

    @property
    def state(self) -> RenderState:
        return self._state

    def _transition(self, new: RenderState) -> None:
        if new not in _TRANSITIONS[self._state]:
            raise RenderStateError(
                f"Illegal render state transition {self._state.value} -> {new.value}"
            )
        self._state = new

    async def run(self) -> None:
        """Stream the whole tree, then close the sink.

        Raises:
            RenderStateError: Renderer already ran, or the sink was used before
                or cannot be tracked
            AccessorFailed: A Dynamic accessor raised
            DeferredRejected: A Deferred producer raised
            SinkAborted: The sink failed or was cancelled by its consumer
        """
        if self._state is not RenderState.IDLE:
            raise RenderStateError(f"Renderer already ran (state: {self._state.value})")
        self._claim_sink()
        self._transition(RenderState.STREAMING)

        async with async_render_context() as ctx:
            try:
                for leaf in iter_leaves(self._root):
                    ctx.chunk_path = leaf.path
                    ctx.anchor = leaf.anchor
                    text = await self._evaluate(leaf)
                    if text:
                        await self._write(text.encode(self._config.encoding), leaf, ctx)
                await self._close()
            except RenderError as exc:
                await self._fail(exc)
                raise
            except asyncio.CancelledError:
                await self._fail(
                    SinkAborted("Render cancelled", chunk_path=ctx.chunk_path, anchor=ctx.anchor)
                )
                raise

        self._transition(RenderState.CLOSED)
        logger.debug("Render %d closed after %d bytes", ctx.render_id, ctx.bytes_written)

    def _claim_sink(self) -> None:
        try:
            claimed = self._sink in _claimed_sinks
            if not claimed:
                _claimed_sinks.add(self._sink)
        except TypeError as exc:
            raise RenderStateError(
                f"Sink {type(self._sink).__name__} must be hashable and weak-referenceable "
                "(use @dataclass(eq=False) and keep __weakref__ in __slots__)"
            ) from exc
        if claimed:
            raise RenderStateError("Sink already used by another render")

    async def _evaluate(self, leaf: Leaf) -> str:
        chunk = leaf.chunk
        if isinstance(chunk, Literal):
            return chunk.text
        if isinstance(chunk, Dynamic):
            try:
                return to_text(chunk.accessor(), chunk.escape)
            except RenderError:
                raise
            except Exception as exc:
                raise AccessorFailed(
                    f"Accessor {chunk.source or '<anonymous>'!r} raised "
                    f"{type(exc).__name__}: {exc}",
                    chunk_path=leaf.path,
                    anchor=leaf.anchor,
                ) from exc
        try:
            value = await chunk.producer()
            return to_text(value, chunk.escape)
        except RenderError:
            raise
        except Exception as exc:
            raise DeferredRejected(
                f"Deferred {chunk.source or '<anonymous>'!r} rejected with "
                f"{type(exc).__name__}: {exc}",
                chunk_path=leaf.path,
                anchor=leaf.anchor,
            ) from exc

    async def _write(self, data: bytes, leaf: Leaf, ctx: RenderContext) -> None:
        try:
            await self._sink.ready()
            await self._sink.write(data)
        except RenderError:
            raise
        except Exception as exc:
            raise SinkAborted(
                f"Sink write failed: {type(exc).__name__}: {exc}",
                chunk_path=leaf.path,
                anchor=leaf.anchor,
            ) from exc
        ctx.bytes_written += len(data)

    async def _close(self) -> None:
        try:
            await self._sink.close()
        except Exception as exc:
            raise SinkAborted(f"Sink close failed: {type(exc).__name__}: {exc}") from exc

    async def _fail(self, error: RenderError) -> None:
        self._transition(RenderState.ERRORED)
        logger.warning("%s: render aborted: %s", error.code.value if error.code else "-", error)
        try:
            await self._sink.abort(error)
        except Exception:
            logger.debug("Sink abort raised", exc_info=True)


async def render(
    tree: ChunkTree | ChunkNode,
    sink: RenderSink,
    *,
    config: CompilerConfig | None = None,
) -> None:
    """Render ``tree`` into ``sink``; see ``StreamingRenderer.run``."""
    await StreamingRenderer(tree, sink, config=config).run()


async def render_to_string(
    tree: ChunkTree | ChunkNode,
    *,
    config: CompilerConfig | None = None,
) -> str:
    """Render into memory and decode.

    Example:
            >>> await render_to_string(tree)
            '<p data-bmr="scope_0_signal_page">Current Page 1</p>'

    """
    config = config or DEFAULT_CONFIG
    sink = BufferSink()
    await render(tree, sink, config=config)
    return sink.text(config.encoding)


async def render_stream(
    tree: ChunkTree | ChunkNode,
    *,
    config: CompilerConfig | None = None,
) -> AsyncIterator[bytes]:
    """Render as an async generator of encoded chunks.

    The render runs one chunk ahead of the consumer. Leaving the ``async
    for`` early cancels the render.

    Example:
            >>> async for data in render_stream(tree):
            ...     await send(data)

    """
    sink = QueueSink(maxsize=1)
    task = asyncio.create_task(render(tree, sink, config=config))
    try:
        async for data in sink:
            yield data
    finally:
        if not task.done():
            sink.cancel()
            task.cancel()
        # The render error, if any, already surfaced through the sink.
        await asyncio.gather(task, return_exceptions=True)
