"""Render sinks.

A sink receives encoded chunks from exactly one render invocation. The
renderer awaits ``ready()`` before every ``write()``, so a sink applies
backpressure simply by not returning from ``ready()`` until it can accept
more bytes. At most one write is ever outstanding.

Sinks provided:

- ``BufferSink``: collects bytes in memory (tests, ``render_to_string``).
- ``QueueSink``: bounded hand-off to a consumer coroutine that iterates
  the sink with ``async for``; the consumer can ``cancel()`` the render.
- ``StreamWriterSink``: writes to an ``asyncio.StreamWriter``; readiness is
  ``drain()``.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from boomer.exceptions import SinkAborted


@runtime_checkable
class RenderSink(Protocol):
    """Destination of one render invocation.

    The renderer tracks sinks by identity in a ``WeakSet``, so a sink must
    be hashable and weak-referenceable; anything else is rejected with
    ``RenderStateError`` before the render starts.
    """

    async def ready(self) -> None:
        """Suspend until the next write may be issued."""
        ...

    async def write(self, data: bytes) -> None: ...

    async def close(self) -> None:
        """Called exactly once, after the last write of a successful render."""
        ...

    async def abort(self, exc: BaseException) -> None:
        """Called once when the render fails; ``close()`` is never called then."""
        ...


class BufferSink:
    """Collect written chunks in memory.

    Attributes:
        chunks: Every ``write()`` payload, in order.
        closed: Number of ``close()`` calls (1 after a successful render).
        error: Exception passed to ``abort()``, if any.
        max_in_flight: Highest number of concurrent ``write()`` calls seen.

    Example:
            >>> sink = BufferSink()
            >>> await render(tree, sink)
            >>> sink.getvalue()
            b'<div>...</div>'

    """

    def __init__(self, *, delay: float = 0.0) -> None:
        self.chunks: list[bytes] = []
        self.closed = 0
        self.error: BaseException | None = None
        self.max_in_flight = 0
        self._in_flight = 0
        self._delay = delay

    async def ready(self) -> None:
        if self.closed or self.error is not None:
            raise SinkAborted("Sink is no longer accepting writes")

    async def write(self, data: bytes) -> None:
        self._in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            self.chunks.append(data)
        finally:
            self._in_flight -= 1

    async def close(self) -> None:
        self.closed += 1

    async def abort(self, exc: BaseException) -> None:
        self.error = exc

    @property
    def aborted(self) -> bool:
        return self.error is not None

    def getvalue(self) -> bytes:
        return b"".join(self.chunks)

    def text(self, encoding: str = "utf-8") -> str:
        return self.getvalue().decode(encoding)


@dataclass(frozen=True, slots=True)
class _Failure:
    error: BaseException


_END = object()


class QueueSink:
    """Bounded hand-off between a render and a consumer.

    At most ``maxsize`` chunks are buffered; once they are taken by the
    consumer the render may continue. The consumer iterates the sink:

        sink = QueueSink(maxsize=1)
        task = asyncio.create_task(render(tree, sink))
        async for data in sink:
            await send(data)

    Iteration ends after ``close()`` and raises the render error after
    ``abort()``. ``cancel()`` stops the render at its next write.
    """

    def __init__(self, maxsize: int = 1) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        # Capacity is enforced by the semaphore; the queue itself never blocks.
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._slots = asyncio.Semaphore(maxsize)
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    async def ready(self) -> None:
        if self._cancelled:
            raise SinkAborted("Stream consumer cancelled")
        await self._slots.acquire()
        if self._cancelled:
            self._slots.release()
            raise SinkAborted("Stream consumer cancelled")

    async def write(self, data: bytes) -> None:
        self._queue.put_nowait(data)

    async def close(self) -> None:
        self._queue.put_nowait(_END)

    async def abort(self, exc: BaseException) -> None:
        self._queue.put_nowait(_Failure(exc))

    def cancel(self) -> None:
        """Consumer side: stop the render at its next readiness check."""
        if self._cancelled:
            return
        self._cancelled = True
        # Wake a render blocked in ready().
        self._slots.release()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self

    async def __anext__(self) -> bytes:
        item = await self._queue.get()
        if item is _END:
            # Leave the marker for any later __anext__ call.
            self._queue.put_nowait(_END)
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self._queue.put_nowait(item)
            raise item.error
        self._slots.release()
        return item  # type: ignore[return-value]


class StreamWriterSink:
    """Write chunks to an ``asyncio.StreamWriter`` (sockets, pipes).

    Readiness is the writer's ``drain()``, so a slow peer suspends the
    render instead of growing the transport buffer without bound.
    """

    def __init__(self, writer: asyncio.StreamWriter) -> None:
        self._writer = writer

    async def ready(self) -> None:
        await self._writer.drain()

    async def write(self, data: bytes) -> None:
        self._writer.write(data)

    async def close(self) -> None:
        await self._writer.drain()
        self._writer.close()
        await self._writer.wait_closed()

    async def abort(self, exc: BaseException) -> None:
        self._writer.transport.abort()
