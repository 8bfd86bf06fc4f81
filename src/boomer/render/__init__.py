"""Streaming renderer and sinks.

    >>> from boomer.render import BufferSink, render
    >>> sink = BufferSink()
    >>> await render(tree, sink)

"""

from boomer.render.renderer import (
    RenderState,
    StreamingRenderer,
    render,
    render_stream,
    render_to_string,
)
from boomer.render.sinks import BufferSink, QueueSink, RenderSink, StreamWriterSink

__all__ = [
    "BufferSink",
    "QueueSink",
    "RenderSink",
    "RenderState",
    "StreamWriterSink",
    "StreamingRenderer",
    "render",
    "render_stream",
    "render_to_string",
]
