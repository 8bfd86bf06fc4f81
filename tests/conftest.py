"""Pytest configuration and fixtures for Boomer tests."""

import pytest

from boomer import terminal
from boomer.config import CompilerConfig
from boomer.render import BufferSink

from .factories import call, el, expr, scope, stmt, text


@pytest.fixture
def no_colors(monkeypatch):
    """Plain diagnostics regardless of the test runner's terminal."""
    monkeypatch.setattr(terminal, "_USE_COLORS", False)


@pytest.fixture
def strict_config():
    """Compiler configuration that raises on unresolved signals."""
    return CompilerConfig(strict=True)


@pytest.fixture
def sink():
    """Fresh in-memory sink (one per render)."""
    return BufferSink()


@pytest.fixture
def root_child_record():
    """root declares ``value`` and calls ``child(value)``; child re-runs on ``x``."""
    return scope(
        "root",
        declares={"value"},
        calls=[call("child", "value", line=5)],
        children=[
            scope("child", params=["x"], statements=[stmt("x", handle="log")], line=2),
        ],
    )


@pytest.fixture
def pager_template():
    """``<p>Current Page {page()}</p>`` with page() == 1."""
    return el("p", text("Current Page "), expr("page()", 1, reads={"page"}))


def assert_chunks_equal(actual: list[bytes], expected: list[str]) -> None:
    """Assert written chunks decode to the expected strings, in order.

    Args:
        actual: Payloads recorded by a sink.
        expected: Expected decoded payloads.
    """
    decoded = [data.decode("utf-8") for data in actual]
    assert decoded == expected, (
        f"Chunk sequence mismatch:\n  Actual: {decoded!r}\n  Expected: {expected!r}"
    )
