"""Exceptions and diagnostics for the Boomer compiler.

Exception Hierarchy:
BoomerError (base)
├── GraphError                  # Fatal: aborts compilation
│   ├── DanglingCall            # Call names a scope that does not exist
│   ├── CycleDetected           # Scope visited twice or recursive call graph
│   └── InvalidGraphError       # Tree invariant broken (parent/child mismatch)
├── UnresolvedSignalError       # Strict mode only: a PropagationWarning promoted
└── RenderError                 # Fatal to one render invocation only
    ├── SinkAborted             # Sink write/ready/close failed or was cancelled
    ├── DeferredRejected        # A Deferred producer raised
    ├── AccessorFailed          # A Dynamic accessor raised
    └── RenderStateError        # Renderer or sink reused after a render

Non-fatal problems are *values*, not exceptions: the resolver returns
``PropagationWarning`` records alongside a successful result.

Every error carries an ``ErrorCode`` so messages are searchable:

    ```
    B-GRA-001: Call from 'root' names unknown scope 'chld' at 3:4
      Hint: Check the callee key; scope keys must match ScopeRecord.name
      Docs: docs/errors.md#b-gra-001
    ```

"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from boomer import terminal

_DOCS_BASE = "docs/errors.md"


class ErrorCode(Enum):
    """Searchable error codes.

    Format: B-{CATEGORY}-{NUMBER}
    Categories: GRA (scope graph), PRO (propagation), REN (rendering)
    """

    # Scope graph errors (B-GRA-xxx)
    DANGLING_CALL = "B-GRA-001"
    CYCLE_DETECTED = "B-GRA-002"
    INVALID_GRAPH = "B-GRA-003"

    # Propagation diagnostics (B-PRO-xxx)
    UNRESOLVED_SIGNAL = "B-PRO-001"

    # Render errors (B-REN-xxx)
    SINK_ABORTED = "B-REN-001"
    DEFERRED_REJECTED = "B-REN-002"
    ACCESSOR_FAILED = "B-REN-003"
    RENDER_STATE = "B-REN-004"

    @property
    def docs_url(self) -> str:
        return f"{_DOCS_BASE}#{self.value.lower()}"

    @property
    def category(self) -> str:
        """Error category ('graph', 'propagation' or 'render')."""
        prefix = self.value.split("-")[1]
        return {
            "GRA": "graph",
            "PRO": "propagation",
            "REN": "render",
        }.get(prefix, "unknown")


def _format_location(lineno: int | None, col_offset: int | None) -> str:
    if lineno is None:
        return ""
    if col_offset is None:
        return f" at {lineno}"
    return f" at {lineno}:{col_offset}"


class BoomerError(Exception):
    """Base exception for all Boomer errors.

    Attributes:
        code: ErrorCode identifying the failure class.
        hint: Optional actionable suggestion shown by ``format_compact``.
    """

    code: ErrorCode | None = None
    hint: str | None = None

    def format_compact(self) -> str:
        """Format the error as a short, colored terminal diagnostic.

        Returns:
            Multi-line string: code + message, optional hint, docs link.
        """
        parts: list[str] = []
        message = str(self)
        code = self.code.value if self.code else None
        if code and message.startswith(f"{code}: "):
            message = message[len(code) + 2 :]
        parts.append(terminal.format_error_header(code, message))
        if self.hint:
            parts.append(f"  {terminal.hint('Hint:')} {self.hint}")
        if self.code:
            parts.append(f"  {terminal.dim_text('Docs:')} {terminal.docs_url(self.code.docs_url)}")
        return "\n".join(parts)


# ---------------------------------------------------------------------------
# Graph errors
# ---------------------------------------------------------------------------


class GraphError(BoomerError):
    """Fatal scope-graph construction error.

    Carries the offending scope and its source location so the front-end
    can point at the declaration.
    """

    code: ErrorCode | None = ErrorCode.INVALID_GRAPH

    def __init__(
        self,
        message: str,
        *,
        scope: str | None = None,
        lineno: int | None = None,
        col_offset: int | None = None,
    ):
        self.message = message
        self.scope = scope
        self.lineno = lineno
        self.col_offset = col_offset
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        prefix = f"{self.code.value}: " if self.code else ""
        return f"{prefix}{self.message}{_format_location(self.lineno, self.col_offset)}"


class DanglingCall(GraphError):
    """A call site names a scope key that no ScopeRecord declares."""

    code: ErrorCode | None = ErrorCode.DANGLING_CALL
    hint = "Check the callee key; scope keys must match ScopeRecord.name"

    def __init__(
        self,
        caller: str,
        callee: str,
        *,
        lineno: int | None = None,
        col_offset: int | None = None,
    ):
        self.caller = caller
        self.callee = callee
        super().__init__(
            f"Call from '{caller}' names unknown scope '{callee}'",
            scope=caller,
            lineno=lineno,
            col_offset=col_offset,
        )


class CycleDetected(GraphError):
    """Adding an edge would break the tree invariant.

    Raised for a scope visited twice during construction and for recursive
    (self or mutual) call graphs, which the propagation walk cannot follow.

    Attributes:
        path: Scope keys forming the cycle, first key repeated at the end.
    """

    code: ErrorCode | None = ErrorCode.CYCLE_DETECTED
    hint = "Recursive components are not supported; break the cycle with a prop"

    def __init__(
        self,
        path: tuple[str, ...],
        *,
        lineno: int | None = None,
        col_offset: int | None = None,
    ):
        self.path = path
        super().__init__(
            f"Cycle detected: {' -> '.join(path)}",
            scope=path[0] if path else None,
            lineno=lineno,
            col_offset=col_offset,
        )


class InvalidGraphError(GraphError):
    """A ScopeGraph failed validation (parent/child links disagree)."""


# ---------------------------------------------------------------------------
# Propagation diagnostics
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PropagationWarning:
    """A signal read that could not be traced to its declaration.

    The statement reading it is degraded to a one-shot, non-reactive
    evaluation. Collected and returned alongside a successful compile.

    Attributes:
        scope_id: Scope holding the reading statement.
        scope_name: Front-end key of that scope.
        signal: The name that could not be resolved.
        reason: Short explanation of where the walk stopped.
    """

    scope_id: int
    scope_name: str
    signal: str
    reason: str = "neither declared nor a parameter"
    lineno: int | None = None
    col_offset: int | None = None

    code = ErrorCode.UNRESOLVED_SIGNAL

    def __str__(self) -> str:
        where = _format_location(self.lineno, self.col_offset)
        return (
            f"{self.code.value}: Unresolved signal '{self.signal}' in scope "
            f"'{self.scope_name}' (#{self.scope_id}){where}: {self.reason}"
        )

    def format_compact(self) -> str:
        where = _format_location(self.lineno, self.col_offset)
        header = terminal.format_error_header(
            self.code.value,
            f"Unresolved signal '{self.signal}' in "
            f"{terminal.location(self.scope_name)}{where}",
            warning=True,
        )
        return "\n".join(
            [
                header,
                f"  {terminal.hint('Hint:')} statement degraded to one-shot evaluation ({self.reason})",
                f"  {terminal.dim_text('Docs:')} {terminal.docs_url(self.code.docs_url)}",
            ]
        )


class UnresolvedSignalError(BoomerError):
    """Strict mode: an unresolved signal is a compile failure."""

    code: ErrorCode | None = ErrorCode.UNRESOLVED_SIGNAL
    hint = "Declare the signal in an enclosing scope or pass it as an argument"

    def __init__(self, warning: PropagationWarning):
        self.warning = warning
        super().__init__(str(warning))


# ---------------------------------------------------------------------------
# Render errors
# ---------------------------------------------------------------------------


class RenderError(BoomerError):
    """Failure of a single render invocation.

    The sink has already been aborted when this is raised. Bytes written
    before the failure are not retracted.

    Attributes:
        chunk_path: Index path of the chunk being rendered, e.g. ``(0, 3, 1)``.
        anchor: Anchor id of the enclosing reactive subtree, if any.
    """

    code: ErrorCode | None = ErrorCode.RENDER_STATE

    def __init__(
        self,
        message: str,
        *,
        chunk_path: tuple[int, ...] | None = None,
        anchor: str | None = None,
    ):
        self.message = message
        self.chunk_path = chunk_path
        self.anchor = anchor
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        prefix = f"{self.code.value}: " if self.code else ""
        parts = [f"{prefix}{self.message}"]
        if self.chunk_path is not None:
            parts.append(f"chunk {'.'.join(str(i) for i in self.chunk_path) or '<root>'}")
        if self.anchor:
            parts.append(f"anchor {self.anchor}")
        return " | ".join(parts)


class SinkAborted(RenderError):
    """The sink failed or was aborted; traversal stopped."""

    code: ErrorCode | None = ErrorCode.SINK_ABORTED


class DeferredRejected(RenderError):
    """A Deferred producer raised instead of resolving."""

    code: ErrorCode | None = ErrorCode.DEFERRED_REJECTED


class AccessorFailed(RenderError):
    """A Dynamic accessor raised during synchronous evaluation."""

    code: ErrorCode | None = ErrorCode.ACCESSOR_FAILED


class RenderStateError(RenderError):
    """Illegal state transition: a renderer or sink was used twice."""

    code: ErrorCode | None = ErrorCode.RENDER_STATE
    hint = "Create a new sink for every render; one render pass per sink"
