"""Scope records delivered by the external front-end.

The front-end parses component source and annotates it with lexical
scopes; these records are the only view of the program the core needs.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from dataclasses import dataclass

from boomer.nodes.base import Node


@dataclass(frozen=True, slots=True)
class CallSite(Node):
    """A call from the enclosing scope to another scope.

    Arguments align to the callee's parameters positionally. An argument
    that is not a plain identifier is recorded as ``None``.

    ``depth`` is the call's structural nesting inside the calling scope's
    body (0 for a top-level statement); lower is nearer.
    """

    callee: str
    args: Sequence[str | None] = ()
    depth: int = 0


@dataclass(frozen=True, slots=True)
class ReactiveStatement(Node):
    """Statement that must re-run whenever a signal it reads changes.

    Reactivity itself is decided by the front-end (explicit ``$:`` block
    annotation or accessor-read detection); ``depends_on`` lists the names
    the statement reads.
    """

    depends_on: frozenset[str]
    handle: Hashable = None


@dataclass(frozen=True, slots=True)
class ScopeRecord(Node):
    """A function or component scope: ``function log(x) { $: print(x) }``"""

    name: str
    declarations: frozenset[str] = frozenset()
    params: Sequence[str] = ()
    calls: Sequence[CallSite] = ()
    statements: Sequence[ReactiveStatement] = ()
    children: Sequence[ScopeRecord] = ()
