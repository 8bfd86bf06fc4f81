"""Signal propagation resolver.

For every reactive statement, traces each signal it reads back to the
scope that declares it. Parameters are conduits, not sources: a read of
parameter ``x`` is followed upward to the caller that passed the argument
bound to ``x``'s position, renamed to that argument, and so on until a
local declaration owns the (possibly renamed) signal.

The resulting ``PropagationBranch`` is consumed by the client code
generator to chain setters: writing the owning signal re-invokes the
statement, passing the renamed values along the branch.

Resolution is deterministic and bounded by the consuming scope's depth:
every step of the walk moves strictly toward the root of a tree.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable, Iterator
from dataclasses import dataclass
from enum import Enum

from boomer.config import DEFAULT_CONFIG, CompilerConfig
from boomer.exceptions import PropagationWarning, UnresolvedSignalError
from boomer.graph.model import Call, ScopeGraph, ScopeNode, Statement

logger = logging.getLogger(__name__)


class Relation(Enum):
    """How a hop's scope holds the binding."""

    DECLARES = "declares"
    PARAMETER_OF = "parameter-of"
    CALL_ARGUMENT = "call-argument"


@dataclass(frozen=True, slots=True)
class Hop:
    """One link of a branch: ``binding`` as seen from ``scope_id``.

    ``position`` is the positional index for parameter and argument hops.
    """

    scope_id: int
    binding: str
    relation: Relation
    position: int | None = None


@dataclass(frozen=True, slots=True)
class PropagationBranch:
    """Chain from a signal's declaration to the statement that reads it.

    Hops are ordered declaration first, consumer last. A resolved branch
    starts with a ``DECLARES`` hop; an unresolved one holds the partial
    chain walked before the failure, and ``reason`` says where it stopped.

    Example:
        root declares ``value`` and calls ``child(value)``; ``child(x)``
        reads ``x``:

            [root declares value] -> [root call-argument value @0]
                -> [child parameter-of x @0]

    """

    signal: str
    consumer: int
    hops: tuple[Hop, ...]
    resolved: bool
    reason: str | None = None

    @property
    def owner(self) -> tuple[int, str] | None:
        """(scope id, name) of the owning declaration, if resolved."""
        if not self.resolved:
            return None
        head = self.hops[0]
        return head.scope_id, head.binding

    @property
    def call_steps(self) -> int:
        """Number of caller hops followed (bounded by the consumer's depth)."""
        return sum(1 for hop in self.hops if hop.relation is Relation.CALL_ARGUMENT)


@dataclass(frozen=True, slots=True)
class ResolvedStatement:
    """A reactive statement with one branch per signal it reads.

    A statement with any unresolved read is ``degraded``: it is evaluated
    once and never re-run.
    """

    scope_id: int
    index: int
    handle: Hashable
    branches: tuple[tuple[str, PropagationBranch], ...]
    degraded: bool

    def branch(self, signal: str) -> PropagationBranch:
        for name, branch in self.branches:
            if name == signal:
                return branch
        raise KeyError(signal)

    @property
    def signals(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.branches)

    @property
    def reactive(self) -> bool:
        """True when the statement re-runs on a signal write."""
        return not self.degraded and bool(self.branches)


@dataclass(frozen=True, slots=True)
class PropagationResult:
    """Everything one resolution pass produced.

    Attributes:
        statements: Resolved statements, in scope pre-order then source order.
        warnings: One PropagationWarning per unresolved (scope, signal).
    """

    statements: tuple[ResolvedStatement, ...]
    warnings: tuple[PropagationWarning, ...]

    def for_handle(self, handle: Hashable) -> ResolvedStatement | None:
        """First statement registered with ``handle``, if any."""
        for statement in self.statements:
            if statement.handle == handle:
                return statement
        return None

    def in_scope(self, scope_id: int) -> tuple[ResolvedStatement, ...]:
        return tuple(s for s in self.statements if s.scope_id == scope_id)

    @property
    def degraded(self) -> tuple[ResolvedStatement, ...]:
        return tuple(s for s in self.statements if s.degraded)

    def iter_branches(self) -> Iterator[PropagationBranch]:
        for statement in self.statements:
            for _name, branch in statement.branches:
                yield branch


class SignalResolver:
    """Resolve propagation branches over an immutable ScopeGraph.

    Branches are memoized per (scope id, signal); the graph never changes,
    so a resolver may be reused, but results are never mutated in place.

    Example:
            >>> resolver = SignalResolver(graph)
            >>> result = resolver.resolve()
            >>> result.statements[0].branch("x").owner
            (0, 'value')

    Tie-break:
        When one ancestor calls the same callee several times, the call with
        the smallest structural depth wins; equal depths fall back to source
        order.

    """

    def __init__(self, graph: ScopeGraph, config: CompilerConfig | None = None) -> None:
        self._graph = graph
        self._config = config or DEFAULT_CONFIG
        self._cache: dict[tuple[int, str], PropagationBranch] = {}

    def resolve(self) -> PropagationResult:
        """Resolve every reactive statement in the graph.

        Returns:
            PropagationResult with statements and collected warnings.

        Raises:
            UnresolvedSignalError: In strict mode, on the first unresolved read.
        """
        statements: list[ResolvedStatement] = []
        warnings: list[PropagationWarning] = []
        reported: set[tuple[int, str]] = set()

        for node in self._graph.walk():
            for statement in node.statements:
                resolved = self._resolve_statement(node, statement)
                statements.append(resolved)
                for signal, branch in resolved.branches:
                    if branch.resolved or (node.id, signal) in reported:
                        continue
                    reported.add((node.id, signal))
                    warning = PropagationWarning(
                        scope_id=node.id,
                        scope_name=node.name,
                        signal=signal,
                        reason=branch.reason or "unresolved",
                        lineno=statement.lineno,
                        col_offset=statement.col_offset,
                    )
                    if self._config.strict:
                        raise UnresolvedSignalError(warning)
                    logger.warning("%s", warning)
                    warnings.append(warning)

        logger.debug(
            "Resolved %d statements (%d degraded)",
            len(statements),
            sum(1 for s in statements if s.degraded),
        )
        return PropagationResult(statements=tuple(statements), warnings=tuple(warnings))

    def resolve_signal(self, scope_id: int, signal: str) -> PropagationBranch:
        """Branch for a read of ``signal`` inside scope ``scope_id``."""
        key = (scope_id, signal)
        branch = self._cache.get(key)
        if branch is None:
            branch = self._walk(self._graph.node(scope_id), signal)
            self._cache[key] = branch
        return branch

    def _resolve_statement(self, node: ScopeNode, statement: Statement) -> ResolvedStatement:
        branches = tuple(
            (signal, self.resolve_signal(node.id, signal))
            for signal in sorted(statement.depends_on)
        )
        return ResolvedStatement(
            scope_id=node.id,
            index=statement.index,
            handle=statement.handle,
            branches=branches,
            degraded=any(not branch.resolved for _name, branch in branches),
        )

    def _walk(self, consumer: ScopeNode, signal: str) -> PropagationBranch:
        """Follow ``signal`` from ``consumer`` up to its declaring scope."""
        if consumer.declares(signal):
            return self._branch(consumer, signal, [Hop(consumer.id, signal, Relation.DECLARES)])

        position = consumer.param_position(signal)
        if position is None:
            return self._branch(consumer, signal, [], reason="neither declared nor a parameter")

        # Collected consumer-first, reversed when the branch is built.
        trail = [Hop(consumer.id, signal, Relation.PARAMETER_OF, position)]
        callee = consumer
        for _step in range(self._graph.depth(consumer.id) + 1):
            found = self._nearest_call(callee)
            if found is None:
                return self._branch(
                    consumer, signal, trail, reason=f"no caller of '{callee.name}' in its ancestors"
                )
            caller, call = found

            argument = call.args[position] if position < len(call.args) else None
            if argument is None:
                return self._branch(
                    consumer,
                    signal,
                    trail,
                    reason=f"argument {position} of the call to '{callee.name}' "
                    f"in '{caller.name}' is not a binding",
                )
            trail.append(Hop(caller.id, argument, Relation.CALL_ARGUMENT, position))

            owner = self._lookup(caller, argument)
            if owner is None:
                return self._branch(
                    consumer,
                    signal,
                    trail,
                    reason=f"'{argument}' is not bound in '{caller.name}' or its ancestors",
                )
            if owner.declares(argument):
                trail.append(Hop(owner.id, argument, Relation.DECLARES))
                return self._branch(consumer, signal, trail)

            position = owner.param_position(argument)
            assert position is not None
            trail.append(Hop(owner.id, argument, Relation.PARAMETER_OF, position))
            callee = owner

        return self._branch(consumer, signal, trail, reason="walk exceeded the scope depth")

    def _nearest_call(self, callee: ScopeNode) -> tuple[ScopeNode, Call] | None:
        """Nearest ancestor calling ``callee``, with its nearest such call."""
        for ancestor in self._graph.ancestors(callee.id):
            candidates = [call for call in ancestor.calls if call.target == callee.id]
            if candidates:
                return ancestor, min(candidates, key=lambda call: (call.depth, call.index))
        return None

    def _lookup(self, scope: ScopeNode, name: str) -> ScopeNode | None:
        """Innermost scope, from ``scope`` outward, that binds ``name``."""
        if scope.declares(name) or scope.param_position(name) is not None:
            return scope
        for ancestor in self._graph.ancestors(scope.id):
            if ancestor.declares(name) or ancestor.param_position(name) is not None:
                return ancestor
        return None

    @staticmethod
    def _branch(
        consumer: ScopeNode,
        signal: str,
        trail: list[Hop],
        *,
        reason: str | None = None,
    ) -> PropagationBranch:
        hops = tuple(reversed(trail))
        resolved = reason is None and bool(hops) and hops[0].relation is Relation.DECLARES
        return PropagationBranch(
            signal=signal,
            consumer=consumer.id,
            hops=hops,
            resolved=resolved,
            reason=reason,
        )


def resolve_signals(graph: ScopeGraph, config: CompilerConfig | None = None) -> PropagationResult:
    """Convenience wrapper: ``SignalResolver(graph, config).resolve()``."""
    return SignalResolver(graph, config).resolve()
