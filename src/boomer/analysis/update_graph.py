"""Client update graph.

Inverts propagation branches: for every owning signal, the ordered list
of statements a write to it must re-run. Each subscription carries its
full evaluation context (local name -> owning signal), which generated
re-invocation functions receive as explicit parameters instead of
recovering a receiver from an identity-keyed side table.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from boomer.analysis.propagation import PropagationResult

SignalKey = tuple[int, str]


@dataclass(frozen=True, slots=True)
class ContextBinding:
    """Local name ``local`` is fed by signal ``name`` owned by ``scope_id``."""

    local: str
    scope_id: int
    name: str


@dataclass(frozen=True, slots=True)
class Subscription:
    """A statement re-run when any of its owning signals is written."""

    scope_id: int
    statement_index: int
    handle: Hashable
    context: tuple[ContextBinding, ...]

    def context_for(self, owner: SignalKey) -> tuple[str, ...]:
        """Local names bound to ``owner`` (a signal passed twice yields two)."""
        return tuple(b.local for b in self.context if (b.scope_id, b.name) == owner)


class UpdateGraph:
    """Owner signal -> subscriptions, in statement order.

    Example:
            >>> graph = build_update_graph(result)
            >>> [s.handle for s in graph.affected(0, "value")]
            ['log-stmt', 'error-stmt']

    """

    __slots__ = ("_edges",)

    def __init__(self, edges: Mapping[SignalKey, tuple[Subscription, ...]]) -> None:
        self._edges = MappingProxyType(dict(edges))

    def affected(self, scope_id: int, name: str) -> tuple[Subscription, ...]:
        """Statements to re-run after a write to ``name`` owned by ``scope_id``."""
        return self._edges.get((scope_id, name), ())

    def signals(self) -> tuple[SignalKey, ...]:
        """Owning signals that have at least one subscriber, sorted."""
        return tuple(sorted(self._edges))

    def __contains__(self, key: object) -> bool:
        return key in self._edges

    def __iter__(self) -> Iterator[SignalKey]:
        return iter(self.signals())

    def __len__(self) -> int:
        return len(self._edges)

    def __repr__(self) -> str:
        return f"<UpdateGraph signals={len(self._edges)}>"


def build_update_graph(result: PropagationResult) -> UpdateGraph:
    """Invert resolved branches into an UpdateGraph.

    Degraded statements are evaluated once and never subscribe.
    """
    edges: dict[SignalKey, list[Subscription]] = {}
    for statement in result.statements:
        if not statement.reactive:
            continue
        context = tuple(
            ContextBinding(local=signal, scope_id=owner[0], name=owner[1])
            for signal, branch in statement.branches
            if (owner := branch.owner) is not None
        )
        subscription = Subscription(
            scope_id=statement.scope_id,
            statement_index=statement.index,
            handle=statement.handle,
            context=context,
        )
        owners: list[SignalKey] = []
        for binding in context:
            key = (binding.scope_id, binding.name)
            if key not in owners:
                owners.append(key)
        for key in owners:
            edges.setdefault(key, []).append(subscription)
    return UpdateGraph({key: tuple(subs) for key, subs in edges.items()})
