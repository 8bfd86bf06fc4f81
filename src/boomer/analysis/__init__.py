"""Signal analysis: propagation branches and the client update graph.

    >>> from boomer.analysis import resolve_signals, build_update_graph
    >>> result = resolve_signals(graph)
    >>> updates = build_update_graph(result)
    >>> updates.affected(0, "value")

"""

from boomer.analysis.propagation import (
    Hop,
    PropagationBranch,
    PropagationResult,
    Relation,
    ResolvedStatement,
    SignalResolver,
    resolve_signals,
)
from boomer.analysis.update_graph import (
    ContextBinding,
    Subscription,
    UpdateGraph,
    build_update_graph,
)

__all__ = [
    "ContextBinding",
    "Hop",
    "PropagationBranch",
    "PropagationResult",
    "Relation",
    "ResolvedStatement",
    "SignalResolver",
    "Subscription",
    "UpdateGraph",
    "build_update_graph",
    "resolve_signals",
]
