"""Scope graph: data model and builder.

    >>> from boomer.graph import build_scope_graph
    >>> graph = build_scope_graph(root_record)
    >>> graph.by_name("log").params
    ('x',)

"""

from boomer.graph.builder import ScopeGraphBuilder, build_scope_graph
from boomer.graph.model import ROOT_ID, Call, ScopeGraph, ScopeNode, Statement

__all__ = [
    "ROOT_ID",
    "Call",
    "ScopeGraph",
    "ScopeGraphBuilder",
    "ScopeNode",
    "Statement",
    "build_scope_graph",
]
