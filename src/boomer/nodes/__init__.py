"""Boomer input nodes.

Immutable records produced by the external front-end:

- Scope records (``ScopeRecord``, ``CallSite``, ``ReactiveStatement``) feed
  the scope graph builder.
- Markup nodes (``Element``, ``Text``, ``Expr``, ``Await``, ...) feed the
  chunk tree compiler.

"""

from boomer.nodes.base import Node
from boomer.nodes.markup import (
    VOID_ELEMENTS,
    Attr,
    Await,
    Conditional,
    Element,
    EventBinding,
    Expr,
    Fragment,
    Text,
)
from boomer.nodes.scopes import CallSite, ReactiveStatement, ScopeRecord

__all__ = [
    "VOID_ELEMENTS",
    "Attr",
    "Await",
    "CallSite",
    "Conditional",
    "Element",
    "EventBinding",
    "Expr",
    "Fragment",
    "Node",
    "ReactiveStatement",
    "ScopeRecord",
    "Text",
]
