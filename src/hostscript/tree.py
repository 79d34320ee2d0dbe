"""Shared helpers for working with the lark Tree/Token nodes the parser produces."""
from __future__ import annotations

from typing import Any, List, Optional
from typing_extensions import TypeAlias, TypeGuard

from lark import Token, Tree

Node: TypeAlias = Tree | Token

def is_tree(node: Any) -> TypeGuard[Tree]:
    return isinstance(node, Tree)

def is_token(node: Any) -> TypeGuard[Token]:
    return isinstance(node, Token)

def tree_label(node: Any) -> Optional[str]:
    return node.data if is_tree(node) else None

def tree_children(node: Any) -> List[Node]:
    if not is_tree(node):
        return []

    children = getattr(node, "children", None)
    if children is None:
        return []

    return list(children)

def child_by_label(node: Any, label: str) -> Optional[Tree]:
    for ch in tree_children(node):
        if tree_label(ch) == label:
            return ch

    return None

def children_by_label(node: Any, label: str) -> List[Tree]:
    return [ch for ch in tree_children(node) if tree_label(ch) == label]

def token_values(node: Any) -> List[str]:
    """Values of the direct token children, e.g. the segments of a type_name."""
    return [str(ch.value) for ch in tree_children(node) if is_token(ch)]
