from __future__ import annotations

from typing import Any, List

from lark import Tree

from ..scope import Scope
from ..tree import child_by_label, children_by_label, tree_children
from ..types import NULL, HsValue, default_value
from .common import EvalFunc, expect_name_token, modifier_names, type_name_parts

def eval_statements(children: List[Any], scope: Scope, eval_func: EvalFunc) -> HsValue:
    """Run a statement list in `scope`, returning the last value."""
    result: HsValue = NULL

    for child in children:
        result = eval_func(child, scope)

    return result

def eval_block(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsValue:
    block_scope = Scope(parent=scope, name="block")

    return eval_statements(n.children, block_scope, eval_func)

def eval_var_decl(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsValue:
    """Typed local declaration: always binds in the current scope, shadowing outer names."""
    type_node = child_by_label(n, 'type_name')
    type_name = ".".join(type_name_parts(type_node)) if type_node is not None else None
    result: HsValue = NULL

    for init in children_by_label(n, 'var_init'):
        name_tok, *rest = tree_children(init)
        name = expect_name_token(name_tok, "Variable name")
        result = eval_func(rest[0], scope) if rest else default_value(type_name)
        scope.declare_local(name, result)

    return result

def is_static_decl(n: Tree) -> bool:
    mods = child_by_label(n, 'modifiers')

    return mods is not None and "static" in modifier_names(mods)
