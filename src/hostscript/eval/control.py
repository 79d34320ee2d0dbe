from __future__ import annotations

from typing import Any, List, Optional, Tuple

from lark import Tree

from ..errors import EvalError, ResolutionError, ReturnSignal, TargetError, ThrownValue
from ..scope import Scope
from ..tree import child_by_label, children_by_label, is_token, tree_children
from ..types import NULL, HsClass, HsInstance, HsNull, HsValue
from .blocks import eval_statements
from .common import EvalFunc, expect_name_token, is_truthy, stack_snapshot, type_name_parts
from .enclosing import resolve_class_path

def eval_return_stmt(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsValue:
    value = eval_func(n.children[0], scope) if n.children else NULL

    raise ReturnSignal(value)

def coerce_throw_value(value: HsValue, n: Any, scope: Scope) -> TargetError:
    match value:
        case HsNull():
            raise EvalError("Null in throw statement", n)
        case BaseException():
            target = value
        case _:
            target = ThrownValue(value)

    return TargetError("Script threw exception", target, n, stack_snapshot(scope), in_native_code=False)

def eval_throw_stmt(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsValue:
    value = eval_func(n.children[0], scope)

    raise coerce_throw_value(value, n, scope)

def caught_value(err: TargetError) -> HsValue:
    """What a catch clause binds: the target, with script-thrown values unwrapped."""
    target = err.get_target()

    if isinstance(target, ThrownValue):
        return target.value

    return target if target is not None else NULL

def _catch_param(param: Tree) -> Tuple[Optional[List[str]], str]:
    type_node = child_by_label(param, 'type_name')
    name_tok = next(ch for ch in tree_children(param) if is_token(ch))
    parts = type_name_parts(type_node) if type_node is not None else None

    return parts, expect_name_token(name_tok, "Catch binder")

def _catch_matches(parts: Optional[List[str]], err: TargetError, scope: Scope, n: Any) -> bool:
    if parts is None:
        return True

    cls = resolve_class_path(parts, scope)
    target = err.get_target()

    if cls is None:
        raise ResolutionError(f"Class: {'.'.join(parts)} not found in namespace", n)

    if isinstance(cls, HsClass):
        return (
            isinstance(target, ThrownValue)
            and isinstance(target.value, HsInstance)
            and target.value.cls is cls
        )

    return isinstance(target, cls)

def eval_try_stmt(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsValue:
    body, *_ = n.children
    clauses = children_by_label(n, 'catch_clause')
    final = child_by_label(n, 'finally_clause')

    try:
        return eval_func(body, scope)
    except TargetError as err:
        # only TargetErrors reach script handlers; other EvalErrors abort the script
        for clause in clauses:
            param, handler = clause.children
            parts, binder = _catch_param(param)

            if not _catch_matches(parts, err, scope, clause):
                continue

            handler_scope = Scope(parent=scope, name="catch")
            handler_scope.declare_local(binder, caught_value(err))
            return eval_statements(handler.children, handler_scope, eval_func)

        raise
    finally:
        if final is not None:
            eval_func(final.children[0], scope)

def eval_if_stmt(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsValue:
    cond, then_branch, *rest = n.children

    if is_truthy(eval_func(cond, scope)):
        return eval_func(then_branch, scope)

    if rest:
        return eval_func(rest[0], scope)

    return NULL
