from __future__ import annotations

from typing import Callable, Dict

from lark import Token, Tree

from .errors import EvalError, ReturnSignal
from .scope import Scope
from .tree import Node, is_token
from .types import NULL, HsValue

from .eval.access import eval_assign, eval_field_access, eval_name_ref, eval_this_ref
from .eval.blocks import eval_block, eval_statements, eval_var_decl
from .eval.calls import eval_invoke, eval_method_call
from .eval.classes import eval_class_decl, eval_method_decl
from .eval.common import EvalFunc, stack_snapshot, token_number, token_string
from .eval.construct import eval_new_expr, eval_qualified_new
from .eval.control import eval_if_stmt, eval_return_stmt, eval_throw_stmt, eval_try_stmt
from .eval.expr import eval_binary, eval_neg

def _maybe_attach_location(exc: EvalError, node: Node, scope: Scope) -> None:
    # innermost node wins; outer nodes only fill what is still missing
    if exc.hs_meta is not None and exc.call_stack:
        return

    exc.attach(node, stack_snapshot(scope))

# ---------------- Public API ----------------

def eval_expr(ast: Node, scope: Scope) -> HsValue:
    """Evaluate a parsed program; a top-level `return` ends it with its value."""
    try:
        return eval_node(ast, scope)
    except ReturnSignal as signal:
        return signal.value

# ---------------- Core evaluator ----------------

def eval_node(n: Node, scope: Scope) -> HsValue:
    try:
        return _eval_node_inner(n, scope)
    except EvalError as e:
        _maybe_attach_location(e, n, scope)
        raise

def _eval_node_inner(n: Node, scope: Scope) -> HsValue:
    if is_token(n):
        return _eval_token(n, scope)

    d = n.data
    handler = _NODE_DISPATCH.get(d)
    if handler is not None:
        return handler(n, scope)

    match d:
        case 'start':
            return eval_statements(n.children, scope, eval_node)
        case 'expr_stmt':
            return eval_node(n.children[0], scope)
        case 'empty_stmt':
            return NULL
        case 'number':
            return token_number(n.children[0])
        case 'string':
            return token_string(n.children[0])
        case 'null':
            return NULL
        case 'true':
            return True
        case 'false':
            return False
        case _:
            raise EvalError(f"Unsupported node type {d}", n)

def _eval_token(t: Token, scope: Scope) -> HsValue:
    raise EvalError(f"Unexpected bare token {t.type} {t.value!r}", t)

def _wrap(handler: Callable[[Tree, Scope, EvalFunc], HsValue]) -> Callable[[Tree, Scope], HsValue]:
    def _run(n: Tree, scope: Scope) -> HsValue:
        return handler(n, scope, eval_node)

    return _run

_NODE_DISPATCH: Dict[str, Callable[[Tree, Scope], HsValue]] = {
    'block': _wrap(eval_block),
    'var_decl': _wrap(eval_var_decl),
    'class_decl': _wrap(eval_class_decl),
    'method_decl': _wrap(eval_method_decl),
    'return_stmt': _wrap(eval_return_stmt),
    'throw_stmt': _wrap(eval_throw_stmt),
    'try_stmt': _wrap(eval_try_stmt),
    'if_stmt': _wrap(eval_if_stmt),
    'assign': _wrap(eval_assign),
    'name_ref': _wrap(eval_name_ref),
    'this_ref': _wrap(eval_this_ref),
    'field_access': _wrap(eval_field_access),
    'invoke': _wrap(eval_invoke),
    'method_call': _wrap(eval_method_call),
    'new_expr': _wrap(eval_new_expr),
    'qualified_new': _wrap(eval_qualified_new),
    'neg': _wrap(eval_neg),
    'add': _wrap(eval_binary),
    'sub': _wrap(eval_binary),
    'mul': _wrap(eval_binary),
    'div': _wrap(eval_binary),
    'lt': _wrap(eval_binary),
    'gt': _wrap(eval_binary),
    'eq': _wrap(eval_binary),
    'ne': _wrap(eval_binary),
}
