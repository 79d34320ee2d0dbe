from __future__ import annotations

import operator
from typing import Any, Callable, Dict

from lark import Tree

from ..errors import EvalError, TargetError
from ..scope import Scope
from ..types import HsNull, HsValue, type_label
from .common import EvalFunc, stack_snapshot, stringify

_SYMBOLS: Dict[str, str] = {
    'add': '+', 'sub': '-', 'mul': '*', 'div': '/',
    'lt': '<', 'gt': '>', 'eq': '==', 'ne': '!=',
}

_NUMERIC: Dict[str, Callable[[Any, Any], Any]] = {
    'add': operator.add,
    'sub': operator.sub,
    'mul': operator.mul,
    'lt': operator.lt,
    'gt': operator.gt,
}

def _is_number(value: HsValue) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)

def _values_equal(lhs: HsValue, rhs: HsValue) -> bool:
    if _is_number(lhs) and _is_number(rhs):
        return lhs == rhs

    if isinstance(lhs, (str, bool)) and type(lhs) is type(rhs):
        return lhs == rhs

    return lhs is rhs

def _divide(lhs: Any, rhs: Any, n: Tree, scope: Scope) -> HsValue:
    try:
        if isinstance(lhs, int) and isinstance(rhs, int):
            # integer division truncates toward zero
            quotient = abs(lhs) // abs(rhs)
            return quotient if (lhs >= 0) == (rhs >= 0) else -quotient
        return lhs / rhs
    except ZeroDivisionError as exc:
        raise TargetError("Arithmetic exception", exc, n, stack_snapshot(scope)) from exc

def eval_binary(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsValue:
    lhs_node, rhs_node = n.children
    lhs = eval_func(lhs_node, scope)
    rhs = eval_func(rhs_node, scope)
    op = n.data

    match op:
        case 'eq':
            return _values_equal(lhs, rhs)
        case 'ne':
            return not _values_equal(lhs, rhs)
        case 'add' if isinstance(lhs, str) or isinstance(rhs, str):
            return stringify(lhs) + stringify(rhs)

    if isinstance(lhs, HsNull) or isinstance(rhs, HsNull):
        raise EvalError(f"Null value in operator {_SYMBOLS[op]}", n)

    if not (_is_number(lhs) and _is_number(rhs)):
        raise EvalError(
            f"Operator {_SYMBOLS[op]} inappropriate for {type_label(lhs)} and {type_label(rhs)}",
            n,
        )

    if op == 'div':
        return _divide(lhs, rhs, n, scope)

    return _NUMERIC[op](lhs, rhs)

def eval_neg(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsValue:
    value = eval_func(n.children[0], scope)

    if not _is_number(value):
        raise EvalError(f"Operator - inappropriate for {type_label(value)}", n)

    return -value
