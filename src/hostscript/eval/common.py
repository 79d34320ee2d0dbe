from __future__ import annotations

from typing import Any, Callable, List, Optional, Tuple

from lark import Token

from ..errors import EvalError, classify_exception
from ..scope import Scope
from ..tree import is_token, tree_children, tree_label, token_values
from ..types import HsNull, HsValue

EvalFunc = Callable[[Any, Scope], HsValue]

def token_kind(node: Any) -> Optional[str]:
    if not is_token(node):
        return None
    tok: Token = node
    return str(tok.type)

def expect_name_token(node: Any, context: str) -> str:
    if is_token(node) and token_kind(node) == 'NAME':
        return str(node.value)

    raise EvalError(f"{context} must be an identifier", node)

def type_name_parts(node: Any) -> List[str]:
    if tree_label(node) != 'type_name':
        raise EvalError("Expected a type name", node)

    return token_values(node)

def modifier_names(node: Any) -> List[str]:
    names: List[str] = []

    for mod in tree_children(node):
        names.extend(token_values(mod))

    return names

def runtime_of(scope: Scope) -> Any:
    """The interpreter that owns this scope chain."""
    ctx = scope.context

    if ctx is None:
        raise EvalError(f"Scope '{scope.name}' is not attached to an interpreter")

    return ctx

def stack_snapshot(scope: Scope) -> Tuple[str, ...]:
    ctx = scope.context

    if ctx is None:
        return (scope.name,)

    return ctx.call_stack.snapshot()

def host_invoke(scope: Scope, node: Any, action: Callable[..., HsValue], *args: Any) -> HsValue:
    """Run a host bridge operation; whatever the host throws becomes a native TargetError."""
    try:
        return action(*args)
    except (EvalError, RecursionError):
        raise
    except Exception as exc:
        raise classify_exception(exc, node, stack_snapshot(scope))

def token_number(token: Token) -> HsValue:
    raw = str(token.value)

    if "." in raw:
        return float(raw)

    return int(raw)

_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', '"': '"', '\\': '\\', '0': '\0'}

def token_string(token: Token) -> str:
    raw = str(token.value)

    if len(raw) >= 2 and raw[0] == '"' and raw[-1] == '"':
        raw = raw[1:-1]

    out: List[str] = []
    chars = iter(raw)

    for ch in chars:
        if ch != '\\':
            out.append(ch)
            continue

        nxt = next(chars, '')
        out.append(_ESCAPES.get(nxt, nxt))

    return "".join(out)

def stringify(value: HsValue) -> str:
    match value:
        case HsNull():
            return "null"
        case bool():
            return "true" if value else "false"
        case str():
            return value
        case _:
            return str(value)

def is_truthy(value: HsValue) -> bool:
    match value:
        case HsNull():
            return False
        case bool():
            return value
        case int() | float():
            return value != 0
        case str():
            return bool(value)
        case _:
            return True

def eval_args(args_node: Any, scope: Scope, eval_func: EvalFunc) -> List[HsValue]:
    return [eval_func(arg, scope) for arg in tree_children(args_node)]

def null_pointer(what: str, node: Any) -> EvalError:
    return EvalError(f"Null pointer in {what}", node)
